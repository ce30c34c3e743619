"""
G-code Driver - Main facade for the communication core.

Turns machine operations (enable, home, move, pick, place, actuate) into
template-built G-code exchanges, tracks the last commanded position, and
replays every operation on a chain of secondary drivers.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable, Iterator, List, Optional, Protocol, Sequence, Union

from core.config import DriverConfig
from core.engine import CommandEngine, CommandResult
from core.errors import CommandTimeout, HandshakeTimeout
from core.logger import log_info, log_move, log_ok, log_sync, log_warn
from core.reader import LineReader, ResponseChannel
from core.template import substitute_variable
from core.transport import MockTransport, Transport
from core.types import Actuator, HeadMountable, Location, Nozzle, Position, is_nozzle


class Driver(Protocol):
    """Operations every driver in a chain understands."""

    def connect(self) -> None: ...
    def disconnect(self) -> None: ...
    def close(self) -> None: ...
    def set_enabled(self, enabled: bool) -> None: ...
    def home(self) -> None: ...
    def get_location(self, hm: HeadMountable) -> Location: ...
    def move_to(self, hm: HeadMountable, location: Location, speed: float) -> None: ...
    def pick(self, nozzle: Nozzle) -> None: ...
    def place(self, nozzle: Nozzle) -> None: ...
    def actuate(self, actuator: Actuator, value: Union[bool, float]) -> None: ...


class GcodeDriver:
    """
    Drives one line-protocol motion controller.

    Lifecycle:
        connect() opens the transport, starts the reader and performs the
        sync handshake. Only then is the driver protocol-ready.

    Fan-out:
        Every operation runs on this controller first. Only when that
        succeeds is it replayed, in order, on each sub-driver. The first
        sub-driver failure propagates and the rest are skipped.
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[DriverConfig] = None,
        sub_drivers: Sequence[Driver] = (),
    ):
        self.config = config or DriverConfig()
        self._transport = transport
        self._sub_drivers: List[Driver] = list(sub_drivers)

        self._channel = ResponseChannel()
        self._reader = LineReader(transport, self._channel)
        self._engine = CommandEngine(transport, self._channel, self.config.command_confirm_regex)

        self._position = Position()
        self._connected = False
        self._lock = threading.RLock()  # connect / disconnect

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_connected(self) -> bool:
        """Handshake succeeded and commands may be exchanged."""
        return self._connected

    @property
    def position(self) -> Position:
        """Last commanded position, in the driver's working units."""
        return self._position

    @property
    def sub_drivers(self) -> List[Driver]:
        return list(self._sub_drivers)

    def get_command_history(self, limit: int | None = None) -> List[CommandResult]:
        return self._engine.get_history(limit)

    # =========================================================================
    # Connection
    # =========================================================================

    def connect(self) -> None:
        """
        Open the transport and wait for the controller to answer.

        On success: disables motors as a safety default, then sends the
        startup commands.

        Raises:
            HandshakeTimeout: no sync response within connect_timeout
        """
        with self._lock:
            if not self._transport.is_open:
                self._transport.open()

            self._connected = False
            self._channel.reset()
            if not self._reader.is_running:
                self._reader.start()

            try:
                self._handshake()
            except Exception:
                self.disconnect()
                raise

            self._connected = True
            log_ok("Controller ready")

            self.set_enabled(False)
            self._engine.send_gcode(self.config.connect_command, self.config.command_timeout)

    def _handshake(self) -> None:
        """Send the sync command, then poll until a line matches sync_regex."""
        cfg = self.config
        deadline = time.monotonic() + cfg.connect_timeout
        log_sync(f"Handshake with {cfg.sync_command!r}", {"timeout": cfg.connect_timeout})

        responses = self._collect(
            lambda: self._engine.send_gcode(cfg.sync_command, cfg.connect_timeout)
        )
        while not any(cfg.sync_regex.fullmatch(line) for line in responses):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise HandshakeTimeout(
                    f"Unable to receive connection response on {cfg.port} "
                    f"within {cfg.connect_timeout}s. Check your port and baud rate ({cfg.baud_rate})."
                )
            poll = min(cfg.sync_poll_timeout, remaining)
            responses = self._collect(lambda: self._engine.send_command(None, poll))
        log_sync("Sync response received")

    @staticmethod
    def _collect(exchange: Callable[[], List[str]]) -> List[str]:
        """Lines from an exchange, including those seen before a timeout."""
        try:
            return exchange()
        except CommandTimeout as e:
            return e.responses

    def disconnect(self) -> None:
        """Stop the reader, then close the transport."""
        with self._lock:
            self._connected = False
            self._reader.stop()
            self._transport.close()
            log_info("Disconnected")

    def close(self) -> None:
        """Disconnect this driver, then close every sub-driver in order."""
        self.disconnect()
        self._replay(lambda driver: driver.close())

    # =========================================================================
    # Operations
    # =========================================================================

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable the machine.

        Enabling an unconnected driver connects it first. Disabling an
        unconnected driver sends nothing here but still reaches the
        sub-drivers.
        """
        if enabled and not self._connected:
            self.connect()
        if self._connected:
            command = self.config.enable_command if enabled else self.config.disable_command
            self._engine.send_gcode(command, self.config.command_timeout)
        elif not enabled:
            log_warn("Not connected, disable only forwarded to sub-drivers")

        self._replay(lambda driver: driver.set_enabled(enabled))

    def home(self) -> None:
        """Home the machine. No timeout: homing takes as long as it takes."""
        log_move("Homing")
        self._engine.send_gcode(self.config.home_command, None)

        self._replay(lambda driver: driver.home())

    def get_location(self, hm: HeadMountable) -> Location:
        """Where hm is, from the last commanded position. No I/O."""
        location = self._position.to_location(self.config.units).add(hm.head_offsets)
        if not is_nozzle(hm):
            location = location.derive(z=0.0)
        return location

    def move_to(self, hm: HeadMountable, location: Location, speed: float) -> None:
        """
        Move hm to location at speed (fraction of max_feed_rate).

        NaN axes keep their current value. Axes that do not change are left
        out of the command. Only nozzles may move Z.
        """
        target = location.convert_to_units(self.config.units).subtract(hm.head_offsets)
        current = self._position

        x, y, z, c = target.x, target.y, target.z, target.rotation
        if not is_nozzle(hm):
            z = math.nan

        if math.isnan(x):
            x = current.x
        if math.isnan(y):
            y = current.y
        if math.isnan(z):
            z = current.z
        if math.isnan(c):
            c = current.c

        command = self.config.move_to_command
        command = substitute_variable(command, "X", None if x == current.x else x)
        command = substitute_variable(command, "Y", None if y == current.y else y)
        command = substitute_variable(command, "Z", None if z == current.z else z)
        command = substitute_variable(command, "Rotation", None if c == current.c else c)
        command = substitute_variable(command, "FeedRate", self.config.max_feed_rate * speed)

        log_move(f"{hm.name} → X{x:.4f} Y{y:.4f} Z{z:.4f} C{c:.4f}", {"speed": speed})
        self._engine.send_gcode(command, self.config.command_timeout)

        self._position = Position(x, y, z, c)

        self._replay(lambda driver: driver.move_to(hm, location, speed))

    def pick(self, nozzle: Nozzle) -> None:
        self._engine.send_gcode(self.config.pick_command, self.config.command_timeout)

        self._replay(lambda driver: driver.pick(nozzle))

    def place(self, nozzle: Nozzle) -> None:
        self._engine.send_gcode(self.config.place_command, self.config.command_timeout)

        self._replay(lambda driver: driver.place(nozzle))

    def actuate(self, actuator: Actuator, value: Union[bool, float]) -> None:
        """
        Drive an actuator.

        A bool uses the boolean template ({BooleanValue}), anything else the
        numeric one ({DoubleValue}). Both also get {Name} and {Index}.
        """
        if isinstance(value, bool):
            command = self.config.actuate_boolean_command
            value_name = "BooleanValue"
        else:
            command = self.config.actuate_double_command
            value_name = "DoubleValue"
            value = float(value)

        command = substitute_variable(command, "Name", actuator.name)
        command = substitute_variable(command, "Index", actuator.index)
        command = substitute_variable(command, value_name, value)
        self._engine.send_gcode(command, self.config.command_timeout)

        self._replay(lambda driver: driver.actuate(actuator, value))

    # =========================================================================
    # Fan-out
    # =========================================================================

    def _replay(self, operation: Callable[[Driver], None]) -> None:
        """Apply operation to each sub-driver in order, stopping at the first error."""
        for driver in self._sub_drivers:
            operation(driver)


# =============================================================================
# Factory
# =============================================================================


def create_transport(config: DriverConfig) -> Transport:
    """MockTransport for port "mock", a serial port otherwise."""
    if config.port == "mock":
        return MockTransport()

    from core.serial_transport import SerialConfig, SerialTransport
    return SerialTransport(SerialConfig(config.port, config.baud_rate))


def create_driver(
    config: DriverConfig,
    transport_factory: Callable[[DriverConfig], Transport] = create_transport,
) -> GcodeDriver:
    """Build a driver and, recursively, its configured sub-drivers."""
    sub_drivers = [create_driver(sub, transport_factory) for sub in config.sub_drivers]
    return GcodeDriver(transport_factory(config), config, sub_drivers)


def iter_chain(driver: GcodeDriver) -> Iterator[GcodeDriver]:
    """driver, then every G-code driver below it, depth first in configured order."""
    yield driver
    for sub in driver.sub_drivers:
        if isinstance(sub, GcodeDriver):
            yield from iter_chain(sub)


def connect_chain(driver: GcodeDriver) -> None:
    """
    Connect driver and all of its G-code sub-drivers.

    connect() on its own only handshakes with one controller. If any
    controller fails, the whole chain is closed and the error propagates.
    """
    try:
        for d in iter_chain(driver):
            d.connect()
    except Exception:
        driver.close()
        raise


def chain_connected(driver: GcodeDriver) -> bool:
    return all(d.is_connected for d in iter_chain(driver))
