"""
Transport layer - byte sink out, timed line source in.

Provides:
- Transport protocol (interface)
- MockTransport: simulated G-code controller for testing
- (SerialTransport in separate file for production)
"""

from __future__ import annotations

import queue
import re
import threading
from typing import Callable, List, Optional, Protocol

from .errors import TransportIOError
from .types import Position


class Transport(Protocol):
    """Byte-stream connection to a motion controller."""

    def open(self) -> None: ...

    def close(self) -> None: ...

    @property
    def is_open(self) -> bool: ...

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes. Raises TransportIOError on failure."""
        ...

    def read_line(self, timeout: float) -> Optional[str]:
        """
        Read one line, waiting at most timeout seconds.

        Returns None on timeout. Raises TransportIOError on hard failure.
        """
        ...


Responder = Callable[[str], List[str]]


class MockTransport:
    """
    Mock transport for testing without hardware.

    Answers each written line through a responder (default: a simulated
    controller that tracks position and says "ok"). Replies can be delayed,
    and extra lines can be injected at any time with emit().
    """

    def __init__(self, responder: Optional[Responder] = None, response_delay: float = 0.0):
        self.sent_commands: List[str] = []
        self.position: Position = Position()
        self.responder: Responder = responder or self.simulate
        self.response_delay = response_delay
        self._incoming: queue.Queue[str] = queue.Queue()
        self._open = False
        self._read_error: Optional[Exception] = None

    @property
    def command_count(self) -> int:
        """Number of commands sent."""
        return len(self.sent_commands)

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True
        self._read_error = None

    def close(self) -> None:
        self._open = False

    def write_bytes(self, data: bytes) -> None:
        if not self._open:
            raise TransportIOError("Transport is not open")
        for line in data.decode().splitlines():
            line = line.strip()
            if not line:
                continue
            self.sent_commands.append(line)
            replies = self.responder(line)
            if replies:
                self.emit(*replies, delay=self.response_delay)

    def read_line(self, timeout: float) -> Optional[str]:
        if self._read_error is not None:
            raise self._read_error
        if not self._open:
            raise TransportIOError("Transport is not open")
        try:
            return self._incoming.get(timeout=timeout)
        except queue.Empty:
            return None

    def emit(self, *lines: str, delay: float = 0.0) -> None:
        """Make the controller say something, now or after delay seconds."""
        if delay <= 0:
            for line in lines:
                self._incoming.put(line)
            return
        timer = threading.Timer(delay, self.emit, args=lines)
        timer.daemon = True
        timer.start()

    def fail_reads(self, error: Optional[Exception] = None) -> None:
        """Make every following read raise (simulates an unplugged cable)."""
        self._read_error = error or TransportIOError("Device disconnected")

    def simulate(self, command: str) -> List[str]:
        """
        Default responder: a minimal G-code controller.

        Moves update the simulated position, M114 reports it.
        """
        code = command.split()[0] if command.split() else command
        if code.startswith("G0") or code.startswith("G1"):
            self._simulate_move(command)
        elif code == "M114":
            p = self.position
            return [f"X:{p.x:.2f} Y:{p.y:.2f} Z:{p.z:.2f} E:{p.c:.2f} Count X:0 Y:0 Z:0", "ok"]
        return ["ok"]

    def _simulate_move(self, gcode: str) -> None:
        """Parse a G0/G1 line and update simulated position."""
        values = {}
        for axis in ("X", "Y", "Z", "E"):
            match = re.search(rf"{axis}(-?[\d.]+)", gcode)
            if match:
                values[axis] = float(match.group(1))

        p = self.position
        self.position = Position(
            values.get("X", p.x),
            values.get("Y", p.y),
            values.get("Z", p.z),
            values.get("E", p.c),
        )

    def clear_history(self) -> None:
        """Clear sent commands history."""
        self.sent_commands.clear()


def silent(command: str) -> List[str]:
    """Responder for a controller that never answers."""
    return []
