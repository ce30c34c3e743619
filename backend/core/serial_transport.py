"""
Serial Transport - Single responsibility: serial communication

Writes are serialized with a lock. Reads happen on the reader thread only;
a line cut off by a read timeout is kept and completed on the next read.
"""

import serial
import serial.tools.list_ports
import threading
from typing import Optional
from dataclasses import dataclass

from .config import BAUD_RATE
from .errors import TransportIOError
from .logger import log_ok


@dataclass
class SerialConfig:
    port: str
    baud_rate: int = BAUD_RATE
    write_timeout: float = 2.0


class SerialTransport:
    """
    Line transport over a serial port (pyserial).

    Thread-safe writes: protected by a lock so a write never interleaves
    with another.
    """

    def __init__(self, config: SerialConfig):
        self.config = config
        self._serial: Optional[serial.Serial] = None
        self._lock = threading.Lock()
        self._partial = b""

    @staticmethod
    def list_ports() -> list[str]:
        """List available serial ports"""
        ports = serial.tools.list_ports.comports()
        return [port.device for port in ports]

    def open(self) -> None:
        """Open the serial port"""
        try:
            self._serial = serial.Serial(
                self.config.port,
                self.config.baud_rate,
                timeout=0,
                write_timeout=self.config.write_timeout,
            )
        except (serial.SerialException, OSError) as e:
            self._serial = None
            raise TransportIOError(f"Failed to open {self.config.port}: {e}") from e
        self._partial = b""
        log_ok(f"Opened {self.config.port} @ {self.config.baud_rate}")

    def close(self) -> None:
        """Close the serial port"""
        if self._serial:
            self._serial.close()
            self._serial = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def write_bytes(self, data: bytes) -> None:
        if not self._serial:
            raise TransportIOError("Not connected")
        with self._lock:
            try:
                self._serial.write(data)
                self._serial.flush()
            except (serial.SerialException, OSError) as e:
                raise TransportIOError(f"Write failed on {self.config.port}: {e}") from e

    def read_line(self, timeout: float) -> Optional[str]:
        """Read one line, or None if no full line arrived within timeout."""
        if not self._serial:
            raise TransportIOError("Not connected")
        try:
            if self._serial.timeout != timeout:
                self._serial.timeout = timeout
            chunk = self._serial.readline()
        except (serial.SerialException, OSError) as e:
            raise TransportIOError(f"Read failed on {self.config.port}: {e}") from e

        data = self._partial + chunk
        if not data.endswith(b"\n"):
            self._partial = data
            return None
        self._partial = b""
        return data.decode(errors="replace").strip()
