"""
Response side of the line protocol.

ResponseChannel: ordered, thread-safe queue of received lines.
LineReader: background loop moving lines from the transport into the channel.
"""

from __future__ import annotations

import queue
import threading
from typing import List, Optional, TYPE_CHECKING

from .errors import TransportIOError
from .logger import log_critical, log_serial, log_warn

if TYPE_CHECKING:
    from .transport import Transport


# Per-read timeout. Bounds how long stop() waits for the loop to notice.
READ_TIMEOUT = 0.2


class ResponseChannel:
    """
    Unbounded FIFO of response lines.

    One producer (the reader loop), one consumer at a time (the engine).
    Also remembers the error that killed the reader, if any.
    """

    def __init__(self):
        self._lines: queue.Queue[str] = queue.Queue()
        self.error: Optional[TransportIOError] = None

    def put(self, line: str) -> None:
        self._lines.put(line)

    def take(self, timeout: Optional[float]) -> Optional[str]:
        """Next line, waiting up to timeout seconds (None waits forever)."""
        try:
            return self._lines.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[str]:
        """Every line currently queued, without waiting."""
        lines = []
        while True:
            try:
                lines.append(self._lines.get_nowait())
            except queue.Empty:
                return lines

    def reset(self) -> None:
        """Forget queued lines and any reader error."""
        self.drain()
        self.error = None

    def __len__(self) -> int:
        return self._lines.qsize()


class LineReader:
    """
    Reads lines from the transport until stopped.

    A read timeout is not an error, it only gives the loop a chance to see
    the stop signal. A hard I/O failure ends the loop for good.
    """

    def __init__(self, transport: "Transport", channel: ResponseChannel,
                 read_timeout: float = READ_TIMEOUT):
        self._transport = transport
        self._channel = channel
        self._read_timeout = read_timeout
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="gcode-line-reader", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Signal the loop and wait for it to exit."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                line = self._transport.read_line(self._read_timeout)
            except TransportIOError as e:
                log_critical(f"Read error, reader stopped: {e}")
                self._channel.error = e
                return
            except OSError as e:
                log_critical(f"Read error, reader stopped: {e}")
                self._channel.error = TransportIOError(str(e))
                return
            if line is None:
                continue
            line = line.strip()
            if not line:
                continue
            log_serial("<<<", line)
            self._channel.put(line)
        if len(self._channel):
            log_warn(f"Reader stopped with {len(self._channel)} unread line(s)")
