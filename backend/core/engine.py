"""
Command/response engine.

Gives synchronous semantics on top of the asynchronous line stream:
send a line, then block until a line matching the confirmation pattern
arrives or the timeout runs out. One command is in flight at a time.

Provides:
- CommandEngine: send_command / send_gcode
- CommandResult: audit record of each exchange
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from re import Pattern
from typing import Deque, List, Optional, TYPE_CHECKING

from .errors import CommandTimeout, TransportIOError
from .logger import log_critical, log_serial
from .reader import READ_TIMEOUT, ResponseChannel
from .template import split_lines

if TYPE_CHECKING:
    from .transport import Transport


DEFAULT_TIMEOUT = 5.0
HISTORY_SIZE = 500
LINE_TERMINATOR = b"\n"


@dataclass
class CommandResult:
    """
    Result of one command exchange.

    Immutable record for audit trail.
    """
    command: str
    responses: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    success: bool = True

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"[{self.timestamp:%H:%M:%S}] {status} {self.command} → {self.responses}"


class CommandEngine:
    """
    Writes commands and waits for their confirmation.

    Lines already waiting in the channel when a command is sent are kept
    (prepended to the result) but never count as its confirmation.
    """

    def __init__(
        self,
        transport: "Transport",
        channel: ResponseChannel,
        confirm_regex: Pattern[str],
    ):
        self._transport = transport
        self._channel = channel
        self._confirm = confirm_regex
        self._lock = threading.Lock()  # one command in flight
        self._history: Deque[CommandResult] = deque(maxlen=HISTORY_SIZE)

    def send_command(self, command: Optional[str], timeout: Optional[float] = DEFAULT_TIMEOUT) -> List[str]:
        """
        Send one line and wait for its confirmation.

        command=None sends nothing and only waits, which drains whatever
        the controller says. timeout=None waits forever.

        Returns every line collected, in arrival order.

        Raises:
            TransportIOError: reader loop died or the write failed
            CommandTimeout: no confirming line within timeout
        """
        with self._lock:
            if self._channel.error is not None:
                raise TransportIOError(f"Reader stopped: {self._channel.error}")

            # Anything queued now belongs to an earlier exchange
            responses = self._channel.drain()

            if command is not None:
                log_serial(">>>", command)
                self._transport.write_bytes(command.encode() + LINE_TERMINATOR)

            deadline = None if timeout is None else time.monotonic() + timeout
            found = False
            while not found:
                wait = READ_TIMEOUT
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    wait = min(wait, remaining)
                line = self._channel.take(wait)
                if line is None:
                    if self._channel.error is not None:
                        if command is not None:
                            self._history.append(CommandResult(command, list(responses), success=False))
                        raise TransportIOError(
                            f"Reader stopped while waiting for {command!r}: {self._channel.error}"
                        )
                    continue
                responses.append(line)
                found = self._confirm.fullmatch(line) is not None

            if not found:
                if command is not None:
                    self._history.append(CommandResult(command, list(responses), success=False))
                    log_critical(f"Timeout waiting for response to {command!r} after {timeout}s")
                raise CommandTimeout(command, timeout, responses)

            # Lines that came in right behind the confirmation
            responses.extend(self._channel.drain())
            if command is not None:
                self._history.append(CommandResult(command, list(responses)))
            return responses

    def send_gcode(self, gcode: Optional[str], timeout: Optional[float] = DEFAULT_TIMEOUT) -> List[str]:
        """
        Send each line of a (multi-line) template as its own command.

        Stops at the first failing line; the rest are not sent.
        """
        responses: List[str] = []
        for command in split_lines(gcode):
            try:
                responses.extend(self.send_command(command, timeout))
            except CommandTimeout as e:
                e.responses[:0] = responses
                raise
        return responses

    def get_history(self, limit: int | None = None) -> List[CommandResult]:
        """
        Get execution history, oldest first.

        Args:
            limit: Optional max number of recent entries to return.
        """
        history = list(self._history)
        if limit is None:
            return history
        return history[-limit:]

    def clear_history(self) -> None:
        """Clear execution history."""
        self._history.clear()
