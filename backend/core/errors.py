"""
Driver error types.

Every error raised by the communication core derives from DriverError and
also from the closest builtin, so callers can catch either.
"""


class DriverError(Exception):
    """Base class for all driver errors."""
    pass


class TransportIOError(DriverError, OSError):
    """Hard read/write failure on the byte-stream transport."""
    pass


class TemplateError(DriverError, ValueError):
    """Malformed command template or format specifier."""
    pass


class CommandTimeout(DriverError, TimeoutError):
    """
    No confirming line arrived within a command's timeout.

    Keeps every line collected while waiting so callers can still
    inspect what the controller did say.
    """

    def __init__(self, command, timeout, responses=None):
        self.command = command
        self.timeout = timeout
        self.responses = list(responses or [])
        super().__init__(f"Timeout waiting for response to {command!r} after {timeout}s")


class HandshakeTimeout(DriverError, ConnectionError):
    """Controller never produced a recognizable sync response."""
    pass
