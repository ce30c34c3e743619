"""Communication core - templates, line transport, command/response engine"""

from .config import DriverConfig, load_config
from .engine import CommandEngine, CommandResult
from .errors import (
    CommandTimeout,
    DriverError,
    HandshakeTimeout,
    TemplateError,
    TransportIOError,
)
from .reader import LineReader, ResponseChannel
from .template import substitute_variable
from .transport import MockTransport, Transport

__all__ = [
    'DriverConfig', 'load_config',
    'CommandEngine', 'CommandResult',
    'CommandTimeout', 'DriverError', 'HandshakeTimeout', 'TemplateError', 'TransportIOError',
    'LineReader', 'ResponseChannel',
    'substitute_variable',
    'MockTransport', 'Transport',
]
