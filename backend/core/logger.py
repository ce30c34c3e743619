"""
Console logging for the G-code driver.

One line per event, safe to call from the reader thread and the caller at
the same time.

Prefixes:
  ⚡ CRITICAL - Errors, failures
  ⚠️  WARN     - Warnings, unexpected behavior
  ✓  OK       - Success confirmations
  →  MOVE     - Movement commands
  ⟳  SYNC     - Connection handshake
  ⬡  SERIAL   - Line traffic, one entry per line sent or received
  ℹ  INFO     - Everything else

Set GCODE_DRIVER_QUIET_SERIAL=1 to hide SERIAL lines (busy controllers
report temperatures several times a second).
"""

import os
import threading
from enum import Enum
from typing import Optional
from datetime import datetime


class LogLevel(Enum):
    CRITICAL = "⚡ CRITICAL"
    WARN = "⚠️  WARN    "
    OK = "✓  OK      "
    MOVE = "→  MOVE    "
    SYNC = "⟳  SYNC    "
    SERIAL = "⬡  SERIAL  "
    INFO = "ℹ  INFO    "


_print_lock = threading.Lock()
_serial_enabled = os.environ.get("GCODE_DRIVER_QUIET_SERIAL", "") not in ("1", "true", "yes")


def set_serial_logging(enabled: bool) -> None:
    """Show or hide per-line traffic."""
    global _serial_enabled
    _serial_enabled = enabled


def format_line(level: LogLevel, message: str, data: Optional[dict] = None) -> str:
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] {level.value} | {message}"
    if data:
        details = ", ".join(f"{key}={value}" for key, value in data.items())
        line += f" | {details}"
    return line


def log(level: LogLevel, message: str, data: Optional[dict] = None):
    """Print one log line."""
    if level is LogLevel.SERIAL and not _serial_enabled:
        return
    line = format_line(level, message, data)
    with _print_lock:
        print(line, flush=True)


# Convenience functions
def log_critical(msg: str, data: Optional[dict] = None):
    log(LogLevel.CRITICAL, msg, data)

def log_warn(msg: str, data: Optional[dict] = None):
    log(LogLevel.WARN, msg, data)

def log_ok(msg: str, data: Optional[dict] = None):
    log(LogLevel.OK, msg, data)

def log_move(msg: str, data: Optional[dict] = None):
    log(LogLevel.MOVE, msg, data)

def log_sync(msg: str, data: Optional[dict] = None):
    log(LogLevel.SYNC, msg, data)

def log_serial(direction: str, line: str):
    """direction is '>>>' (sent) or '<<<' (received)"""
    log(LogLevel.SERIAL, f"{direction} {line!r}")

def log_info(msg: str, data: Optional[dict] = None):
    log(LogLevel.INFO, msg, data)
