"""Pytest configuration and shared fixtures."""

import sys
import time
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DriverConfig
from core.transport import MockTransport


class RecordingDriver:
    """
    Stand-in secondary driver.

    Appends (name, operation, args) to a shared call log. Raises when the
    operation is listed in fail_on.
    """

    def __init__(self, name, calls, fail_on=()):
        self.name = name
        self.calls = calls
        self.fail_on = set(fail_on)

    def _record(self, operation, *args):
        self.calls.append((self.name, operation, args))
        if operation in self.fail_on:
            raise RuntimeError(f"{self.name} failed {operation}")

    def connect(self):
        self._record("connect")

    def disconnect(self):
        self._record("disconnect")

    def close(self):
        self._record("close")

    def set_enabled(self, enabled):
        self._record("set_enabled", enabled)

    def home(self):
        self._record("home")

    def get_location(self, hm):
        self._record("get_location", hm)

    def move_to(self, hm, location, speed):
        self._record("move_to", hm, location, speed)

    def pick(self, nozzle):
        self._record("pick", nozzle)

    def place(self, nozzle):
        self._record("place", nozzle)

    def actuate(self, actuator, value):
        self._record("actuate", actuator, value)


def _wait_until(predicate, timeout: float = 1.0) -> bool:
    """Poll predicate until true or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def fast_config() -> DriverConfig:
    """Default templates with short timeouts."""
    return DriverConfig(command_timeout=0.5, connect_timeout=0.5, sync_poll_timeout=0.05)


@pytest.fixture
def transport() -> MockTransport:
    """Open simulated controller."""
    t = MockTransport()
    t.open()
    return t


@pytest.fixture
def call_log() -> list:
    return []


@pytest.fixture
def wait_until():
    """Poll a predicate until true or timeout (seconds)."""
    return _wait_until


@pytest.fixture
def recording_driver(call_log):
    """Factory for secondary drivers that share one call log."""
    def make(name, fail_on=()):
        return RecordingDriver(name, call_log, fail_on)
    return make
