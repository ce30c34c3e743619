"""
Unit tests for the command/response engine, response channel and line reader.
"""

import re
import threading
import time

import pytest

from core.engine import CommandEngine, CommandResult
from core.errors import CommandTimeout, TransportIOError
from core.reader import LineReader, ResponseChannel
from core.transport import MockTransport, silent


OK = re.compile("^ok.*")


@pytest.fixture
def channel():
    return ResponseChannel()


@pytest.fixture
def link(transport, channel):
    """Running reader + engine on an open mock transport."""
    reader = LineReader(transport, channel, read_timeout=0.05)
    reader.start()
    engine = CommandEngine(transport, channel, OK)
    yield engine, transport, channel, reader
    reader.stop()


class TestResponseChannel:
    """Tests for ResponseChannel."""

    def test_preserves_order(self, channel):
        for line in ("a", "b", "c"):
            channel.put(line)
        assert [channel.take(0.01) for _ in range(3)] == ["a", "b", "c"]

    def test_take_times_out(self, channel):
        start = time.monotonic()
        assert channel.take(0.05) is None
        assert time.monotonic() - start >= 0.04

    def test_drain_takes_everything(self, channel):
        channel.put("x")
        channel.put("y")
        assert channel.drain() == ["x", "y"]
        assert channel.drain() == []

    def test_reset_clears_error(self, channel):
        channel.put("x")
        channel.error = TransportIOError("gone")
        channel.reset()
        assert len(channel) == 0
        assert channel.error is None


class TestLineReader:
    """Tests for the reader loop."""

    def test_publishes_trimmed_lines(self, transport, channel, wait_until):
        reader = LineReader(transport, channel, read_timeout=0.05)
        reader.start()
        try:
            transport.emit("  ok T:20.0  ", "", "echo:busy")
            assert wait_until(lambda: len(channel) == 2)
            assert channel.drain() == ["ok T:20.0", "echo:busy"]
        finally:
            reader.stop()

    def test_stop_joins_promptly(self, transport, channel):
        reader = LineReader(transport, channel, read_timeout=0.05)
        reader.start()
        start = time.monotonic()
        reader.stop()
        assert not reader.is_running
        assert time.monotonic() - start < 0.5

    def test_read_error_ends_loop(self, transport, channel, wait_until):
        reader = LineReader(transport, channel, read_timeout=0.05)
        reader.start()
        transport.fail_reads()
        assert wait_until(lambda: not reader.is_running)
        assert isinstance(channel.error, TransportIOError)
        reader.stop()


class TestSendCommand:
    """Tests for CommandEngine.send_command."""

    def test_returns_on_confirmation(self, link):
        """ok 50ms after the write confirms the command."""
        engine, transport, _, _ = link
        transport.response_delay = 0.05

        responses = engine.send_command("G28", 1.0)

        assert "ok" in responses
        assert transport.sent_commands == ["G28"]

    def test_collects_lines_before_ok(self, link):
        engine, _, _, _ = link
        responses = engine.send_command("M114", 1.0)
        assert responses[-1] == "ok"
        assert responses[0].startswith("X:")

    def test_times_out_on_schedule(self, link):
        """No confirmation: fails after about the timeout, not before."""
        engine, transport, _, _ = link
        transport.responder = silent

        start = time.monotonic()
        with pytest.raises(CommandTimeout) as exc_info:
            engine.send_command("G28", 0.2)
        elapsed = time.monotonic() - start

        assert 0.19 <= elapsed < 0.45
        assert exc_info.value.command == "G28"
        assert "G28" in str(exc_info.value)

    def test_timeout_is_a_timeout_error(self, link):
        engine, transport, _, _ = link
        transport.responder = silent
        with pytest.raises(TimeoutError):
            engine.send_command("M400", 0.05)

    def test_non_confirming_lines_kept_on_timeout(self, link):
        engine, transport, _, _ = link
        transport.responder = lambda command: ["echo:busy processing"]
        with pytest.raises(CommandTimeout) as exc_info:
            engine.send_command("G28", 0.2)
        assert exc_info.value.responses == ["echo:busy processing"]

    def test_stray_ok_is_not_confirmation(self, link, wait_until):
        """An ok queued before the write belongs to an earlier exchange."""
        engine, transport, channel, _ = link
        transport.responder = silent
        transport.emit("ok")
        assert wait_until(lambda: len(channel) == 1)

        with pytest.raises(CommandTimeout) as exc_info:
            engine.send_command("G28", 0.2)

        assert exc_info.value.responses == ["ok"]

    def test_stray_lines_prepended(self, link, wait_until):
        engine, transport, channel, _ = link
        transport.emit("echo:stray")
        assert wait_until(lambda: len(channel) == 1)

        responses = engine.send_command("M400", 1.0)

        assert responses == ["echo:stray", "ok"]

    def test_trailing_lines_not_lost(self, link):
        """Lines right behind the ok end up in this result or the next one."""
        engine, transport, _, _ = link
        transport.responder = lambda command: ["ok", "echo:after"]
        first = engine.send_command("M400", 1.0)
        transport.responder = lambda command: ["ok"]
        second = engine.send_command("M400", 1.0)

        assert first[0] == "ok"
        assert (first + second).count("echo:after") == 1
        assert second[-1] == "ok"

    def test_none_command_only_listens(self, link):
        engine, transport, _, _ = link
        transport.emit("ok", delay=0.05)
        assert engine.send_command(None, 1.0) == ["ok"]
        assert transport.sent_commands == []
        assert engine.get_history() == []

    def test_infinite_timeout(self, link):
        engine, transport, _, _ = link
        transport.response_delay = 0.3
        assert engine.send_command("G28", None)[-1] == "ok"

    def test_reader_failure_surfaces(self, link, wait_until):
        """A dead reader fails the next command instead of timing out."""
        engine, transport, channel, _ = link
        transport.fail_reads()
        assert wait_until(lambda: channel.error is not None)

        with pytest.raises(TransportIOError):
            engine.send_command("M400", 1.0)

    def test_reader_death_ends_infinite_wait(self, link):
        """A reader dying mid-wait fails the command instead of blocking forever."""
        engine, transport, _, _ = link
        transport.responder = silent
        outcome = []

        def home():
            try:
                engine.send_command("G28", None)
            except TransportIOError as e:
                outcome.append(e)

        worker = threading.Thread(target=home, daemon=True)
        worker.start()
        time.sleep(0.1)
        transport.fail_reads()
        worker.join(timeout=2.0)

        assert not worker.is_alive()
        assert len(outcome) == 1
        assert "G28" in str(outcome[0])
        assert engine.get_history()[-1].success is False

    def test_write_failure_surfaces(self, link):
        engine, transport, _, _ = link
        transport.close()
        with pytest.raises(TransportIOError):
            engine.send_command("M400", 1.0)

    def test_history_keeps_its_own_copy(self, link):
        engine, _, _, _ = link
        responses = engine.send_command("M400", 1.0)
        responses.append("tampered")
        assert engine.get_history()[-1].responses == ["ok"]

    def test_history_records_result(self, link):
        engine, transport, _, _ = link
        engine.send_command("M400", 1.0)
        transport.responder = silent
        with pytest.raises(CommandTimeout):
            engine.send_command("G28", 0.05)

        history = engine.get_history()
        assert [r.command for r in history] == ["M400", "G28"]
        assert [r.success for r in history] == [True, False]
        assert all(isinstance(r, CommandResult) for r in history)
        assert engine.get_history(limit=1)[0].command == "G28"


class TestSendGcode:
    """Tests for CommandEngine.send_gcode."""

    def test_sends_each_line_in_order(self, link):
        engine, transport, _, _ = link
        responses = engine.send_gcode("G21\n G90 \nM82", 1.0)
        assert transport.sent_commands == ["G21", "G90", "M82"]
        assert responses == ["ok", "ok", "ok"]

    def test_empty_template_is_noop(self, link):
        engine, transport, _, _ = link
        assert engine.send_gcode(None, 1.0) == []
        assert engine.send_gcode("", 1.0) == []
        assert transport.sent_commands == []

    def test_fail_fast(self, link):
        """A timed out line stops the rest of the template."""
        engine, transport, _, _ = link
        transport.responder = lambda command: [] if command == "G90" else ["ok"]

        with pytest.raises(CommandTimeout) as exc_info:
            engine.send_gcode("G21\nG90\nM82", 0.1)

        assert transport.sent_commands == ["G21", "G90"]
        assert exc_info.value.command == "G90"
        assert exc_info.value.responses == ["ok"]
