"""Integration tests for the EventLogger."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from slot_events.core.dispatcher import EventDispatcher
from slot_events.core.event import create_event
from slot_events.core.exceptions import ConfigurationError, PersistenceError
from slot_events.core.game_events import error_occurred
from slot_events.core.logger import LOGGER_MESSAGE_TYPE, EventLogger, LogEntry, LoggerConfig, LogLevel
from slot_events.core.sinks import DirectorySink, LoggingOutput, MemorySink


class ListOutput:
    """``OutputChannel`` collecting lines in memory."""

    def __init__(self) -> None:
        self.lines: list[tuple[LogLevel, str]] = []

    def write(self, level: LogLevel, text: str) -> None:
        self.lines.append((level, text))


class FailingSink:
    """``SnapshotSink`` whose every operation fails."""

    def __init__(self) -> None:
        self.put_calls = 0

    def put(self, name: str, blob: str) -> None:
        self.put_calls += 1
        msg = "disk full"
        raise PersistenceError(msg)

    def get(self, name: str) -> str | None:
        msg = "unreadable"
        raise PersistenceError(msg)

    def remove(self, name: str) -> None:
        msg = "locked"
        raise PersistenceError(msg)


class FailingOutput:
    """``OutputChannel`` that always raises."""

    def write(self, level: LogLevel, text: str) -> None:
        msg = "terminal closed"
        raise OSError(msg)


def _make_logger(
    config: LoggerConfig | None = None,
    **kwargs: object,
) -> tuple[EventDispatcher, EventLogger, ListOutput]:
    dispatcher = EventDispatcher()
    output = ListOutput()
    event_logger = EventLogger(dispatcher, config, output=output, **kwargs)  # type: ignore[arg-type]
    event_logger.start()
    return dispatcher, event_logger, output


# ── Configuration ─────────────────────────────────────────────────────────


class TestLogLevel:
    """Tests for level coercion."""

    def test_names_and_numbers(self) -> None:
        """Levels accept members, integers, digit strings and names."""
        assert LogLevel.coerce(LogLevel.WARN) is LogLevel.WARN
        assert LogLevel.coerce(4) is LogLevel.DEBUG
        assert LogLevel.coerce("2") is LogLevel.WARN
        assert LogLevel.coerce("verbose") is LogLevel.VERBOSE

    def test_out_of_range_is_clamped(self, caplog: pytest.LogCaptureFixture) -> None:
        """Integers outside 0..5 are clamped with a warning."""
        assert LogLevel.coerce(9) is LogLevel.VERBOSE
        assert LogLevel.coerce(-3) is LogLevel.NONE
        assert "clamped" in caplog.text

    def test_wrong_kind_raises(self) -> None:
        """Unknown names and other types are configuration errors."""
        with pytest.raises(ConfigurationError):
            LogLevel.coerce("loud")
        with pytest.raises(ConfigurationError):
            LogLevel.coerce(2.5)


class TestLoggerConfig:
    """Tests for configuration validation."""

    def test_defaults(self) -> None:
        """Every field has a sensible default."""
        config = LoggerConfig()

        assert config.max_entries == 1000
        assert config.level is LogLevel.INFO
        assert config.enable_persistence is False

    def test_invalid_values_raise(self) -> None:
        """Values of the wrong kind fail at construction."""
        with pytest.raises(ConfigurationError):
            LoggerConfig(max_entries=0)
        with pytest.raises(ConfigurationError):
            LoggerConfig(include_types="spin:started")  # type: ignore[arg-type]

    def test_include_wins_over_exclude(self, caplog: pytest.LogCaptureFixture) -> None:
        """A type in both lists is kept, with a warning."""
        config = LoggerConfig(include_types=["a"], exclude_types=["a", "b"])

        assert config.accepts("a")
        assert not config.accepts("b")
        assert "include list wins" in caplog.text


# ── Capture ───────────────────────────────────────────────────────────────


class TestEventCapture:
    """Tests for turning events into log entries."""

    def test_captures_events_at_info(self) -> None:
        """At level INFO, three emitted events give three entries."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(level=LogLevel.INFO))
        for _ in range(3):
            dispatcher.emit(create_event("x"))

        logs = event_logger.get_logs()

        assert len(logs) == 3
        assert all(entry.event.type == "x" for entry in logs)
        assert all(entry.level is LogLevel.INFO for entry in logs)

    def test_level_gate_drops_events(self) -> None:
        """Below the event level nothing is captured."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(level=LogLevel.WARN))

        dispatcher.emit(create_event("x"))

        assert event_logger.get_logs() == []

    def test_error_events_pass_at_error_level(self) -> None:
        """``system:error`` events are captured at ERROR."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(level=LogLevel.ERROR))

        dispatcher.emit(error_occurred("boom", "test"))
        dispatcher.emit(create_event("x"))

        logs = event_logger.get_logs()
        assert [entry.event.type for entry in logs] == ["system:error"]
        assert logs[0].level is LogLevel.ERROR

    def test_include_filter(self) -> None:
        """Only included types are captured."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(include_types=["keep"]))

        dispatcher.emit(create_event("keep"))
        dispatcher.emit(create_event("drop"))

        assert [entry.event.type for entry in event_logger.get_logs()] == ["keep"]

    def test_exclude_filter(self) -> None:
        """Excluded types are never captured."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(exclude_types=["noise"]))

        dispatcher.emit(create_event("noise"))
        dispatcher.emit(create_event("signal"))

        assert [entry.event.type for entry in event_logger.get_logs()] == ["signal"]

    def test_buffer_is_bounded(self) -> None:
        """The oldest entries are dropped beyond ``max_entries``."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(max_entries=2))
        for name in ("a", "b", "c"):
            dispatcher.emit(create_event(name))

        assert [entry.event.type for entry in event_logger.get_logs()] == ["b", "c"]

    def test_entry_context(self) -> None:
        """Entries record source, payload size and event age."""
        dispatcher, event_logger, _ = _make_logger()

        dispatcher.emit(create_event("x", {"k": 1}, "Test"))

        context = event_logger.get_logs()[0].context
        assert context["source"] == "Test"
        assert context["data_size"] == len(json.dumps({"k": 1}))
        assert context["event_age"] >= 0

    def test_output_channel_receives_lines(self) -> None:
        """Each retained entry is echoed once."""
        dispatcher, _, output = _make_logger()

        dispatcher.emit(create_event("x", {"k": 1}))

        assert len(output.lines) == 1
        level, text = output.lines[0]
        assert level is LogLevel.INFO
        assert "[INFO] x" in text

    def test_circular_payload_is_still_logged(self) -> None:
        """A self-referencing payload is captured with an estimated size."""
        dispatcher, event_logger, _ = _make_logger()
        payload: dict[str, object] = {"k": 1}
        payload["self"] = payload

        dispatcher.emit(create_event("x", payload))

        logs = event_logger.get_logs()
        assert len(logs) == 1
        assert logs[0].event.data is payload
        assert logs[0].context["data_size"] > 0

    def test_failing_output_does_not_lose_entries(self, caplog: pytest.LogCaptureFixture) -> None:
        """An output channel error is logged; the entry is kept and ``log()`` returns."""
        dispatcher = EventDispatcher()
        event_logger = EventLogger(dispatcher, output=FailingOutput())
        event_logger.start()

        dispatcher.emit(create_event("x"))
        event_logger.log(LogLevel.WARN, "reel jammed")

        assert [entry.event.type for entry in event_logger.get_logs()] == ["x", LOGGER_MESSAGE_TYPE]
        assert "Output channel failed" in caplog.text

    def test_output_can_be_disabled(self) -> None:
        """With output disabled, nothing is echoed."""
        dispatcher, event_logger, output = _make_logger(LoggerConfig(enable_output=False))

        dispatcher.emit(create_event("x"))

        assert output.lines == []
        assert len(event_logger.get_logs()) == 1

    def test_stop_halts_capture(self) -> None:
        """A stopped logger keeps its buffer but records nothing new."""
        dispatcher, event_logger, _ = _make_logger()
        dispatcher.emit(create_event("x"))

        event_logger.stop()
        dispatcher.emit(create_event("y"))

        assert not event_logger.is_logging()
        assert [entry.event.type for entry in event_logger.get_logs()] == ["x"]
        assert dispatcher.get_wildcard_count() == 0

    def test_start_twice_subscribes_once(self) -> None:
        """Repeated ``start()`` keeps a single wildcard subscription."""
        dispatcher, event_logger, _ = _make_logger()

        event_logger.start()

        assert dispatcher.get_wildcard_count() == 1
        assert event_logger.is_handler_active()


class TestDirectLog:
    """Tests for ``log()``."""

    def test_log_records_message(self) -> None:
        """Direct entries carry the message and context."""
        _, event_logger, _ = _make_logger()

        event_logger.log(LogLevel.WARN, "reel jammed", {"reel": 2})

        entry = event_logger.get_logs()[0]
        assert entry.message == "reel jammed"
        assert entry.context == {"reel": 2}
        assert entry.event.type == LOGGER_MESSAGE_TYPE

    def test_log_respects_level(self) -> None:
        """Messages less severe than the threshold are dropped."""
        _, event_logger, _ = _make_logger(LoggerConfig(level=LogLevel.WARN))

        event_logger.log(LogLevel.DEBUG, "chatter")
        event_logger.log(LogLevel.ERROR, "failure")

        assert [entry.message for entry in event_logger.get_logs()] == ["failure"]

    def test_none_level_never_retained(self) -> None:
        """``NONE`` entries are never stored, even at VERBOSE."""
        _, event_logger, _ = _make_logger(LoggerConfig(level=LogLevel.VERBOSE))

        event_logger.log(LogLevel.NONE, "silent")

        assert event_logger.get_logs() == []

    def test_scalar_context_is_wrapped(self) -> None:
        """Non-dict context values are stored under ``value``."""
        _, event_logger, _ = _make_logger()

        event_logger.log("INFO", "scalar", 5)

        assert event_logger.get_logs()[0].context == {"value": 5}


# ── Queries and export ────────────────────────────────────────────────────


class TestQueries:
    """Tests for filtering and statistics over the buffer."""

    def test_queries(self) -> None:
        """Entries can be selected by level, type and time."""
        ticks = iter([10.0, 10.0, 20.0, 20.0, 30.0, 30.0])
        dispatcher, event_logger, _ = _make_logger(clock=lambda: next(ticks))

        dispatcher.emit(create_event("a"))
        dispatcher.emit(create_event("b"))
        event_logger.log(LogLevel.WARN, "warned")

        assert [e.event.type for e in event_logger.get_logs_by_event_type("a")] == ["a"]
        assert [e.message for e in event_logger.get_logs_by_level(LogLevel.WARN)] == ["warned"]
        assert [e.event.type for e in event_logger.get_logs_by_time_range(15.0, 25.0)] == ["b"]

    def test_event_stats(self) -> None:
        """Statistics count buffered entries per type."""
        dispatcher, event_logger, _ = _make_logger()
        for name in ("a", "b", "a"):
            dispatcher.emit(create_event(name))

        assert event_logger.get_event_stats() == {"a": 2, "b": 1}

    def test_export(self) -> None:
        """Exports are serialisable and round-trip to entries."""
        dispatcher, event_logger, _ = _make_logger()
        dispatcher.emit(create_event("a", {"n": 1}))

        exported = event_logger.export_logs()
        as_json = json.loads(event_logger.export_logs_json())

        assert exported == as_json
        assert exported[0]["level"] == "INFO"
        assert LogEntry.from_dict(exported[0]) == event_logger.get_logs()[0]


class TestControl:
    """Tests for ``clear_logs`` and ``update_config``."""

    def test_clear_logs_empties_buffer(self) -> None:
        """After ``clear_logs()`` the buffer is empty."""
        dispatcher, event_logger, _ = _make_logger()
        dispatcher.emit(create_event("a"))

        event_logger.clear_logs()

        assert event_logger.get_logs() == []

    def test_update_config_applies_to_new_events(self) -> None:
        """A new threshold applies from now on; old entries stay."""
        dispatcher, event_logger, _ = _make_logger()
        dispatcher.emit(create_event("a"))

        event_logger.update_config(level=LogLevel.ERROR)
        dispatcher.emit(create_event("b"))

        assert [entry.event.type for entry in event_logger.get_logs()] == ["a"]
        assert event_logger.config.level is LogLevel.ERROR

    def test_update_config_shrinks_buffer(self) -> None:
        """Reducing ``max_entries`` keeps the newest entries."""
        dispatcher, event_logger, _ = _make_logger()
        for name in ("a", "b", "c"):
            dispatcher.emit(create_event(name))

        event_logger.update_config(max_entries=2)

        assert [entry.event.type for entry in event_logger.get_logs()] == ["b", "c"]

    def test_update_config_rejects_unknown_keys(self) -> None:
        """Unknown settings raise ``ConfigurationError``."""
        _, event_logger, _ = _make_logger()

        with pytest.raises(ConfigurationError, match="colour"):
            event_logger.update_config(colour="red")


# ── Persistence ───────────────────────────────────────────────────────────


class TestPersistence:
    """Tests for best-effort snapshots."""

    def test_snapshot_written_and_reloaded(self) -> None:
        """A new logger can load what a previous one persisted."""
        sink = MemorySink()
        config = LoggerConfig(enable_persistence=True)
        dispatcher, _, _ = _make_logger(config, sink=sink)
        dispatcher.emit(create_event("a"))
        dispatcher.emit(create_event("b"))

        _, fresh, _ = _make_logger(config, sink=sink)
        loaded = fresh.load_persisted()

        assert loaded == 2
        assert [entry.event.type for entry in fresh.get_logs()] == ["a", "b"]

    def test_snapshot_is_limited(self) -> None:
        """Only the most recent ``snapshot_size`` entries are stored."""
        sink = MemorySink()
        dispatcher, _, _ = _make_logger(LoggerConfig(enable_persistence=True, snapshot_size=2), sink=sink)
        for name in ("a", "b", "c"):
            dispatcher.emit(create_event(name))

        stored = json.loads(sink.get("slot-game-event-logs") or "[]")

        assert [raw["event"]["type"] for raw in stored] == ["b", "c"]

    def test_clear_logs_removes_snapshot(self) -> None:
        """Clearing also drops the persisted snapshot."""
        sink = MemorySink()
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(enable_persistence=True), sink=sink)
        dispatcher.emit(create_event("a"))

        event_logger.clear_logs()

        assert sink.get("slot-game-event-logs") is None

    def test_failing_sink_is_reported_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        """A failing sink becomes a warning entry; capture continues."""
        sink = FailingSink()
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(enable_persistence=True), sink=sink)

        dispatcher.emit(create_event("a"))
        dispatcher.emit(create_event("b"))

        types = [entry.event.type for entry in event_logger.get_logs()]
        assert types == ["a", LOGGER_MESSAGE_TYPE, "b", LOGGER_MESSAGE_TYPE]
        assert sink.put_calls == 2
        assert "Failed to save log snapshot: disk full" in caplog.text

    def test_failing_load_returns_zero(self) -> None:
        """An unreadable snapshot loads nothing."""
        _, event_logger, _ = _make_logger(LoggerConfig(enable_persistence=True), sink=FailingSink())

        assert event_logger.load_persisted() == 0
        assert event_logger.get_logs_by_level(LogLevel.WARN)[0].message == "Failed to load log snapshot: unreadable"

    def test_no_snapshot_without_persistence(self) -> None:
        """Persistence is off by default."""
        sink = MemorySink()
        dispatcher, _, _ = _make_logger(sink=sink)

        dispatcher.emit(create_event("a"))

        assert sink.get("slot-game-event-logs") is None


class TestSinks:
    """Tests for the bundled sinks and output channel."""

    def test_directory_sink_round_trip(self, tmp_path: Path) -> None:
        """Blobs are stored as JSON files in the directory."""
        sink = DirectorySink(tmp_path / "snapshots")

        sink.put("logs", "[]")

        assert (tmp_path / "snapshots" / "logs.json").read_text(encoding="utf-8") == "[]"
        assert sink.get("logs") == "[]"
        sink.remove("logs")
        sink.remove("logs")
        assert sink.get("logs") is None

    def test_directory_sink_write_failure(self, tmp_path: Path) -> None:
        """Unwritable targets raise ``PersistenceError``."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        sink = DirectorySink(blocker)

        with pytest.raises(PersistenceError):
            sink.put("logs", "[]")

    def test_logging_output_maps_levels(self, caplog: pytest.LogCaptureFixture) -> None:
        """Lines go to the named logger at the matching level."""
        caplog.set_level(logging.DEBUG, logger="slot_events.events")
        output = LoggingOutput()

        output.write(LogLevel.ERROR, "bad thing")
        output.write(LogLevel.DEBUG, "detail")

        levels = {record.getMessage(): record.levelno for record in caplog.records}
        assert levels == {"bad thing": logging.ERROR, "detail": logging.DEBUG}


class TestLoggerScenarios:
    """End-to-end capture scenarios."""

    def test_three_events_in_emission_order(self) -> None:
        """At INFO with no filters, three ``x`` events are returned in order."""
        dispatcher, event_logger, _ = _make_logger()
        events = [create_event("x", {"n": n}) for n in range(3)]
        for event in events:
            dispatcher.emit(event)

        assert [entry.event for entry in event_logger.get_logs_by_event_type("x")] == events

    def test_include_wins_when_capturing(self) -> None:
        """With ``a`` both included and excluded, only ``a`` events are kept."""
        dispatcher, event_logger, _ = _make_logger(LoggerConfig(include_types=["a"], exclude_types=["a", "b"]))

        for name in ("a", "b", "c"):
            dispatcher.emit(create_event(name))

        assert [entry.event.type for entry in event_logger.get_logs()] == ["a"]
