"""EventLogger — filtered, bounded capture of the event stream.

The logger is a handler: once started it listens on the wildcard and turns
every event that passes its level gate and type filter into a ``LogEntry``.
Entries live in a bounded buffer that can be queried, exported, optionally
echoed to an output channel and optionally snapshotted to a key-value sink.
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter, deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from typing import Any

from slot_events.core.dispatcher import EventDispatcher
from slot_events.core.event import Event
from slot_events.core.exceptions import ConfigurationError
from slot_events.core.lifecycle import HandlerLifecycle, wildcard_install
from slot_events.core.sinks import LoggingOutput, MemorySink, OutputChannel, SnapshotSink

logger = logging.getLogger(__name__)

LOGGER_MESSAGE_TYPE = "logger:message"
ERROR_EVENT_TYPE = "system:error"


class LogLevel(IntEnum):
    """Severity scale; a lower value is more severe."""

    NONE = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4
    VERBOSE = 5

    @classmethod
    def coerce(cls, value: Any) -> LogLevel:
        """Turn *value* into a ``LogLevel``.

        Integers outside ``0..5`` are clamped to the nearest level with a
        warning.  Names are matched case-insensitively.

        Raises:
            ConfigurationError: If *value* is neither a level, an integer
                                nor a known level name.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text.lstrip("-").isdigit():
                return cls.coerce(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                msg = f"Unknown log level name: {value!r}"
                raise ConfigurationError(msg) from None
        if isinstance(value, int) and not isinstance(value, bool):
            clamped = min(max(value, cls.NONE), cls.VERBOSE)
            if clamped != value:
                logger.warning("Log level %d out of range, clamped to %s", value, cls(clamped).name)
            return cls(clamped)
        msg = f"Log level must be a LogLevel, int or name, got {type(value).__name__}"
        raise ConfigurationError(msg)

    def to_logging_level(self) -> int:
        """Return the matching stdlib ``logging`` level."""
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    LogLevel.NONE: logging.NOTSET,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.VERBOSE: logging.DEBUG,
}


def _as_type_tuple(name: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        msg = f"'{name}' must be a list of event types, got {type(value).__name__}"
        raise ConfigurationError(msg)
    return tuple(value)


def _as_context(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    return {"value": value}


def _payload_size(data: Any) -> int:
    if data is None:
        return 0
    try:
        return len(json.dumps(data, default=str))
    except (TypeError, ValueError):
        # Circular or otherwise unserialisable payloads.
        return len(repr(data))


def _as_positive_int(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        msg = f"'{name}' must be a positive integer, got {value!r}"
        raise ConfigurationError(msg)
    return value


@dataclass(frozen=True)
class LoggerConfig:
    """Settings of an ``EventLogger``; every field has a default.

    Attributes:
        max_entries: Capacity of the entry buffer.
        level: Severity threshold; entries less severe are dropped.
        enable_output: Echo each retained entry to the output channel.
        enable_persistence: Snapshot recent entries to the sink.
        include_types: When non-empty, only these event types are kept.
        exclude_types: Dropped types; ignored while ``include_types`` is set.
        snapshot_size: Number of most recent entries in a snapshot.
        storage_key: Sink key the snapshot is stored under.
        event_level: Level assigned to captured events.
    """

    max_entries: int = 1000
    level: LogLevel = LogLevel.INFO
    enable_output: bool = True
    enable_persistence: bool = False
    include_types: tuple[str, ...] = ()
    exclude_types: tuple[str, ...] = ()
    snapshot_size: int = 100
    storage_key: str = "slot-game-event-logs"
    event_level: LogLevel = LogLevel.INFO

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_entries", _as_positive_int("max_entries", self.max_entries))
        object.__setattr__(self, "snapshot_size", _as_positive_int("snapshot_size", self.snapshot_size))
        object.__setattr__(self, "level", LogLevel.coerce(self.level))
        object.__setattr__(self, "event_level", LogLevel.coerce(self.event_level))
        object.__setattr__(self, "include_types", _as_type_tuple("include_types", self.include_types))
        object.__setattr__(self, "exclude_types", _as_type_tuple("exclude_types", self.exclude_types))

        conflicting = sorted(set(self.include_types) & set(self.exclude_types))
        if conflicting:
            logger.warning(
                "Event types %s are both included and excluded; the include list wins",
                ", ".join(conflicting),
            )

    def accepts(self, event_type: str) -> bool:
        """Return ``True`` if *event_type* passes the include/exclude filter."""
        if self.include_types:
            return event_type in self.include_types
        return event_type not in self.exclude_types


@dataclass(frozen=True)
class LogEntry:
    """One retained log line, derived from an event or a direct ``log()`` call."""

    timestamp: float
    level: LogLevel
    event: Event
    message: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation of the entry."""
        return {
            "timestamp": self.timestamp,
            "level": self.level.name,
            "event": self.event.to_dict(),
            "message": self.message,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> LogEntry:
        """Rebuild an entry previously produced by ``to_dict``."""
        return cls(
            timestamp=float(raw["timestamp"]),
            level=LogLevel[raw["level"]],
            event=Event.from_dict(raw["event"]),
            message=raw.get("message"),
            context=raw.get("context") or {},
        )


class EventLogger:
    """Capture the event stream into a bounded, queryable buffer.

    Args:
        dispatcher: Dispatcher whose wildcard the logger listens on.
        config: Initial settings; defaults apply when ``None``.
        output: Channel receiving one text line per retained entry.
        sink: Key-value store used for snapshots.
        clock: Time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        config: LoggerConfig | None = None,
        *,
        output: OutputChannel | None = None,
        sink: SnapshotSink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialise a stopped logger."""
        self._config = config or LoggerConfig()
        self._output = output or LoggingOutput()
        self._sink = sink or MemorySink()
        self._clock = clock
        self._logs: deque[LogEntry] = deque(maxlen=self._config.max_entries)
        self._lifecycle = HandlerLifecycle(dispatcher, wildcard_install(self._on_event), name="EventLogger")

    @property
    def config(self) -> LoggerConfig:
        """Return the active configuration."""
        return self._config

    # ── lifecycle ──────────────────────────────────────────────
    def start(self) -> None:
        """Start capturing events; no-op when already started."""
        if self._lifecycle.is_active():
            return
        self._lifecycle.start()
        logger.info("EventLogger started (level=%s)", self._config.level.name)

    def stop(self) -> None:
        """Stop capturing events; the buffer is kept."""
        if not self._lifecycle.is_active():
            return
        self._lifecycle.stop()
        logger.info("EventLogger stopped")

    def destroy(self) -> None:
        """Stop the logger."""
        self.stop()

    def is_handler_active(self) -> bool:
        """Return ``True`` while the logger is subscribed."""
        return self._lifecycle.is_active()

    def is_logging(self) -> bool:
        """Return ``True`` while the logger is capturing events."""
        return self._lifecycle.is_active()

    # ── capture ────────────────────────────────────────────────
    def _on_event(self, event: Event) -> None:
        level = LogLevel.ERROR if event.type == ERROR_EVENT_TYPE else self._config.event_level
        if not self._passes_level(level) or not self._config.accepts(event.type):
            return
        self._store(
            LogEntry(
                timestamp=self._clock(),
                level=level,
                event=event,
                context=self._event_context(event),
            )
        )

    def log(self, level: LogLevel | int | str, message: str, context: Any = None) -> None:
        """Record a logger-originated entry outside the event stream.

        Args:
            level: Severity of the entry, subject to the same level gate.
            message: Human-readable text.
            context: Optional extra data stored with the entry.
        """
        entry_level = LogLevel.coerce(level)
        if not self._passes_level(entry_level):
            return
        now = self._clock()
        event = Event(
            type=LOGGER_MESSAGE_TYPE,
            data={"message": message, "context": context},
            source="EventLogger",
            timestamp=now,
        )
        self._store(
            LogEntry(
                timestamp=now,
                level=entry_level,
                event=event,
                message=message,
                context=_as_context(context),
            )
        )

    def _passes_level(self, level: LogLevel) -> bool:
        return level != LogLevel.NONE and level <= self._config.level

    def _event_context(self, event: Event) -> dict[str, Any]:
        return {
            "source": event.source,
            "data_size": _payload_size(event.data),
            "event_age": max(self._clock() - event.timestamp, 0.0),
        }

    def _store(self, entry: LogEntry, *, persist: bool = True) -> None:
        self._logs.append(entry)
        if self._config.enable_output:
            try:
                self._output.write(entry.level, self._format(entry))
            except Exception:
                logger.exception("Output channel failed for %s", entry.event.type)
        if persist and self._config.enable_persistence:
            self._save_snapshot()

    def _format(self, entry: LogEntry) -> str:
        elapsed = entry.timestamp - self._logs[0].timestamp if self._logs else 0.0
        detail = entry.message if entry.message is not None else entry.event.data
        return f"[+{elapsed:.3f}s] [{entry.level.name}] {entry.event.type} {detail!s} {entry.context}"

    # ── persistence ────────────────────────────────────────────
    def _save_snapshot(self) -> None:
        recent = list(self._logs)[-self._config.snapshot_size :]
        try:
            blob = json.dumps([entry.to_dict() for entry in recent], default=str)
            self._sink.put(self._config.storage_key, blob)
        except Exception as exc:  # noqa: BLE001
            self._report_persistence_failure("save", exc)

    def _report_persistence_failure(self, action: str, exc: Exception) -> None:
        logger.warning("Failed to %s log snapshot: %s", action, exc)
        if not self._passes_level(LogLevel.WARN):
            return
        now = self._clock()
        message = f"Failed to {action} log snapshot: {exc}"
        event = Event(
            type=LOGGER_MESSAGE_TYPE,
            data={"message": message, "context": None},
            source="EventLogger",
            timestamp=now,
        )
        self._store(LogEntry(timestamp=now, level=LogLevel.WARN, event=event, message=message), persist=False)

    def load_persisted(self) -> int:
        """Prepend the persisted snapshot to the buffer.

        Returns:
            The number of entries loaded; ``0`` when nothing was stored or
            the snapshot could not be read.
        """
        try:
            blob = self._sink.get(self._config.storage_key)
            if not blob:
                return 0
            saved = [LogEntry.from_dict(raw) for raw in json.loads(blob)]
        except Exception as exc:  # noqa: BLE001
            self._report_persistence_failure("load", exc)
            return 0
        self._logs = deque([*saved, *self._logs], maxlen=self._config.max_entries)
        return len(saved)

    # ── queries ────────────────────────────────────────────────
    def get_logs(self) -> list[LogEntry]:
        """Return every buffered entry, oldest first."""
        return list(self._logs)

    def get_logs_by_level(self, level: LogLevel | int | str) -> list[LogEntry]:
        """Return entries recorded at exactly *level*."""
        wanted = LogLevel.coerce(level)
        return [entry for entry in self._logs if entry.level == wanted]

    def get_logs_by_event_type(self, event_type: str) -> list[LogEntry]:
        """Return entries whose event has type *event_type*."""
        return [entry for entry in self._logs if entry.event.type == event_type]

    def get_logs_by_time_range(self, start: float, end: float) -> list[LogEntry]:
        """Return entries recorded within ``[start, end]`` (seconds)."""
        return [entry for entry in self._logs if start <= entry.timestamp <= end]

    def get_event_stats(self) -> dict[str, int]:
        """Return the number of buffered entries per event type."""
        return dict(Counter(entry.event.type for entry in self._logs))

    def export_logs(self) -> list[dict[str, Any]]:
        """Return a serialisable snapshot of the whole buffer."""
        return [entry.to_dict() for entry in self._logs]

    def export_logs_json(self) -> str:
        """Return ``export_logs()`` encoded as indented JSON."""
        return json.dumps(self.export_logs(), indent=2, default=str)

    # ── control ────────────────────────────────────────────────
    def clear_logs(self) -> None:
        """Empty the buffer and drop the persisted snapshot, if any."""
        self._logs.clear()
        if self._config.enable_persistence:
            try:
                self._sink.remove(self._config.storage_key)
            except Exception as exc:  # noqa: BLE001
                self._report_persistence_failure("remove", exc)
        logger.info("Event logs cleared")

    def update_config(self, **changes: Any) -> None:
        """Merge *changes* into the configuration.

        The new settings apply to events captured from now on; entries
        already buffered are kept, except that a smaller ``max_entries``
        drops the oldest ones.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong kind.
        """
        known = {f.name for f in fields(LoggerConfig)}
        unknown = sorted(set(changes) - known)
        if unknown:
            msg = f"Unknown logger setting(s): {', '.join(unknown)}"
            raise ConfigurationError(msg)

        updated = replace(self._config, **changes)
        if updated.max_entries != self._config.max_entries:
            self._logs = deque(self._logs, maxlen=updated.max_entries)
        self._config = updated
        logger.info("Logger configuration updated: %s", changes)
