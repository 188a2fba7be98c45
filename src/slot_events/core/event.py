"""Event records and helpers for creating, sorting and summarising them."""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from slot_events.core.ids import generate_id, timestamp_from_id


@dataclass(frozen=True)
class Event:
    """An immutable, typed message flowing through the dispatcher.

    Attributes:
        type: Tag naming the event's semantic kind (e.g. ``"spin:started"``).
        data: Producer-defined payload; never inspected by the dispatcher.
        source: Free-text origin tag used for diagnostics.
        id: Unique identifier, sortable by creation order.
        timestamp: Creation time in seconds since the epoch.
    """

    type: str
    data: Any = None
    source: str | None = None
    id: str = field(default_factory=generate_id)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation of the event."""
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "data": self.data,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Event:
        """Rebuild an event previously produced by ``to_dict``."""
        return cls(
            type=raw["type"],
            data=raw.get("data"),
            source=raw.get("source"),
            id=raw.get("id") or generate_id(),
            timestamp=float(raw.get("timestamp", time.time())),
        )


def create_event(event_type: str, data: Any = None, source: str | None = None) -> Event:
    """Create an event with a fresh id and the current timestamp."""
    return Event(type=event_type, data=data, source=source)


def create_event_with_timestamp(
    event_type: str,
    timestamp: float,
    data: Any = None,
    source: str | None = None,
) -> Event:
    """Create an event with an explicit timestamp (replays, imports)."""
    return Event(type=event_type, data=data, source=source, timestamp=timestamp)


def create_event_with_id(event_id: str, event_type: str, data: Any = None, source: str | None = None) -> Event:
    """Create an event with a caller-chosen id — useful in tests."""
    return Event(type=event_type, data=data, source=source, id=event_id)


def sort_events(events: Iterable[Event]) -> list[Event]:
    """Return *events* in creation order, i.e. sorted by id."""
    return sorted(events, key=lambda event: event.id)


def filter_events_by_time_range(events: Iterable[Event], start: float, end: float) -> list[Event]:
    """Keep events whose id-encoded creation time lies within ``[start, end]``.

    Events carrying a foreign (non-generated) id fall back to ``timestamp``.
    """
    selected = []
    for event in events:
        try:
            created = timestamp_from_id(event.id)
        except ValueError:
            created = event.timestamp
        if start <= created <= end:
            selected.append(event)
    return selected


def group_events_by_type(events: Iterable[Event]) -> dict[str, list[Event]]:
    """Group events by their ``type`` tag, preserving order within each group."""
    groups: dict[str, list[Event]] = defaultdict(list)
    for event in events:
        groups[event.type].append(event)
    return dict(groups)


def get_event_statistics(events: Iterable[Event]) -> dict[str, Any]:
    """Summarise a batch of events.

    Returns:
        A dict with ``total_events``, ``event_types``, ``type_count`` and
        ``time_range`` (earliest/latest id, or ``None`` for an empty batch).
    """
    ordered = sort_events(events)
    if not ordered:
        return {"total_events": 0, "event_types": [], "type_count": {}, "time_range": None}

    type_count: dict[str, int] = {}
    for event in ordered:
        type_count[event.type] = type_count.get(event.type, 0) + 1

    return {
        "total_events": len(ordered),
        "event_types": list(type_count),
        "type_count": type_count,
        "time_range": {"earliest": ordered[0].id, "latest": ordered[-1].id},
    }
