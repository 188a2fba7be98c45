"""DebugEventHandler — counts every event and traces it at a chosen detail level."""

from __future__ import annotations

import logging
import time
import traceback
from collections import Counter
from typing import Literal, get_args

from slot_events.core.dispatcher import EventDispatcher
from slot_events.core.event import Event
from slot_events.core.lifecycle import HandlerLifecycle, wildcard_install

logger = logging.getLogger(__name__)

DebugLevel = Literal["none", "basic", "detailed", "verbose"]
DEBUG_LEVELS: tuple[str, ...] = get_args(DebugLevel)


class DebugEventHandler:
    """Statistics and tracing for the whole event stream.

    Subscribed on the wildcard as a handler object.  With level ``"none"``
    events are neither traced nor counted.

    Args:
        dispatcher: Dispatcher to subscribe on.
        log_level: One of ``"none"``, ``"basic"``, ``"detailed"``, ``"verbose"``.
    """

    def __init__(self, dispatcher: EventDispatcher, log_level: DebugLevel = "basic") -> None:
        """Initialise a stopped debug handler."""
        if log_level not in DEBUG_LEVELS:
            logger.warning("Unknown debug log level %r, using 'basic'", log_level)
            log_level = "basic"
        self.log_level: DebugLevel = log_level
        self._event_counts: Counter[str] = Counter()
        self._start_time = time.time()
        self._lifecycle = HandlerLifecycle(dispatcher, wildcard_install(self), name="DebugEventHandler")

    def start(self) -> None:
        self._lifecycle.start()

    def stop(self) -> None:
        self._lifecycle.stop()

    def destroy(self) -> None:
        self._lifecycle.destroy()

    def is_handler_active(self) -> bool:
        return self._lifecycle.is_active()

    def can_handle(self, event: Event) -> bool:
        return True

    def handle(self, event: Event) -> None:
        """Count *event* and trace it according to the current level."""
        if self.log_level == "none":
            return

        self._event_counts[event.type] += 1
        elapsed_ms = (event.timestamp - self._start_time) * 1000

        if self.log_level == "basic":
            logger.info("[%dms] %s", elapsed_ms, event.type)
        elif self.log_level == "detailed":
            logger.info("[%dms] %s source=%s data=%r", elapsed_ms, event.type, event.source, event.data)
        else:
            logger.info(
                "[%dms] %s\nEvent: %r\nStack trace:\n%s",
                elapsed_ms,
                event.type,
                event,
                "".join(traceback.format_stack(limit=8)),
            )

    def set_log_level(self, level: str) -> None:
        """Change the trace detail; unknown levels are reported and ignored."""
        if level not in DEBUG_LEVELS:
            logger.warning("Unknown debug log level %r; expected one of %s", level, ", ".join(DEBUG_LEVELS))
            return
        self.log_level = level  # type: ignore[assignment]
        logger.info("Debug log level set to: %s", level)

    def get_event_stats(self) -> dict[str, int]:
        """Return the number of events seen per type."""
        return dict(self._event_counts)

    def format_event_stats(self) -> list[str]:
        """Return the statistics as aligned text rows, most frequent first."""
        if not self._event_counts:
            return ["(no events recorded)"]
        width = max(len(event_type) for event_type in self._event_counts)
        return [f"{event_type:<{width}}  {count:>6d}" for event_type, count in self._event_counts.most_common()]

    def print_event_stats(self) -> None:
        """Log the statistics table."""
        logger.info("Event statistics:\n%s", "\n".join(self.format_event_stats()))

    def clear_stats(self) -> None:
        """Reset the counters and the elapsed-time origin."""
        self._event_counts.clear()
        self._start_time = time.time()
        logger.info("Debug statistics cleared")

    def get_most_frequent_events(self, limit: int = 5) -> list[tuple[str, int]]:
        """Return up to *limit* ``(event_type, count)`` pairs, most frequent first."""
        return self._event_counts.most_common(limit)
