"""DebugConsole — text commands mapped onto manager and logger operations."""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING

from slot_events.core.event import Event, create_event
from slot_events.core.logger import EventLogger, LogLevel

if TYPE_CHECKING:
    from slot_events.core.dispatcher import Subscription
    from slot_events.core.manager import EventManager

logger = logging.getLogger(__name__)

HELP_LINES: tuple[str, ...] = (
    "Commands:",
    "stats - Show event statistics",
    "clear - Clear logs",
    "level <0-5> - Set log level",
    "emit <event> - Emit test event",
    "export - Export logs",
    "help - Show this help",
)

_PREVIEW_LENGTH = 50


class DebugConsole:
    """Runtime introspection surface over an ``EventManager``.

    Every command returns its output as a list of lines and appends a
    short status line to a bounded display buffer.  While visible, the
    console also mirrors each emitted event into that buffer.

    Args:
        manager: Manager used to emit test events and monitor the stream.
        event_logger: Logger queried and controlled by the commands.
        max_display_lines: Capacity of the display buffer.
    """

    def __init__(self, manager: EventManager, event_logger: EventLogger, max_display_lines: int = 10) -> None:
        """Initialise a hidden console."""
        self._manager = manager
        self._event_logger = event_logger
        self._recent: deque[str] = deque(maxlen=max_display_lines)
        self._monitor: Subscription | None = None
        self._commands: dict[str, Callable[[list[str]], list[str]]] = {
            "stats": self._show_event_stats,
            "clear": self._clear_logs,
            "level": self._set_log_level,
            "emit": self._emit_test_event,
            "export": self._export_logs,
            "help": self._show_help,
        }

    # ── visibility ────────────────────────────────────────────
    @property
    def is_visible(self) -> bool:
        return self._monitor is not None

    def show(self) -> None:
        """Start mirroring events into the display buffer."""
        if self._monitor is not None:
            return
        self._monitor = self._manager.subscribe_to_all(self._on_event)

    def hide(self) -> None:
        """Stop mirroring events."""
        if self._monitor is None:
            return
        self._monitor.unsubscribe()
        self._monitor = None

    def toggle(self) -> None:
        if self.is_visible:
            self.hide()
        else:
            self.show()

    def destroy(self) -> None:
        self.hide()

    @property
    def recent_lines(self) -> list[str]:
        """Return the display buffer, oldest first."""
        return list(self._recent)

    # ── commands ──────────────────────────────────────────────
    def execute_command(self, command: str) -> list[str]:
        """Run one text command.

        Args:
            command: E.g. ``"stats"``, ``"level 4"`` or ``"emit spin"``.

        Returns:
            The command's output lines.
        """
        parts = command.strip().split()
        if not parts:
            return []
        name, args = parts[0].lower(), parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return [self._add_line(f"Unknown command: {name}")]
        return handler(args)

    def _show_event_stats(self, args: list[str]) -> list[str]:
        stats = self._event_logger.get_event_stats()
        if not stats:
            lines = ["(no events logged)"]
        else:
            width = max(len(event_type) for event_type in stats)
            lines = [
                f"{event_type:<{width}}  {count:>6d}"
                for event_type, count in sorted(stats.items(), key=lambda item: (-item[1], item[0]))
            ]
        self._add_line("Event stats listed")
        return lines

    def _clear_logs(self, args: list[str]) -> list[str]:
        self._recent.clear()
        self._event_logger.clear_logs()
        return [self._add_line("Logs cleared")]

    def _set_log_level(self, args: list[str]) -> list[str]:
        try:
            value = int(args[0])
        except (IndexError, ValueError):
            value = -1
        if not LogLevel.NONE <= value <= LogLevel.VERBOSE:
            return [self._add_line("Invalid log level. Use 0-5")]
        level = LogLevel(value)
        self._event_logger.update_config(level=level)
        return [self._add_line(f"Log level set to {level.name}")]

    def _emit_test_event(self, args: list[str]) -> list[str]:
        if not args:
            return [self._add_line("Specify event type to emit")]
        self._manager.emit(
            create_event(f"test:{args[0]}", {"test": True, "command": "debug-console"}, "DebugConsole"),
        )
        return [self._add_line(f"Emitted test event: {args[0]}")]

    def _export_logs(self, args: list[str]) -> list[str]:
        exported = self._event_logger.export_logs_json()
        self._add_line("Logs exported")
        return [exported]

    def _show_help(self, args: list[str]) -> list[str]:
        self._add_line("Help displayed")
        return list(HELP_LINES)

    # ── display buffer ────────────────────────────────────────
    def _on_event(self, event: Event) -> None:
        self._add_line(f"[{event.type}] {_preview(event.data)}".rstrip())

    def _add_line(self, message: str) -> str:
        self._recent.append(f"{time.strftime('%H:%M:%S')} {message}")
        logger.debug("Console: %s", message)
        return message


def _preview(data: object) -> str:
    if data is None:
        return ""
    try:
        text = json.dumps(data)
    except (TypeError, ValueError):
        return "[Complex Object]"
    return text if len(text) <= _PREVIEW_LENGTH else text[:_PREVIEW_LENGTH] + "..."
