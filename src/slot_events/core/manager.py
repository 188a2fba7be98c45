"""EventManager — composition root of the event system.

The manager owns one dispatcher, a name-keyed registry of handlers, an
optional ``EventLogger`` and an optional ``DebugConsole``.  It wires the
default handler set on ``initialize()`` and tears everything down on
``destroy()``, after which it can be initialised again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from slot_events.core.console import DebugConsole
from slot_events.core.dispatcher import DEFAULT_HISTORY_SIZE, EventDispatcher, Subscription
from slot_events.core.event import Event
from slot_events.core.exceptions import ConfigurationError
from slot_events.core.lifecycle import Handler
from slot_events.core.logger import EventLogger, LoggerConfig, LogLevel
from slot_events.core.registry import HandlerRegistry
from slot_events.core.sinks import OutputChannel, SnapshotSink
from slot_events.handlers.animation import AnimationEventHandler, Scheduler
from slot_events.handlers.debug import DEBUG_LEVELS, DebugEventHandler, DebugLevel
from slot_events.handlers.ui import UIEventHandler, UIView

logger = logging.getLogger(__name__)

UI_HANDLER = "ui"
ANIMATION_HANDLER = "animation"
DEBUG_HANDLER = "debug"


@dataclass
class ManagerOptions:
    """Switches read once by ``EventManager.initialize()``."""

    enable_debug_logging: bool = True
    debug_log_level: DebugLevel = "basic"
    enable_advanced_logging: bool = True
    enable_debug_console: bool = True
    log_level: LogLevel = LogLevel.INFO
    enable_output: bool = True
    enable_persistence: bool = True
    max_log_entries: int = 1000


@dataclass
class HostContext:
    """Host collaborators handed to the default handlers."""

    ui_view: UIView | None = None
    scheduler: Scheduler | None = None


class EventManager:
    """Supervise the dispatcher, the handlers, the logger and the console.

    Args:
        dispatcher: Dispatcher to manage; a new one is created if omitted.
        sink: Snapshot sink handed to the event logger.
        output: Output channel handed to the event logger.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher | None = None,
        *,
        sink: SnapshotSink | None = None,
        output: OutputChannel | None = None,
    ) -> None:
        """Initialise an uninitialised manager."""
        self._dispatcher = dispatcher or EventDispatcher()
        self._sink = sink
        self._output = output
        self._handlers = HandlerRegistry()
        self._event_logger: EventLogger | None = None
        self._debug_console: DebugConsole | None = None
        self._initialized = False

    # ── lifecycle ──────────────────────────────────────────────
    def initialize(self, context: HostContext | None = None, options: ManagerOptions | None = None) -> None:
        """Build and start the logger, the console and the default handlers.

        Only the first call after construction (or after ``destroy()``)
        does anything; later calls log a warning and return.

        Args:
            context: Host collaborators for the default handlers.
            options: Feature switches; defaults apply when ``None``.
        """
        if self._initialized:
            logger.warning("EventManager already initialized")
            return

        context = context or HostContext()
        options = options or ManagerOptions()

        self._dispatcher.set_logging(options.enable_debug_logging)

        if options.enable_advanced_logging:
            self._event_logger = EventLogger(
                self._dispatcher,
                LoggerConfig(
                    max_entries=options.max_log_entries,
                    level=options.log_level,
                    enable_output=options.enable_output,
                    enable_persistence=options.enable_persistence,
                ),
                output=self._output,
                sink=self._sink,
            )
            self._event_logger.start()

        if options.enable_debug_console and self._event_logger is not None:
            self._debug_console = DebugConsole(self, self._event_logger)

        self._create_handlers(context, options.debug_log_level)
        self._start_all_handlers()

        self._initialized = True
        logger.info("EventManager initialized with handlers: %s", ", ".join(self._handlers.names()))

    def _create_handlers(self, context: HostContext, debug_log_level: DebugLevel) -> None:
        # Handlers added under a default name before initialize() take precedence.
        defaults: dict[str, Any] = {
            UI_HANDLER: lambda: UIEventHandler(self._dispatcher, context.ui_view),
            ANIMATION_HANDLER: lambda: AnimationEventHandler(self._dispatcher, context.scheduler),
            DEBUG_HANDLER: lambda: DebugEventHandler(self._dispatcher, debug_log_level),
        }
        for name, factory in defaults.items():
            if name not in self._handlers:
                self._handlers.register(name, factory())

    def _start_all_handlers(self) -> None:
        for name, handler in self._handlers:
            handler.start()
            logger.info("Started handler: %s", name)

    def stop_all_handlers(self) -> None:
        """Stop every registered handler; they stay registered."""
        for name, handler in self._handlers:
            handler.stop()
            logger.info("Stopped handler: %s", name)

    def destroy(self) -> None:
        """Tear everything down and return to the uninitialised state."""
        for name, handler in self._handlers:
            handler.destroy()
            logger.info("Destroyed handler: %s", name)
        self._handlers.clear()

        if self._event_logger is not None:
            self._event_logger.stop()
            self._event_logger = None
        if self._debug_console is not None:
            self._debug_console.destroy()
            self._debug_console = None

        self._dispatcher.clear()
        self._dispatcher.clear_history()
        self._dispatcher.set_logging(False)
        self._initialized = False
        logger.info("EventManager destroyed")

    def is_ready(self) -> bool:
        """Return ``True`` between ``initialize()`` and ``destroy()``."""
        return self._initialized

    # ── handlers ───────────────────────────────────────────────
    def add_handler(self, name: str, handler: Handler) -> None:
        """Register *handler* under *name*, replacing any previous one.

        A replaced handler is stopped first.  The new handler is started
        right away when the manager is already initialised.
        """
        previous = self._handlers.get(name)
        if previous is not None:
            logger.warning("Handler '%s' already exists, replacing", name)
            previous.stop()

        self._handlers.register(name, handler)
        if self._initialized:
            handler.start()
        logger.info("Added handler: %s", name)

    def remove_handler(self, name: str) -> Handler | None:
        """Stop and forget the handler registered under *name*.

        Returns:
            The removed handler, or ``None`` if no handler had that name.
        """
        handler = self._handlers.unregister(name)
        if handler is not None:
            handler.stop()
            logger.info("Removed handler: %s", name)
        return handler

    def get_handler(self, name: str) -> Handler | None:
        """Return the handler registered under *name*, or ``None``."""
        return self._handlers.get(name)

    def get_handler_names(self) -> list[str]:
        """Return registered handler names in registration order."""
        return self._handlers.names()

    def get_ui_handler(self) -> UIEventHandler | None:
        handler = self._handlers.get(UI_HANDLER)
        return handler if isinstance(handler, UIEventHandler) else None

    def get_animation_handler(self) -> AnimationEventHandler | None:
        handler = self._handlers.get(ANIMATION_HANDLER)
        return handler if isinstance(handler, AnimationEventHandler) else None

    def get_debug_handler(self) -> DebugEventHandler | None:
        handler = self._handlers.get(DEBUG_HANDLER)
        return handler if isinstance(handler, DebugEventHandler) else None

    def get_event_logger(self) -> EventLogger | None:
        return self._event_logger

    def get_debug_console(self) -> DebugConsole | None:
        return self._debug_console

    # ── dispatcher pass-throughs ───────────────────────────────
    def get_event_bus(self) -> EventDispatcher:
        """Return the managed dispatcher."""
        return self._dispatcher

    def emit(self, event: Event) -> None:
        """Emit *event* through the managed dispatcher."""
        self._dispatcher.emit(event)

    def subscribe(self, event_type: str, listener: Any) -> Subscription:
        """Subscribe *listener* on the managed dispatcher."""
        return self._dispatcher.subscribe(event_type, listener)

    def subscribe_to_all(self, listener: Any) -> Subscription:
        """Subscribe *listener* to every event type on the managed dispatcher."""
        return self._dispatcher.subscribe_to_all(listener)

    # ── statistics and debug controls ──────────────────────────
    def get_event_stats(self) -> dict[str, int] | None:
        """Return per-type event counts from the debug handler, else the logger.

        Returns:
            The counts, or ``None`` when neither source is available.
        """
        debug_handler = self.get_debug_handler()
        if debug_handler is not None:
            return debug_handler.get_event_stats()
        if self._event_logger is not None:
            return self._event_logger.get_event_stats()
        return None

    def print_event_stats(self) -> None:
        """Log the event statistics table."""
        debug_handler = self.get_debug_handler()
        if debug_handler is not None:
            debug_handler.print_event_stats()
        elif self._event_logger is not None:
            logger.info("Event statistics: %s", self._event_logger.get_event_stats())
        else:
            logger.info("Debug handler not available")

    def set_debug_log_level(self, level: str | int | LogLevel) -> None:
        """Set the debug handler's trace level, or the logger's threshold.

        Debug level names (``"none"``, ``"basic"``, ``"detailed"``,
        ``"verbose"``) go to the debug handler; anything else is treated as
        an event-logger ``LogLevel``.  Unknown levels are logged as a warning
        and otherwise ignored.
        """
        if isinstance(level, str) and level in DEBUG_LEVELS:
            debug_handler = self.get_debug_handler()
            if debug_handler is None:
                logger.warning("Debug handler not available; cannot set level %r", level)
                return
            debug_handler.set_log_level(level)
            return

        if self._event_logger is None:
            logger.warning("Event logger not available; cannot set level %r", level)
            return
        try:
            self._event_logger.update_config(level=level)
        except ConfigurationError as exc:
            logger.warning("Ignoring log level %r: %s", level, exc)


def create_event_manager(
    history_size: int = DEFAULT_HISTORY_SIZE,
    *,
    sink: SnapshotSink | None = None,
    output: OutputChannel | None = None,
) -> EventManager:
    """Build a manager with its own, freshly created dispatcher."""
    return EventManager(EventDispatcher(history_size), sink=sink, output=output)


_default_manager: EventManager | None = None


def get_default_manager() -> EventManager:
    """Return the process-wide manager, creating it on first call.

    Create it once at startup and pass it by reference to the collaborators
    that need it.
    """
    global _default_manager  # noqa: PLW0603
    if _default_manager is None:
        _default_manager = create_event_manager()
    return _default_manager


def reset_default_manager() -> None:
    """Destroy and forget the process-wide manager — shutdown and tests."""
    global _default_manager  # noqa: PLW0603
    if _default_manager is not None:
        _default_manager.destroy()
        _default_manager = None
