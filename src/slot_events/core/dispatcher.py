"""EventDispatcher — synchronous publish/subscribe with bounded history."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from slot_events.core.event import Event
from slot_events.core.listeners import Listener, as_listener, deliver

logger = logging.getLogger(__name__)

WILDCARD = "*"
DEFAULT_HISTORY_SIZE = 1000


class _Registration:
    """One listener registered under one event type (or the wildcard)."""

    __slots__ = ("active", "event_type", "listener")

    def __init__(self, event_type: str, listener: Listener) -> None:
        self.event_type = event_type
        self.listener = listener
        self.active = True


class Subscription:
    """Handle returned by ``subscribe`` — cancels exactly one registration."""

    def __init__(self, dispatcher: EventDispatcher, registration: _Registration) -> None:
        """Bind the handle to its dispatcher and registration."""
        self._dispatcher = dispatcher
        self._registration = registration

    @property
    def event_type(self) -> str:
        """Return the event type (or ``"*"``) this handle is registered under."""
        return self._registration.event_type

    def unsubscribe(self) -> None:
        """Remove the registration.  A second call is a no-op."""
        self._dispatcher.unsubscribe(self)

    def is_active(self) -> bool:
        """Return ``True`` while the registration still receives events."""
        return self._registration.active

    def __repr__(self) -> str:
        state = "active" if self.is_active() else "inactive"
        return f"<Subscription {self.event_type!r} {state}>"


class EventDispatcher:
    """Registry of subscriptions that delivers emitted events synchronously.

    For each ``emit`` the event is appended to the history, then every
    listener registered for ``event.type`` runs in registration order,
    then every wildcard listener runs in registration order.  A failing
    listener is logged and isolated; it never stops delivery to the
    others and never propagates to the caller.

    Listeners may subscribe or unsubscribe (themselves or others) while a
    dispatch is in progress.  Each notification phase iterates over a
    snapshot of the registrations taken when the phase starts: listeners
    added during the phase wait for the next event, listeners removed
    during the phase are skipped.

    Args:
        history_size: Capacity of the history buffer.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        """Initialise an empty dispatcher."""
        if history_size < 1:
            msg = f"history_size must be positive, got {history_size}"
            raise ValueError(msg)
        self._listeners: dict[str, list[_Registration]] = {}
        self._wildcard: list[_Registration] = []
        self._history: deque[Event] = deque(maxlen=history_size)
        self._logging_enabled = False

    # ── subscriptions ──────────────────────────────────────────
    def subscribe(self, event_type: str, listener: Any) -> Subscription:
        """Register *listener* for events of *event_type*.

        Args:
            event_type: The event type to listen to; ``"*"`` is the wildcard.
            listener: A callable ``(event) -> None`` or an object exposing
                      ``handle(event)`` and optionally ``can_handle(event)``.

        Returns:
            A ``Subscription`` handle for this registration.
        """
        if event_type == WILDCARD:
            return self.subscribe_to_all(listener)
        registration = _Registration(event_type, as_listener(listener))
        self._listeners.setdefault(event_type, []).append(registration)
        if self._logging_enabled:
            logger.debug("Subscribed to event: %s", event_type)
        return Subscription(self, registration)

    def subscribe_to_all(self, listener: Any) -> Subscription:
        """Register *listener* for every event type."""
        registration = _Registration(WILDCARD, as_listener(listener))
        self._wildcard.append(registration)
        if self._logging_enabled:
            logger.debug("Subscribed to all events")
        return Subscription(self, registration)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove the registration behind *subscription*, once.

        When the last listener of an event type goes away, the type's entry
        is dropped from the registry.

        Raises:
            ValueError: If *subscription* was issued by another dispatcher.
        """
        if subscription._dispatcher is not self:
            msg = f"{subscription!r} belongs to another dispatcher"
            raise ValueError(msg)
        registration = subscription._registration
        if not registration.active:
            return
        registration.active = False

        if registration.event_type == WILDCARD:
            self._remove(self._wildcard, registration)
        else:
            registrations = self._listeners.get(registration.event_type)
            if registrations is not None:
                self._remove(registrations, registration)
                if not registrations:
                    del self._listeners[registration.event_type]

        if self._logging_enabled:
            logger.debug("Unsubscribed from event: %s", registration.event_type)

    @staticmethod
    def _remove(registrations: list[_Registration], registration: _Registration) -> None:
        for index, candidate in enumerate(registrations):
            if candidate is registration:
                del registrations[index]
                return

    # ── delivery ───────────────────────────────────────────────
    def emit(self, event: Event) -> None:
        """Record *event* in the history and deliver it to all listeners.

        Args:
            event: The event record to publish.
        """
        self._history.append(event)
        if self._logging_enabled:
            logger.debug("Emitting event: %s (%s) from %s", event.type, event.id, event.source)

        self._notify(tuple(self._listeners.get(event.type, ())), event)
        self._notify(tuple(self._wildcard), event)

    def _notify(self, snapshot: tuple[_Registration, ...], event: Event) -> None:
        for registration in snapshot:
            if not registration.active:
                continue
            try:
                delivered = deliver(registration.listener, event)
            except Exception:
                logger.exception("Error in event listener for %r", event.type)
                continue
            if not delivered and self._logging_enabled:
                logger.debug("Listener declined event %s", event.type)

    # ── history ────────────────────────────────────────────────
    def get_history(self) -> list[Event]:
        """Return a snapshot of the history, oldest first."""
        return list(self._history)

    def clear_history(self) -> None:
        """Drop every recorded event."""
        self._history.clear()

    @property
    def history_size(self) -> int:
        """Return the capacity of the history buffer."""
        return self._history.maxlen or 0

    # ── introspection ──────────────────────────────────────────
    def get_subscriber_count(self, event_type: str) -> int:
        """Return the number of listeners registered for *event_type*."""
        if event_type == WILDCARD:
            return len(self._wildcard)
        return len(self._listeners.get(event_type, ()))

    def get_wildcard_count(self) -> int:
        """Return the number of wildcard listeners."""
        return len(self._wildcard)

    def get_registered_event_types(self) -> list[str]:
        """Return every event type with at least one listener."""
        return list(self._listeners)

    def clear(self) -> None:
        """Drop all subscriptions, type-specific and wildcard."""
        for registrations in self._listeners.values():
            for registration in registrations:
                registration.active = False
        for registration in self._wildcard:
            registration.active = False
        self._listeners.clear()
        self._wildcard.clear()
        if self._logging_enabled:
            logger.debug("Cleared all subscriptions")

    def set_logging(self, enabled: bool) -> None:
        """Toggle verbose diagnostic output of the dispatcher itself."""
        self._logging_enabled = enabled

    @property
    def is_logging_enabled(self) -> bool:
        """Return whether dispatcher diagnostics are enabled."""
        return self._logging_enabled
