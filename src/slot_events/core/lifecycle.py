"""HandlerLifecycle — start/stop contract shared by every event consumer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from slot_events.core.dispatcher import EventDispatcher, Subscription
from slot_events.core.event import Event

logger = logging.getLogger(__name__)

InstallFn = Callable[[EventDispatcher], Iterable[Subscription]]
Reaction = Callable[[Event], None]


@runtime_checkable
class Handler(Protocol):
    """What the manager supervises: anything that can be started and stopped."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def destroy(self) -> None: ...

    def is_handler_active(self) -> bool: ...


def wildcard_install(listener: Any) -> InstallFn:
    """Return an install step subscribing *listener* to every event type."""

    def install(dispatcher: EventDispatcher) -> list[Subscription]:
        return [dispatcher.subscribe_to_all(listener)]

    return install


def typed_install(reactions: Mapping[str, Reaction]) -> InstallFn:
    """Return an install step subscribing one reaction per event type.

    Args:
        reactions: Event type → callback, subscribed in mapping order.  If
            one subscription fails, those already made are cancelled
            before the error propagates.
    """

    def install(dispatcher: EventDispatcher) -> list[Subscription]:
        subscriptions: list[Subscription] = []
        try:
            for event_type, reaction in reactions.items():
                subscriptions.append(dispatcher.subscribe(event_type, reaction))
        except Exception:
            for subscription in subscriptions:
                subscription.unsubscribe()
            raise
        return subscriptions

    return install


class HandlerLifecycle:
    """Owns the subscriptions of one handler as a unit.

    ``start()`` runs the injected install step and records the handles it
    returns; ``stop()`` cancels them.  A failing install leaves the lifecycle
    stopped.  Both are no-ops when the lifecycle
    is already in the target state, and a stopped lifecycle can be started
    again.

    Args:
        dispatcher: The dispatcher subscriptions are installed on.
        install: Step that subscribes and returns the resulting handles.
        name: Label used in log messages.
    """

    def __init__(self, dispatcher: EventDispatcher, install: InstallFn, *, name: str = "handler") -> None:
        """Initialise a stopped lifecycle."""
        self._dispatcher = dispatcher
        self._install = install
        self._subscriptions: list[Subscription] = []
        self._active = False
        self.name = name

    @property
    def dispatcher(self) -> EventDispatcher:
        """Return the dispatcher this lifecycle installs on."""
        return self._dispatcher

    @property
    def subscriptions(self) -> list[Subscription]:
        """Return the currently installed handles."""
        return list(self._subscriptions)

    def start(self) -> None:
        """Install the subscriptions unless already started."""
        if self._active:
            return
        self._subscriptions = list(self._install(self._dispatcher))
        self._active = True
        logger.debug("Started %s with %d subscription(s)", self.name, len(self._subscriptions))

    def stop(self) -> None:
        """Cancel every installed subscription unless already stopped."""
        if not self._active:
            return
        self._active = False
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        logger.debug("Stopped %s", self.name)

    def destroy(self) -> None:
        """Stop the lifecycle; owners release their own resources on top."""
        self.stop()

    def is_active(self) -> bool:
        """Return ``True`` between ``start()`` and ``stop()``."""
        return self._active
