"""HandlerRegistry — name-keyed, ordered collection of supervised handlers."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from slot_events.core.lifecycle import Handler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Keeps handlers by unique name, in insertion order.

    The registry only stores handlers; starting and stopping them is the
    manager's job.
    """

    def __init__(self) -> None:
        """Initialise an empty registry."""
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> Handler | None:
        """Store *handler* under *name*.

        Args:
            name: Unique handler name (e.g. ``"ui"``).
            handler: The handler to store.

        Returns:
            The handler previously stored under *name*, or ``None``.
        """
        previous = self._handlers.get(name)
        self._handlers[name] = handler
        logger.debug("Registered handler: %s", name)
        return previous

    def unregister(self, name: str) -> Handler | None:
        """Remove and return the handler stored under *name*, if any."""
        return self._handlers.pop(name, None)

    def get(self, name: str) -> Handler | None:
        """Look up a handler by name.

        Returns:
            The handler, or ``None`` if not found.
        """
        return self._handlers.get(name)

    def all_handlers(self) -> dict[str, Handler]:
        """Return all registered handlers as a name → handler mapping."""
        return dict(self._handlers)

    def names(self) -> list[str]:
        """Return handler names in registration order."""
        return list(self._handlers)

    def clear(self) -> None:
        """Forget every handler."""
        self._handlers.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[tuple[str, Handler]]:
        return iter(list(self._handlers.items()))

    def __len__(self) -> int:
        return len(self._handlers)
