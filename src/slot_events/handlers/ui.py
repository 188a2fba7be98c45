"""UIEventHandler — keeps UI state in step with game events."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from slot_events.core.dispatcher import EventDispatcher
from slot_events.core.event import Event
from slot_events.core.game_events import EventTypes
from slot_events.core.lifecycle import HandlerLifecycle, typed_install

logger = logging.getLogger(__name__)


class UIView(Protocol):
    """Rendering collaborator driven by the handler."""

    def update_balance(self, new_balance: int) -> None: ...

    def set_button_state(self, button_type: str, state: str) -> None: ...

    def show_spin_feedback(self) -> None: ...

    def hide_spin_feedback(self) -> None: ...

    def show_win(self, win_amount: int) -> None: ...


class UIEventHandler:
    """React to balance, button, spin and win events.

    The handler records the latest UI-relevant state so it can be queried
    without a view, and forwards every change to the optional ``UIView``.

    Args:
        dispatcher: Dispatcher to subscribe on.
        view: Rendering collaborator; may be attached later.
    """

    def __init__(self, dispatcher: EventDispatcher, view: UIView | None = None) -> None:
        """Initialise a stopped UI handler."""
        self.view = view
        self.balance: int | None = None
        self.button_states: dict[str, str] = {}
        self.is_spinning = False
        self.last_win: int | None = None
        self._reactions = {
            EventTypes.BALANCE_CHANGED: self._on_balance_changed,
            EventTypes.BUTTON_STATE_CHANGED: self._on_button_state_changed,
            EventTypes.SPIN_STARTED: self._on_spin_started,
            EventTypes.SPIN_COMPLETED: self._on_spin_completed,
            EventTypes.WIN_DETECTED: self._on_win_detected,
        }
        self._lifecycle = HandlerLifecycle(dispatcher, typed_install(self._reactions), name="UIEventHandler")

    def start(self) -> None:
        self._lifecycle.start()

    def stop(self) -> None:
        self._lifecycle.stop()

    def destroy(self) -> None:
        self._lifecycle.destroy()

    def is_handler_active(self) -> bool:
        return self._lifecycle.is_active()

    def set_view(self, view: UIView) -> None:
        """Attach the rendering collaborator."""
        self.view = view

    # ── handler-object shape (wildcard use) ───────────────────
    def can_handle(self, event: Event) -> bool:
        """Return ``True`` for the event types this handler reacts to."""
        return event.type in self._reactions

    def handle(self, event: Event) -> None:
        """Route *event* to its reaction when subscribed as a handler object."""
        reaction = self._reactions.get(event.type)
        if reaction is None:
            logger.debug("UIEventHandler received unhandled event: %s", event.type)
            return
        reaction(event)

    # ── reactions ─────────────────────────────────────────────
    def _on_balance_changed(self, event: Event) -> None:
        data: dict[str, Any] = event.data or {}
        self.balance = data["new_balance"]
        if self.view is not None:
            self.view.update_balance(self.balance)

    def _on_button_state_changed(self, event: Event) -> None:
        data: dict[str, Any] = event.data or {}
        button_type, new_state = data["button_type"], data["new_state"]
        self.button_states[button_type] = new_state
        if self.view is not None:
            self.view.set_button_state(button_type, new_state)

    def _on_spin_started(self, event: Event) -> None:
        logger.debug("Spin started, updating UI")
        self.is_spinning = True
        if self.view is not None:
            self.view.show_spin_feedback()

    def _on_spin_completed(self, event: Event) -> None:
        logger.debug("Spin completed, updating UI: %s", event.data)
        self.is_spinning = False
        if self.view is not None:
            self.view.hide_spin_feedback()

    def _on_win_detected(self, event: Event) -> None:
        data: dict[str, Any] = event.data or {}
        self.last_win = data["win_amount"]
        logger.debug("Win detected, showing win UI: %s", data)
        if self.view is not None:
            self.view.show_win(self.last_win)
