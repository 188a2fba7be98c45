"""AnimationEventHandler — drives spin, reel and win animations from events."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from slot_events.core.dispatcher import EventDispatcher
from slot_events.core.event import Event
from slot_events.core.game_events import EventTypes, win_animation_completed, win_animation_started
from slot_events.core.lifecycle import HandlerLifecycle, typed_install

logger = logging.getLogger(__name__)

WIN_ANIMATION_DURATION_S = 2.0


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Host timer service; the dispatcher itself never owns timers."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


@dataclass(eq=False)
class ScheduledCall:
    """A callback waiting in a ``ManualScheduler``."""

    due: float
    order: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        """Prevent the callback from running."""
        self.cancelled = True


class ManualScheduler:
    """Scheduler advanced explicitly by the host, e.g. once per frame.

    Callbacks run inside ``advance()`` in due-time order; callbacks with
    the same due time run in the order they were scheduled.
    """

    def __init__(self) -> None:
        """Initialise the scheduler at time zero."""
        self._now = 0.0
        self._pending: list[ScheduledCall] = []
        self._counter = itertools.count()

    @property
    def now(self) -> float:
        """Return the scheduler's current time in seconds."""
        return self._now

    @property
    def pending_count(self) -> int:
        """Return the number of callbacks still waiting to run."""
        return sum(1 for call in self._pending if not call.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        """Schedule *callback* to run *delay* seconds from now."""
        call = ScheduledCall(due=self._now + max(delay, 0.0), order=next(self._counter), callback=callback)
        self._pending.append(call)
        return call

    def advance(self, seconds: float) -> int:
        """Move time forward and run every callback that became due.

        Returns:
            The number of callbacks executed.
        """
        self._now += seconds
        executed = 0
        while True:
            due = [call for call in self._pending if call.due <= self._now and not call.cancelled]
            if not due:
                break
            call = min(due, key=lambda c: (c.due, c.order))
            self._pending.remove(call)
            call.callback()
            executed += 1
        self._pending = [call for call in self._pending if not call.cancelled]
        return executed


@dataclass(eq=False)
class Animation:
    """A running animation and its pending completion, if any."""

    kind: str
    win_amount: int | None = None
    completion: Cancellable | None = field(default=None, repr=False)


class AnimationEventHandler:
    """React to win, spin and reel events with animations.

    A detected win emits ``win:animation_started`` right away and schedules
    ``win:animation_completed`` through the scheduler collaborator.

    Args:
        dispatcher: Dispatcher to subscribe on and emit follow-up events to.
        scheduler: Timer service; a ``ManualScheduler`` is created if omitted.
        win_duration: Seconds between the start and completion of a win animation.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        scheduler: Scheduler | None = None,
        *,
        win_duration: float = WIN_ANIMATION_DURATION_S,
    ) -> None:
        """Initialise a stopped animation handler."""
        self._dispatcher = dispatcher
        self.scheduler: Scheduler = scheduler or ManualScheduler()
        self.win_duration = win_duration
        self.active_animations: list[Animation] = []
        self.played: list[str] = []
        self.highlighted_lines: list[int] = []
        self._reactions = {
            EventTypes.WIN_DETECTED: self._on_win_detected,
            EventTypes.SPIN_STARTED: self._on_spin_started,
            EventTypes.SPIN_COMPLETED: self._on_spin_completed,
            EventTypes.REEL_STOPPED: self._on_reel_stopped,
        }
        self._lifecycle = HandlerLifecycle(dispatcher, typed_install(self._reactions), name="AnimationEventHandler")

    def start(self) -> None:
        self._lifecycle.start()

    def stop(self) -> None:
        self._lifecycle.stop()

    def is_handler_active(self) -> bool:
        return self._lifecycle.is_active()

    def destroy(self) -> None:
        """Cancel running animations and remove the subscriptions."""
        self.stop_all_animations()
        self._lifecycle.destroy()

    def can_handle(self, event: Event) -> bool:
        """Return ``True`` for the event types that trigger animations."""
        return event.type in self._reactions

    def handle(self, event: Event) -> None:
        """Route *event* to its reaction when subscribed as a handler object."""
        reaction = self._reactions.get(event.type)
        if reaction is not None:
            reaction(event)

    def stop_all_animations(self) -> None:
        """Cancel pending completions and forget every running animation."""
        for animation in self.active_animations:
            if animation.completion is not None:
                animation.completion.cancel()
        self.active_animations = []

    # ── reactions ─────────────────────────────────────────────
    def _on_win_detected(self, event: Event) -> None:
        data: dict[str, Any] = event.data or {}
        win_amount = data["win_amount"]
        self._dispatcher.emit(win_animation_started(win_amount, "celebration"))

        animation = Animation(kind="celebration", win_amount=win_amount)
        self.active_animations.append(animation)
        self.played.append("win_celebration")
        self.highlighted_lines = list(data.get("win_lines", []))
        logger.debug("Highlighting win lines: %s", self.highlighted_lines)

        def complete() -> None:
            if animation in self.active_animations:
                self.active_animations.remove(animation)
            self._dispatcher.emit(win_animation_completed(win_amount, "celebration"))

        animation.completion = self.scheduler.call_later(self.win_duration, complete)

    def _on_spin_started(self, event: Event) -> None:
        self.played.append("spin_start")
        logger.debug("Playing spin start animation")

    def _on_spin_completed(self, event: Event) -> None:
        self.played.append("spin_complete")
        logger.debug("Playing spin complete animation")

    def _on_reel_stopped(self, event: Event) -> None:
        data: dict[str, Any] = event.data or {}
        self.played.append(f"reel_stop:{data['reel_index']}")
        logger.debug("Reel %s stopped", data["reel_index"])
