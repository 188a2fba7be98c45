"""Listener variants accepted by the dispatcher.

A listener is either a plain callback or a handler object with ``handle``
and an optional ``can_handle`` predicate.  Both shapes are normalised once,
at subscribe time, into one of two tagged variants so that dispatch can
branch on ``kind`` instead of inspecting objects on every event.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from slot_events.core.event import Event


@runtime_checkable
class EventHandlerLike(Protocol):
    """Structural type of a handler object."""

    def handle(self, event: Event) -> None: ...


@dataclass(frozen=True)
class CallbackListener:
    """A plain ``(event) -> None`` callable."""

    invoke: Callable[[Event], None]
    kind: ClassVar[Literal["callback"]] = "callback"


@dataclass(frozen=True)
class HandlerListener:
    """A handler's ``handle`` method paired with its optional predicate."""

    handle: Callable[[Event], None]
    can_handle: Callable[[Event], bool] | None = None
    kind: ClassVar[Literal["handler"]] = "handler"


Listener = CallbackListener | HandlerListener


def as_listener(obj: Any) -> Listener:
    """Normalise *obj* into a ``Listener`` variant.

    Args:
        obj: A listener variant, an object exposing ``handle`` (and
             optionally ``can_handle``), or a callable.

    Returns:
        The matching tagged variant.

    Raises:
        TypeError: If *obj* is neither a handler object nor callable.
    """
    if isinstance(obj, (CallbackListener, HandlerListener)):
        return obj
    if isinstance(obj, EventHandlerLike):
        return HandlerListener(handle=obj.handle, can_handle=getattr(obj, "can_handle", None))
    if callable(obj):
        return CallbackListener(invoke=obj)
    msg = f"Listener must be callable or expose handle(), got {type(obj).__name__}"
    raise TypeError(msg)


def deliver(listener: Listener, event: Event) -> bool:
    """Invoke *listener* with *event*.

    Returns:
        ``False`` when a handler's ``can_handle`` declined the event,
        ``True`` otherwise.  Exceptions propagate to the caller.
    """
    if listener.kind == "callback":
        listener.invoke(event)
        return True
    if listener.can_handle is not None and not listener.can_handle(event):
        return False
    listener.handle(event)
    return True
