"""Default handler set — UI, animation and debug reactions to game events."""

from slot_events.handlers.animation import AnimationEventHandler, ManualScheduler, Scheduler
from slot_events.handlers.debug import DebugEventHandler
from slot_events.handlers.ui import UIEventHandler, UIView

__all__ = [
    "AnimationEventHandler",
    "DebugEventHandler",
    "ManualScheduler",
    "Scheduler",
    "UIEventHandler",
    "UIView",
]
