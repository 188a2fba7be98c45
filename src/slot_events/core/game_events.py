"""Slot-game event vocabulary — type constants and one factory per event kind.

Payload shapes belong to the producers; the dispatcher never looks inside.
"""

from __future__ import annotations

from typing import Any, Literal

from slot_events.core.event import Event, create_event


class EventTypes:
    """String tags for every event kind the game emits."""

    # Game lifecycle
    GAME_INITIALIZED = "game:initialized"
    GAME_STATE_CHANGED = "game:state_changed"

    # Spin lifecycle
    SPIN_STARTED = "spin:started"
    SPIN_COMPLETED = "spin:completed"
    REEL_STOPPED = "reel:stopped"

    # Wins
    WIN_DETECTED = "win:detected"
    WIN_CALCULATED = "win:calculated"
    WIN_ANIMATION_STARTED = "win:animation_started"
    WIN_ANIMATION_COMPLETED = "win:animation_completed"

    # Balance
    BALANCE_CHANGED = "balance:changed"
    BALANCE_INSUFFICIENT = "balance:insufficient"

    # UI
    BUTTON_CLICKED = "ui:button_clicked"
    BUTTON_STATE_CHANGED = "ui:button_state_changed"

    # Debug
    DEBUG_MODE_TOGGLED = "debug:mode_toggled"
    DEBUG_SLOTS_CHANGED = "debug:slots_changed"

    # System
    ASSETS_LOADED = "system:assets_loaded"
    ERROR_OCCURRED = "system:error"

    @classmethod
    def all(cls) -> frozenset[str]:
        """Return every known event type."""
        return frozenset(value for name, value in vars(cls).items() if name.isupper())


Severity = Literal["low", "medium", "high", "critical"]


def game_initialized(scene: str, config: dict[str, Any] | None = None) -> Event:
    return create_event(EventTypes.GAME_INITIALIZED, {"scene": scene, "config": config or {}}, "GameScene")


def game_state_changed(previous_state: str, new_state: str, context: Any = None) -> Event:
    data = {"previous_state": previous_state, "new_state": new_state, "context": context}
    return create_event(EventTypes.GAME_STATE_CHANGED, data, "GameScene")


def spin_started(bet_amount: int, balance: int, debug_slots: list[list[str]] | None = None) -> Event:
    data = {"bet_amount": bet_amount, "balance": balance, "debug_slots": debug_slots}
    return create_event(EventTypes.SPIN_STARTED, data, "Machine")


def spin_completed(results: list[list[str]], win_amount: int, win_lines: list[int]) -> Event:
    data = {"results": results, "win_amount": win_amount, "win_lines": win_lines}
    return create_event(EventTypes.SPIN_COMPLETED, data, "Machine")


def reel_stopped(reel_index: int, result: list[str], total_reels: int) -> Event:
    data = {"reel_index": reel_index, "result": result, "total_reels": total_reels}
    return create_event(EventTypes.REEL_STOPPED, data, "Reel")


def win_detected(win_amount: int, win_lines: list[int], combination: list[str]) -> Event:
    data = {"win_amount": win_amount, "win_lines": win_lines, "combination": combination}
    return create_event(EventTypes.WIN_DETECTED, data, "Machine")


def win_calculated(total_win: int, line_wins: list[dict[str, Any]]) -> Event:
    """Build a ``win:calculated`` event.

    Args:
        total_win: Sum over all winning lines.
        line_wins: One ``{"line", "amount", "symbols"}`` dict per winning line.
    """
    return create_event(EventTypes.WIN_CALCULATED, {"total_win": total_win, "line_wins": line_wins}, "Machine")


def win_animation_started(win_amount: int, animation_type: str) -> Event:
    data = {"win_amount": win_amount, "animation_type": animation_type}
    return create_event(EventTypes.WIN_ANIMATION_STARTED, data, "AnimationHandler")


def win_animation_completed(win_amount: int, animation_type: str) -> Event:
    data = {"win_amount": win_amount, "animation_type": animation_type}
    return create_event(EventTypes.WIN_ANIMATION_COMPLETED, data, "AnimationHandler")


def balance_changed(previous_balance: int, new_balance: int, reason: str) -> Event:
    """Build a ``balance:changed`` event; ``change`` is derived from the two balances."""
    data = {
        "previous_balance": previous_balance,
        "new_balance": new_balance,
        "change": new_balance - previous_balance,
        "reason": reason,
    }
    return create_event(EventTypes.BALANCE_CHANGED, data, "GameScene")


def balance_insufficient(current_balance: int, required_amount: int) -> Event:
    data = {"current_balance": current_balance, "required_amount": required_amount}
    return create_event(EventTypes.BALANCE_INSUFFICIENT, data, "GameScene")


def button_clicked(button_type: str, button_id: str | None = None, position: tuple[int, int] | None = None) -> Event:
    data = {"button_type": button_type, "button_id": button_id, "position": position}
    return create_event(EventTypes.BUTTON_CLICKED, data, "Button")


def button_state_changed(
    button_type: str,
    previous_state: str,
    new_state: str,
    button_id: str | None = None,
) -> Event:
    data = {
        "button_type": button_type,
        "button_id": button_id,
        "previous_state": previous_state,
        "new_state": new_state,
    }
    return create_event(EventTypes.BUTTON_STATE_CHANGED, data, "Button")


def debug_mode_toggled(enabled: bool, mode: str | None = None) -> Event:
    return create_event(EventTypes.DEBUG_MODE_TOGGLED, {"enabled": enabled, "mode": mode}, "DebugBar")


def debug_slots_changed(slots: list[list[str]], fixed_mode: bool) -> Event:
    return create_event(EventTypes.DEBUG_SLOTS_CHANGED, {"slots": slots, "fixed_mode": fixed_mode}, "DebugBar")


def assets_loaded(asset_type: str, asset_count: int, total_size: int | None = None) -> Event:
    data = {"asset_type": asset_type, "asset_count": asset_count, "total_size": total_size}
    return create_event(EventTypes.ASSETS_LOADED, data, "PreloadScene")


def error_occurred(error: BaseException | str, context: str, severity: Severity = "medium") -> Event:
    """Build a ``system:error`` event; the error is stored as text."""
    data = {"error": str(error), "error_type": type(error).__name__, "context": context, "severity": severity}
    return create_event(EventTypes.ERROR_OCCURRED, data, "System")
