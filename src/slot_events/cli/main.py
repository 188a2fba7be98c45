"""CLI entry point — click group hosting the event system from the terminal."""

from __future__ import annotations

import random
from pathlib import Path

import click

from slot_events.core import game_events
from slot_events.core.config import ConfigManager
from slot_events.core.console import DebugConsole
from slot_events.core.exceptions import ConfigurationError
from slot_events.core.logger import LogLevel
from slot_events.core.manager import EventManager, HostContext, ManagerOptions, create_event_manager
from slot_events.handlers.animation import ManualScheduler

SYMBOLS = ("cherry", "lemon", "bell", "bar", "seven")
REEL_COUNT = 5
ROW_COUNT = 3
BET_AMOUNT = 10
START_BALANCE = 1000


class EchoOutput:
    """``OutputChannel`` printing log lines with ``click.echo``; errors go to stderr."""

    def write(self, level: LogLevel, text: str) -> None:
        click.echo(text, err=level <= LogLevel.WARN)


def _load_options(config_dir: str | None) -> ManagerOptions:
    config = ConfigManager(Path(config_dir) if config_dir else None)
    try:
        config.load()
        return config.manager_options()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


def _start_manager(config_dir: str | None, context: HostContext | None = None) -> EventManager:
    options = _load_options(config_dir)
    manager = create_event_manager(output=EchoOutput())
    manager.initialize(context, options)
    return manager


def _require_console(manager: EventManager) -> DebugConsole:
    console = manager.get_debug_console()
    if console is None:
        msg = "Debug console is disabled (enable_debug_console / enable_advanced_logging)"
        raise click.ClickException(msg)
    return console


@click.group()
@click.version_option(package_name="slot-events")
def cli() -> None:
    """Slot Events — event dispatcher, logger and debug console for slot games."""


@cli.command(name="console")
@click.option(
    "--config",
    "config_dir",
    type=click.Path(file_okay=False, resolve_path=True),
    default=None,
    help="Configuration directory (default: ~/.config/slot-events).",
)
def console_cmd(config_dir: str | None) -> None:
    """Run the debug console interactively.

    Type 'help' for the command list and 'quit' (or end of input) to leave.
    """
    manager = _start_manager(config_dir)
    console = _require_console(manager)
    console.show()
    try:
        while True:
            try:
                line = click.prompt("slot-events", prompt_suffix="> ", default="", show_default=False)
            except (EOFError, click.Abort):
                break
            if line.strip().lower() in {"quit", "exit"}:
                break
            for output in console.execute_command(line):
                click.echo(output)
    finally:
        manager.destroy()


@cli.command(name="exec")
@click.argument("commands", nargs=-1, required=True)
@click.option(
    "--config",
    "config_dir",
    type=click.Path(file_okay=False, resolve_path=True),
    default=None,
    help="Configuration directory (default: ~/.config/slot-events).",
)
def exec_cmd(commands: tuple[str, ...], config_dir: str | None) -> None:
    """Run console COMMANDS non-interactively, one argument per command.

    Example: slot-events exec "emit spin" stats
    """
    manager = _start_manager(config_dir)
    try:
        console = _require_console(manager)
        for command in commands:
            for output in console.execute_command(command):
                click.echo(output)
    finally:
        manager.destroy()


@cli.command(name="simulate")
@click.option("-n", "--spins", type=click.IntRange(min=1), default=3, show_default=True, help="Number of spins.")
@click.option("-s", "--seed", type=int, default=None, help="Random seed for reproducible reel results.")
@click.option(
    "--config",
    "config_dir",
    type=click.Path(file_okay=False, resolve_path=True),
    default=None,
    help="Configuration directory (default: ~/.config/slot-events).",
)
def simulate_cmd(spins: int, seed: int | None, config_dir: str | None) -> None:
    """Drive a scripted sequence of spins through the event system.

    Each spin emits the spin, reel, win and balance events a game would,
    then advances the animation scheduler.  Event statistics are printed
    at the end.
    """
    rng = random.Random(seed)
    scheduler = ManualScheduler()
    manager = _start_manager(config_dir, HostContext(scheduler=scheduler))
    try:
        manager.emit(game_events.game_initialized("SimulationScene", {"reels": REEL_COUNT, "rows": ROW_COUNT}))
        balance = START_BALANCE
        for _ in range(spins):
            balance = _simulate_spin(manager, rng, scheduler, balance)

        stats = manager.get_event_stats() or {}
        click.echo(f"Simulated {spins} spin(s); final balance {balance}")
        width = max((len(event_type) for event_type in stats), default=0)
        for event_type, count in sorted(stats.items(), key=lambda item: (-item[1], item[0])):
            click.echo(f"  {event_type:<{width}}  {count:>6d}")
    finally:
        manager.destroy()


def _simulate_spin(manager: EventManager, rng: random.Random, scheduler: ManualScheduler, balance: int) -> int:
    if balance < BET_AMOUNT:
        manager.emit(game_events.balance_insufficient(balance, BET_AMOUNT))
        return balance

    manager.emit(game_events.button_clicked("spin"))
    manager.emit(game_events.spin_started(BET_AMOUNT, balance))
    manager.emit(game_events.balance_changed(balance, balance - BET_AMOUNT, "bet"))
    balance -= BET_AMOUNT

    results = [[rng.choice(SYMBOLS) for _ in range(ROW_COUNT)] for _ in range(REEL_COUNT)]
    for index, reel in enumerate(results):
        manager.emit(game_events.reel_stopped(index, reel, REEL_COUNT))

    win_lines = [row for row in range(ROW_COUNT) if len({reel[row] for reel in results[:3]}) == 1]
    win_amount = BET_AMOUNT * 5 * len(win_lines)
    manager.emit(game_events.spin_completed(results, win_amount, win_lines))

    if win_amount:
        combination = [results[0][row] for row in win_lines]
        manager.emit(game_events.win_detected(win_amount, win_lines, combination))
        manager.emit(game_events.balance_changed(balance, balance + win_amount, "win"))
        balance += win_amount

    animation = manager.get_animation_handler()
    scheduler.advance(animation.win_duration if animation is not None else 0.0)
    return balance
