"""
Timora CLI - study plans and focus sessions from the terminal.

Usage:
    timora plan Math Physics --hours 3 --days 5 --goal exam
    timora plan Math --hours 2 --json
    timora timer --cycles 2
    timora progress show
    timora progress reset --yes
    timora settings set --focus 50 --short 10
"""

from __future__ import annotations

import asyncio
import sys
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config import Settings, get_settings
from timora.core.errors import InvalidRequest
from timora.planner import PlanRequest, RuleSet, generate, plan_to_json
from timora.planner.optimizer import PlanOutcome, RemoteOptimizerClient, plan_with_fallback
from timora.planner.rules import BreakKind
from timora.study.session_timer import (
    SessionComplete,
    SessionTimer,
    TimerDriver,
    TimerMode,
    TimerSettings,
)
from timora.sync import SqlProgressStore, SyncCoordinator
from timora.sync.store import RecentSession

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="timora",
    help="Timora - rule-based study plans and focus sessions",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
progress_app = typer.Typer(name="progress", help="Coins, focus hours and streak", no_args_is_help=True)
settings_app = typer.Typer(name="settings", help="Timer settings", no_args_is_help=True)
app.add_typer(progress_app)
app.add_typer(settings_app)

console = Console()

BREAK_STYLES = {
    BreakKind.MICRO_BREAK: "dim",
    BreakKind.LONG_BREAK: "yellow",
    BreakKind.BREAKFAST: "magenta",
    BreakKind.LUNCH: "magenta",
    BreakKind.DINNER: "magenta",
    BreakKind.FREE_TIME: "green",
}


def configure_logging(settings: Settings) -> None:
    """Route loguru to stderr (and optionally a file) at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format="<level>{message}</level>")
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB", retention=3)


async def _connect(settings: Settings) -> SyncCoordinator:
    from timora.db import init_db

    init_db()
    return await SyncCoordinator.connect(
        SqlProgressStore(),
        settings.user_id,
        default_settings=TimerSettings(**settings.get_timer_defaults()),
        max_attempts=settings.sync_max_attempts,
        backoff_base=settings.sync_backoff_base_seconds,
        backoff_cap=settings.sync_backoff_cap_seconds,
        recent_limit=settings.sync_recent_sessions_limit,
    )


# =============================================================================
# Plan Command
# =============================================================================


def _render_plan(outcome: PlanOutcome) -> None:
    plan = outcome.plan
    meta = plan.meta
    header = Text()
    header.append(f"{', '.join(meta.subjects)}\n", style="bold cyan")
    header.append(f"{meta.hours_per_day:g} h/day for {meta.days} day(s)")
    if meta.goal:
        header.append(f"  Goal: {meta.goal}")
    if outcome.fallback_reason:
        header.append(f"\nRemote plan not used: {outcome.fallback_reason}", style="yellow")
    console.print(Panel(header, title="[bold]Study Plan[/bold]", border_style="blue"))

    for day in plan.days:
        table = Table(title=f"Day {day.day_index}", title_justify="left")
        table.add_column("Time", style="cyan", no_wrap=True)
        table.add_column("Activity")
        table.add_column("Topic", style="dim")
        for slot in day.slots:
            if slot.is_study:
                table.add_row(slot.time_range, f"[bold]{slot.label}[/bold]", slot.topic or "")
            else:
                style = BREAK_STYLES[slot.label]
                table.add_row(slot.time_range, f"[{style}]{slot.label.value}[/{style}]", "")
        console.print(table)
        console.print(f"[dim]Study time: {day.study_minutes} min[/dim]\n")


@app.command()
def plan(
    subjects: Annotated[list[str], typer.Argument(help="Subjects to study")],
    hours: Annotated[float, typer.Option("--hours", "-H", help="Study hours per day")] = 3.0,
    days: Annotated[int, typer.Option("--days", "-d", help="Number of days")] = 7,
    goal: Annotated[str, typer.Option("--goal", "-g", help="Goal label")] = "",
    as_json: Annotated[bool, typer.Option("--json", help="Print the plan as JSON")] = False,
    remote: Annotated[
        bool, typer.Option("--remote", help="Ask the configured remote optimizer first")
    ] = False,
) -> None:
    """
    Generate a day-by-day study timetable.

    Examples:
        timora plan Math Physics --hours 3 --days 5
        timora plan Chemistry -H 2.5 -d 1 --json
    """
    settings = get_settings()
    try:
        request = PlanRequest(subjects=tuple(subjects), hours_per_day=hours, days=days, goal=goal)
    except InvalidRequest as e:
        console.print(f"[red]Invalid request:[/red] {e}")
        raise typer.Exit(code=2)

    rules = RuleSet.from_settings(settings)
    if remote and settings.optimizer_url:
        outcome = asyncio.run(_remote_plan(request, rules, settings))
    else:
        if remote:
            console.print("[yellow]No OPTIMIZER_URL configured; using the local generator[/yellow]")
        outcome = PlanOutcome(plan=generate(request, rules), source="local")

    if as_json:
        typer.echo(plan_to_json(outcome.plan))
    else:
        _render_plan(outcome)


async def _remote_plan(request: PlanRequest, rules: RuleSet, settings: Settings) -> PlanOutcome:
    async with RemoteOptimizerClient(
        settings.optimizer_url,
        api_key=settings.optimizer_api_key,
        timeout_seconds=settings.optimizer_timeout_seconds,
        retry_attempts=settings.optimizer_retry_attempts,
    ) as client:
        return await plan_with_fallback(request, rules, client=client)


# =============================================================================
# Timer Command
# =============================================================================


def _format_clock(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def _reward_message(session: RecentSession, number: int) -> str:
    return f"[green]+{session.coins} coins - focus session {number} done[/green]"


def _timer_panel(timer: SessionTimer, coordinator: SyncCoordinator) -> Panel:
    state = timer.snapshot()
    body = Text()
    body.append(f"{_format_clock(state.remaining_seconds)}\n", style="bold")
    body.append(f"Sessions: {state.sessions_completed}   ")
    body.append(f"Coins: {coordinator.progress.coins}   ")
    body.append(f"Sync: {coordinator.status.value}", style="dim")
    color = "cyan" if state.mode == TimerMode.FOCUS else "green"
    return Panel(body, title=f"[bold {color}]{state.mode.value.upper()}[/]", border_style=color)


@app.command()
def timer(
    cycles: Annotated[int, typer.Option("--cycles", "-c", help="Focus sessions to run")] = 1,
    focus: Annotated[int | None, typer.Option("--focus", help="Override focus minutes")] = None,
    short: Annotated[int | None, typer.Option("--short", help="Override short break minutes")] = None,
    long: Annotated[int | None, typer.Option("--long", help="Override long break minutes")] = None,
    interval: Annotated[float, typer.Option("--interval", hidden=True)] = 1.0,
) -> None:
    """
    Run focus sessions with a live countdown; rewards are saved as you go.

    Press Ctrl+C to pause and quit (an unfinished session earns nothing).
    """
    settings = get_settings()
    asyncio.run(_run_timer(settings, cycles, focus, short, long, interval))


async def _run_timer(
    settings: Settings,
    cycles: int,
    focus: int | None,
    short: int | None,
    long: int | None,
    interval: float,
) -> None:
    coordinator = await _connect(settings)
    stored = coordinator.settings
    timer_settings = TimerSettings(
        focus_minutes=focus if focus is not None else stored.focus_minutes,
        short_break_minutes=short if short is not None else stored.short_break_minutes,
        long_break_minutes=long if long is not None else stored.long_break_minutes,
        sessions_before_long_break=stored.sessions_before_long_break,
    )
    session_timer = SessionTimer(timer_settings)

    def on_complete(event: SessionComplete) -> None:
        if coordinator.apply_completion(event) and event.mode == TimerMode.FOCUS:
            console.print(_reward_message(coordinator.record.recent_sessions[0], event.sessions_completed + 1))

    session_timer.subscribe(on_complete)
    driver = TimerDriver(session_timer, interval=interval)
    driver.start()
    focus_done = 0

    try:
        with Live(_timer_panel(session_timer, coordinator), console=console, refresh_per_second=4) as live:
            while focus_done < cycles:
                mode = session_timer.mode
                session_timer.start()
                while session_timer.running:
                    await asyncio.sleep(min(interval, 0.25))
                    live.update(_timer_panel(session_timer, coordinator))
                if mode == TimerMode.FOCUS:
                    focus_done += 1
    except (KeyboardInterrupt, asyncio.CancelledError):
        session_timer.pause()
        console.print("\n[yellow]Timer paused.[/yellow]")
    finally:
        await driver.stop()
        if not await coordinator.flush():
            console.print("[yellow]Progress saved locally; it will be written on the next run.[/yellow]")
        await coordinator.close()

    _print_progress(coordinator)


# =============================================================================
# Progress / Settings Commands
# =============================================================================


def _print_progress(coordinator: SyncCoordinator) -> None:
    progress = coordinator.progress
    table = Table(title="Progress")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Coins", str(progress.coins))
    table.add_row("Focus hours", f"{progress.total_focus_hours:.2f}")
    table.add_row("Current streak", str(progress.current_streak))
    table.add_row("Sessions logged", str(len(coordinator.record.recent_sessions)))
    console.print(table)


@progress_app.command("show")
def progress_show() -> None:
    """Show coins, focus hours and streak."""

    async def _show() -> None:
        coordinator = await _connect(get_settings())
        await coordinator.flush()
        await coordinator.close()
        _print_progress(coordinator)

    asyncio.run(_show())


@progress_app.command("reset")
def progress_reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Reset coins, focus hours and streak to zero."""
    if not yes and not typer.confirm("Reset all progress?"):
        raise typer.Abort()

    async def _reset() -> None:
        coordinator = await _connect(get_settings())
        coordinator.reset_progress()
        await coordinator.flush()
        await coordinator.close()
        _print_progress(coordinator)

    asyncio.run(_reset())


def _print_settings(settings: TimerSettings) -> None:
    table = Table(title="Timer Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in settings.to_record().items():
        table.add_row(key, str(value))
    console.print(table)


@settings_app.command("show")
def settings_show() -> None:
    """Show the stored timer settings."""

    async def _show() -> None:
        coordinator = await _connect(get_settings())
        await coordinator.flush()
        await coordinator.close()
        _print_settings(coordinator.settings)

    asyncio.run(_show())


@settings_app.command("set")
def settings_set(
    focus: Annotated[int | None, typer.Option("--focus", help="Focus minutes")] = None,
    short: Annotated[int | None, typer.Option("--short", help="Short break minutes")] = None,
    long: Annotated[int | None, typer.Option("--long", help="Long break minutes")] = None,
    every: Annotated[
        int | None, typer.Option("--every", help="Focus sessions before a long break")
    ] = None,
) -> None:
    """Update timer settings; values below 1 are raised to 1."""

    async def _set() -> None:
        coordinator = await _connect(get_settings())
        current = coordinator.settings
        requested = TimerSettings(
            focus_minutes=focus if focus is not None else current.focus_minutes,
            short_break_minutes=short if short is not None else current.short_break_minutes,
            long_break_minutes=long if long is not None else current.long_break_minutes,
            sessions_before_long_break=every if every is not None else current.sessions_before_long_break,
        )
        _, corrections = requested.clamped()
        for misuse in corrections:
            console.print(f"[yellow]{misuse}[/yellow]")
        coordinator.update_settings(requested)
        await coordinator.flush()
        await coordinator.close()
        _print_settings(coordinator.settings)

    asyncio.run(_set())


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
