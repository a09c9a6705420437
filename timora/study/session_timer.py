"""
Pomodoro Session Timer.

A single-timeline state machine cycling Focus -> ShortBreak/LongBreak -> Focus.
A tick source (TimerDriver, or a test calling tick()) decrements the
countdown once per second; reaching zero stops the timer, emits exactly one
SessionComplete event and loads the next mode.

State flow:
    Idle --start()--> Running --pause()--> Paused --start()--> Running
    any  --reset()--> Paused (countdown restored, sessions kept)
    Running --0s--> SessionComplete, next mode loaded, stopped

Settings changes never touch an in-flight countdown; they are applied on the
next reset() or mode change (immediately while Idle).
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from loguru import logger

from timora.core.errors import TimerMisuse

MIN_MINUTES = 1


class TimerMode(str, Enum):
    """Countdown modes."""

    FOCUS = "focus"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


class TimerStatus(str, Enum):
    """Derived run status."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class TimerSettings:
    """Configured durations (minutes) and long-break cadence."""

    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_before_long_break: int = 4

    def minutes_for(self, mode: TimerMode) -> int:
        if mode == TimerMode.FOCUS:
            return self.focus_minutes
        if mode == TimerMode.SHORT_BREAK:
            return self.short_break_minutes
        return self.long_break_minutes

    def clamped(self) -> tuple["TimerSettings", list[TimerMisuse]]:
        """Return settings with every value forced to at least 1, plus the corrections made."""
        corrections: list[TimerMisuse] = []
        values: dict[str, int] = {}
        for name in ("focus_minutes", "short_break_minutes", "long_break_minutes", "sessions_before_long_break"):
            value = getattr(self, name)
            try:
                fixed = int(value)
            except (TypeError, ValueError):
                fixed = MIN_MINUTES
            fixed = max(MIN_MINUTES, fixed)
            if fixed != value:
                corrections.append(TimerMisuse(name, value, fixed))
            values[name] = fixed
        return TimerSettings(**values), corrections

    def to_record(self) -> dict[str, int]:
        return {
            "focusMinutes": self.focus_minutes,
            "shortBreakMinutes": self.short_break_minutes,
            "longBreakMinutes": self.long_break_minutes,
            "sessionsBeforeLongBreak": self.sessions_before_long_break,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any] | None) -> "TimerSettings":
        record = record or {}
        defaults = cls()
        return cls(
            focus_minutes=record.get("focusMinutes", defaults.focus_minutes),
            short_break_minutes=record.get("shortBreakMinutes", defaults.short_break_minutes),
            long_break_minutes=record.get("longBreakMinutes", defaults.long_break_minutes),
            sessions_before_long_break=record.get(
                "sessionsBeforeLongBreak", defaults.sessions_before_long_break
            ),
        )


@dataclass(frozen=True)
class SessionComplete:
    """Emitted once when a countdown reaches zero."""

    mode: TimerMode
    sessions_completed: int
    duration_minutes: int
    event_id: str = field(default_factory=lambda: uuid4().hex)
    completed_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of the timer."""

    mode: TimerMode
    remaining_seconds: int
    running: bool
    sessions_completed: int
    sessions_before_long_break: int
    durations: TimerSettings


SessionListener = Callable[[SessionComplete], None]


class SessionTimer:
    """
    Focus/break countdown driven by an external tick source.

    All control calls return immediately; completion is observed through
    listeners registered with subscribe().
    """

    def __init__(self, settings: TimerSettings | None = None):
        self._lock = threading.RLock()
        self._listeners: list[SessionListener] = []
        self._settings, corrections = (settings or TimerSettings()).clamped()
        self._report(corrections)
        self._pending: TimerSettings | None = None
        self._mode = TimerMode.FOCUS
        self._cycle_minutes = self._settings.minutes_for(self._mode)
        self._remaining = self._cycle_minutes * 60
        self._running = False
        self._started = False
        self._sessions_completed = 0

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sessions_completed(self) -> int:
        return self._sessions_completed

    @property
    def settings(self) -> TimerSettings:
        """Settings the next cycle will use."""
        return self._pending or self._settings

    @property
    def status(self) -> TimerStatus:
        if self._running:
            return TimerStatus.RUNNING
        return TimerStatus.PAUSED if self._started else TimerStatus.IDLE

    def snapshot(self) -> SessionState:
        with self._lock:
            return SessionState(
                mode=self._mode,
                remaining_seconds=self._remaining,
                running=self._running,
                sessions_completed=self._sessions_completed,
                sessions_before_long_break=self._settings.sessions_before_long_break,
                durations=self._settings,
            )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a SessionComplete listener; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # =========================================================================
    # CONTROLS
    # =========================================================================

    def start(self) -> None:
        """Start or resume the countdown in the current mode."""
        with self._lock:
            if self._running:
                return
            if self._remaining <= 0:
                self._load_mode(self._mode)
            self._running = True
            self._started = True
            logger.debug(f"Timer started: {self._mode.value}, {self._remaining}s left")

    def pause(self) -> None:
        """Stop decrementing; idempotent."""
        with self._lock:
            if self._running:
                logger.debug(f"Timer paused with {self._remaining}s left")
            self._running = False

    def reset(self) -> None:
        """Restore the current mode's full duration and pause; session count is kept."""
        with self._lock:
            self._running = False
            self._started = True
            self._load_mode(self._mode)
            logger.debug(f"Timer reset: {self._mode.value}, {self._remaining}s")

    def set_mode(self, mode: TimerMode) -> None:
        """Switch mode, loading its full duration; the timer stops."""
        with self._lock:
            mode = TimerMode(mode)
            self._running = False
            self._started = False
            self._load_mode(mode)
            logger.debug(f"Timer mode set to {mode.value}")

    def configure(self, settings: TimerSettings) -> list[TimerMisuse]:
        """
        Update durations and cadence.

        Non-positive values are clamped to 1 and reported. Durations reach the
        countdown on the next reset() or mode change; while Idle they apply at once.

        Returns:
            Corrections applied to the given settings
        """
        with self._lock:
            fixed, corrections = settings.clamped()
            self._report(corrections)
            if self.status == TimerStatus.IDLE:
                self._settings = fixed
                self._pending = None
                self._load_mode(self._mode)
            else:
                # Cadence is not part of the countdown, so it applies immediately
                self._settings = replace(
                    self._settings, sessions_before_long_break=fixed.sessions_before_long_break
                )
                self._pending = fixed
            return corrections

    # =========================================================================
    # TICKS
    # =========================================================================

    def tick(self) -> SessionComplete | None:
        """Advance one second; returns the completion event when the countdown hits zero."""
        with self._lock:
            if not self._running:
                return None
            self._remaining -= 1
            if self._remaining > 0:
                return None
            return self._complete()

    def advance(self, seconds: int) -> list[SessionComplete]:
        """Process several ticks in one turn."""
        events = []
        for _ in range(seconds):
            event = self.tick()
            if event is not None:
                events.append(event)
        return events

    def _complete(self) -> SessionComplete:
        self._remaining = 0
        self._running = False
        event = SessionComplete(
            mode=self._mode,
            sessions_completed=self._sessions_completed,
            duration_minutes=self._cycle_minutes,
        )
        logger.info(f"Session complete: {event.mode.value} ({event.duration_minutes} min)")

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.exception(f"SessionComplete listener failed: {e}")

        if event.mode == TimerMode.FOCUS:
            self._sessions_completed += 1
            if self._sessions_completed % self._settings.sessions_before_long_break == 0:
                next_mode = TimerMode.LONG_BREAK
            else:
                next_mode = TimerMode.SHORT_BREAK
        else:
            next_mode = TimerMode.FOCUS

        self._started = False
        self._load_mode(next_mode)
        return event

    def _load_mode(self, mode: TimerMode) -> None:
        if self._pending is not None:
            self._settings = self._pending
            self._pending = None
        self._mode = mode
        self._cycle_minutes = self._settings.minutes_for(mode)
        self._remaining = self._cycle_minutes * 60

    @staticmethod
    def _report(corrections: list[TimerMisuse]) -> None:
        for misuse in corrections:
            logger.warning(f"Timer misuse corrected: {misuse}")


class TimerDriver:
    """Asyncio tick source: one tick per interval while started."""

    def __init__(self, timer: SessionTimer, interval: float = 1.0):
        self.timer = timer
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.timer.tick()
