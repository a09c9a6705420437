"""
Unit tests for the Pomodoro session timer.
"""

import asyncio

import pytest

from timora.core.errors import TimerMisuse
from timora.study import (
    SessionComplete,
    SessionTimer,
    TimerDriver,
    TimerMode,
    TimerSettings,
    TimerStatus,
)


@pytest.fixture
def quick_settings():
    """One-minute focus, so a cycle is 60 ticks."""
    return TimerSettings(focus_minutes=1, short_break_minutes=1, long_break_minutes=2, sessions_before_long_break=4)


@pytest.fixture
def timer(quick_settings):
    return SessionTimer(quick_settings)


@pytest.fixture
def events(timer):
    received: list[SessionComplete] = []
    timer.subscribe(received.append)
    return received


def run_cycle(timer):
    timer.start()
    return timer.advance(timer.remaining_seconds)


class TestInitialState:
    def test_defaults(self):
        timer = SessionTimer()
        assert timer.mode == TimerMode.FOCUS
        assert timer.remaining_seconds == 25 * 60
        assert timer.status == TimerStatus.IDLE
        assert timer.sessions_completed == 0

    def test_tick_while_idle_does_nothing(self, timer):
        assert timer.tick() is None
        assert timer.remaining_seconds == 60


class TestCompletion:
    """Reaching zero emits exactly one event and loads the next mode."""

    def test_exactly_one_event_per_focus(self, timer, events):
        timer.start()
        assert timer.advance(59) == []
        completed = timer.advance(1)

        assert len(completed) == 1
        assert events == completed
        event = events[0]
        assert event.mode == TimerMode.FOCUS
        assert event.duration_minutes == 1
        assert event.sessions_completed == 0
        assert event.event_id

    def test_timer_stops_after_completion(self, timer, events):
        run_cycle(timer)
        assert timer.running is False
        assert timer.status == TimerStatus.IDLE
        assert timer.advance(500) == []
        assert len(events) == 1

    def test_focus_then_short_break(self, timer):
        run_cycle(timer)
        assert timer.mode == TimerMode.SHORT_BREAK
        assert timer.sessions_completed == 1
        assert timer.remaining_seconds == 60

    def test_break_returns_to_focus_without_counting(self, timer, events):
        run_cycle(timer)
        run_cycle(timer)
        assert events[1].mode == TimerMode.SHORT_BREAK
        assert timer.mode == TimerMode.FOCUS
        assert timer.sessions_completed == 1

    def test_fourth_focus_leads_to_long_break(self, timer, events):
        for _ in range(3):
            run_cycle(timer)  # focus
            assert timer.mode == TimerMode.SHORT_BREAK
            run_cycle(timer)  # short break
        run_cycle(timer)

        assert timer.sessions_completed == 4
        assert timer.mode == TimerMode.LONG_BREAK
        assert timer.remaining_seconds == 120
        assert [e.mode for e in events].count(TimerMode.FOCUS) == 4

    def test_event_ids_are_unique(self, timer, events):
        for _ in range(4):
            run_cycle(timer)
        assert len({event.event_id for event in events}) == 4

    def test_listener_failure_does_not_break_timer(self, timer, events):
        def broken(event):
            raise RuntimeError("listener bug")

        timer.subscribe(broken)
        run_cycle(timer)
        assert len(events) == 1
        assert timer.mode == TimerMode.SHORT_BREAK

    def test_unsubscribe(self, timer):
        received = []
        unsubscribe = timer.subscribe(received.append)
        unsubscribe()
        run_cycle(timer)
        assert received == []


class TestControls:
    def test_pause_stops_countdown(self, timer, events):
        timer.start()
        timer.advance(30)
        timer.pause()
        timer.pause()

        assert timer.status == TimerStatus.PAUSED
        assert timer.advance(120) == []
        assert timer.remaining_seconds == 30
        assert events == []

    def test_resume_continues(self, timer, events):
        timer.start()
        timer.advance(30)
        timer.pause()
        timer.start()
        timer.advance(30)
        assert len(events) == 1

    def test_start_is_idempotent(self, timer):
        timer.start()
        timer.advance(10)
        timer.start()
        assert timer.remaining_seconds == 50

    def test_reset_restores_duration_and_keeps_sessions(self, timer):
        run_cycle(timer)
        run_cycle(timer)
        timer.start()
        timer.advance(45)
        timer.reset()

        assert timer.remaining_seconds == 60
        assert timer.running is False
        assert timer.status == TimerStatus.PAUSED
        assert timer.sessions_completed == 1

    def test_set_mode_stops_and_loads(self, timer, events):
        timer.start()
        timer.advance(10)
        timer.set_mode(TimerMode.LONG_BREAK)

        assert timer.mode == TimerMode.LONG_BREAK
        assert timer.remaining_seconds == 120
        assert timer.status == TimerStatus.IDLE
        assert events == []

    def test_snapshot(self, timer):
        timer.start()
        timer.advance(5)
        state = timer.snapshot()
        assert state.mode == TimerMode.FOCUS
        assert state.remaining_seconds == 55
        assert state.running is True
        assert state.sessions_before_long_break == 4


class TestConfigure:
    def test_idle_applies_immediately(self, timer):
        timer.configure(TimerSettings(focus_minutes=50, short_break_minutes=10, long_break_minutes=20))
        assert timer.remaining_seconds == 50 * 60

    def test_running_countdown_is_untouched(self, timer, events):
        timer.start()
        timer.advance(20)
        timer.configure(TimerSettings(focus_minutes=50, short_break_minutes=3, long_break_minutes=20))

        assert timer.remaining_seconds == 40
        timer.advance(40)
        assert events[0].duration_minutes == 1
        assert timer.mode == TimerMode.SHORT_BREAK
        assert timer.remaining_seconds == 3 * 60

    def test_reset_picks_up_pending_durations(self, timer):
        timer.start()
        timer.advance(20)
        timer.configure(TimerSettings(focus_minutes=30))
        timer.reset()
        assert timer.remaining_seconds == 30 * 60

    def test_cadence_change_applies_to_current_cycle(self, timer):
        timer.start()
        timer.configure(
            TimerSettings(focus_minutes=1, short_break_minutes=1, long_break_minutes=2, sessions_before_long_break=1)
        )
        timer.advance(60)
        assert timer.mode == TimerMode.LONG_BREAK

    @pytest.mark.parametrize("field", ["focus_minutes", "short_break_minutes", "long_break_minutes"])
    def test_non_positive_durations_are_clamped(self, timer, field):
        corrections = timer.configure(TimerSettings(**{field: 0}))

        assert len(corrections) == 1
        assert isinstance(corrections[0], TimerMisuse)
        assert corrections[0].field == field
        assert corrections[0].corrected == 1
        assert getattr(timer.settings, field) == 1

    def test_zero_cadence_is_clamped(self):
        timer = SessionTimer(TimerSettings(focus_minutes=1, sessions_before_long_break=0))
        assert timer.settings.sessions_before_long_break == 1
        timer.start()
        timer.advance(60)
        assert timer.mode == TimerMode.LONG_BREAK


class TestTimerSettings:
    def test_record_round_trip(self):
        settings = TimerSettings(focus_minutes=50, short_break_minutes=10, long_break_minutes=30, sessions_before_long_break=3)
        assert settings.to_record()["focusMinutes"] == 50
        assert TimerSettings.from_record(settings.to_record()) == settings

    def test_missing_keys_use_defaults(self):
        assert TimerSettings.from_record({"focusMinutes": 40}) == TimerSettings(focus_minutes=40)
        assert TimerSettings.from_record(None) == TimerSettings()


class TestTimerDriver:
    """The asyncio tick source."""

    @pytest.mark.asyncio
    async def test_driver_ticks_until_stopped(self, timer):
        driver = TimerDriver(timer, interval=0.01)
        timer.start()
        driver.start()
        assert driver.active
        await asyncio.sleep(0.05)
        await driver.stop()

        assert not driver.active
        assert timer.remaining_seconds < 60

    @pytest.mark.asyncio
    async def test_driver_completes_a_cycle(self):
        timer = SessionTimer(TimerSettings(focus_minutes=1))
        done = asyncio.Event()
        timer.subscribe(lambda event: done.set())
        driver = TimerDriver(timer, interval=0)
        timer.start()
        driver.start()
        await asyncio.wait_for(done.wait(), timeout=5)
        await driver.stop()

        assert timer.mode == TimerMode.SHORT_BREAK
        assert timer.sessions_completed == 1
