"""
Unit tests for the reward ledger and streak policy.
"""

from datetime import timedelta

import pytest

from timora.study import (
    FOCUS_REWARD_COINS,
    SessionComplete,
    TimerMode,
    UserProgress,
    advance_streak,
    apply_completion,
    reset_progress,
)


class TestApplyCompletion:
    def test_focus_rewards_coins_and_hours(self, focus_event):
        progress = apply_completion(UserProgress(coins=10), focus_event(minutes=25))
        assert progress.coins == 10 + FOCUS_REWARD_COINS
        assert progress.total_focus_hours == pytest.approx(25 / 60)

    @pytest.mark.parametrize("mode", [TimerMode.SHORT_BREAK, TimerMode.LONG_BREAK])
    def test_breaks_change_nothing(self, mode):
        before = UserProgress(coins=40, total_focus_hours=2.0, current_streak=3)
        event = SessionComplete(mode=mode, sessions_completed=1, duration_minutes=5)
        assert apply_completion(before, event) == before

    def test_no_deduplication_here(self, focus_event):
        """Dedup belongs to the coordinator; the ledger itself counts every call."""
        event = focus_event()
        once = apply_completion(UserProgress(), event)
        twice = apply_completion(once, event)
        assert twice.coins == 2 * FOCUS_REWARD_COINS

    def test_custom_reward(self, focus_event):
        assert apply_completion(UserProgress(), focus_event(), reward=3).coins == 3

    def test_input_is_not_mutated(self, focus_event):
        before = UserProgress()
        apply_completion(before, focus_event())
        assert before == UserProgress()


class TestUserProgress:
    @pytest.mark.parametrize(
        "kwargs",
        [{"coins": -1}, {"total_focus_hours": -0.5}, {"current_streak": -2}],
    )
    def test_negative_counters_rejected(self, kwargs):
        with pytest.raises(ValueError):
            UserProgress(**kwargs)

    def test_record_round_trip(self):
        progress = UserProgress(coins=30, total_focus_hours=1.25, current_streak=2)
        assert progress.to_record() == {"coins": 30, "totalFocusHours": 1.25, "currentStreak": 2}
        assert UserProgress.from_record(progress.to_record()) == progress

    def test_from_partial_record(self):
        assert UserProgress.from_record({"coins": 5}) == UserProgress(coins=5)

    def test_reset(self):
        assert reset_progress() == UserProgress(coins=0, total_focus_hours=0.0, current_streak=0)


class TestStreak:
    """Calendar-day streak policy."""

    def test_first_activity_starts_streak(self, today):
        assert advance_streak(UserProgress(), None, today).current_streak == 1

    def test_same_day_keeps_streak(self, today):
        progress = UserProgress(current_streak=4)
        assert advance_streak(progress, today, today).current_streak == 4

    def test_next_day_extends_streak(self, today):
        progress = UserProgress(current_streak=4)
        assert advance_streak(progress, today - timedelta(days=1), today).current_streak == 5

    def test_gap_restarts_streak(self, today):
        progress = UserProgress(current_streak=4)
        assert advance_streak(progress, today - timedelta(days=3), today).current_streak == 1

    def test_same_day_after_reset(self, today):
        assert advance_streak(UserProgress(current_streak=0), today, today).current_streak == 1
