"""
Reward Ledger - turns completed sessions into progress.

Pure functions over an immutable UserProgress. Deduplication of events is
not done here: applying the same event twice rewards twice. Callers that
can see an event more than once (process restarts, replays) go through the
SyncCoordinator, which remembers recent event ids.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from timora.study.session_timer import SessionComplete, TimerMode

FOCUS_REWARD_COINS = 10
NEW_ACCOUNT_COINS = 10


@dataclass(frozen=True)
class UserProgress:
    """Counters shown on the learner's dashboard."""

    coins: int = 0
    total_focus_hours: float = 0.0
    current_streak: int = 0

    def __post_init__(self) -> None:
        if self.coins < 0 or self.total_focus_hours < 0 or self.current_streak < 0:
            raise ValueError(f"progress counters cannot be negative: {self}")

    def to_record(self) -> dict[str, Any]:
        return {
            "coins": self.coins,
            "totalFocusHours": self.total_focus_hours,
            "currentStreak": self.current_streak,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "UserProgress":
        return cls(
            coins=int(record.get("coins", 0) or 0),
            total_focus_hours=float(record.get("totalFocusHours", 0.0) or 0.0),
            current_streak=int(record.get("currentStreak", 0) or 0),
        )


def apply_completion(
    progress: UserProgress,
    event: SessionComplete,
    reward: int = FOCUS_REWARD_COINS,
) -> UserProgress:
    """Reward a Focus completion; break completions leave progress unchanged."""
    if event.mode != TimerMode.FOCUS:
        return progress
    return replace(
        progress,
        coins=progress.coins + reward,
        total_focus_hours=progress.total_focus_hours + event.duration_minutes / 60,
    )


def advance_streak(
    progress: UserProgress,
    last_active: date | None,
    today: date,
) -> UserProgress:
    """
    Default streak policy, compared on calendar days.

    Same day keeps the streak, the following day extends it, any longer gap
    (or no history) starts a new streak of 1.
    """
    if last_active == today:
        return progress if progress.current_streak > 0 else replace(progress, current_streak=1)
    if last_active is not None and (today - last_active).days == 1:
        return replace(progress, current_streak=progress.current_streak + 1)
    return replace(progress, current_streak=1)


def reset_progress() -> UserProgress:
    """Zero-equivalent progress, used when the learner asks for a reset."""
    return UserProgress()
