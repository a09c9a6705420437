"""
Focus sessions and rewards.

Provides:
- SessionTimer: Pomodoro state machine with SessionComplete events
- TimerDriver: asyncio one-second tick source
- Reward ledger: coins and focus hours per completed session
"""

from timora.study.reward_ledger import (
    FOCUS_REWARD_COINS,
    UserProgress,
    advance_streak,
    apply_completion,
    reset_progress,
)
from timora.study.session_timer import (
    SessionComplete,
    SessionState,
    SessionTimer,
    TimerDriver,
    TimerMode,
    TimerSettings,
    TimerStatus,
)

__all__ = [
    "FOCUS_REWARD_COINS",
    "SessionComplete",
    "SessionState",
    "SessionTimer",
    "TimerDriver",
    "TimerMode",
    "TimerSettings",
    "TimerStatus",
    "UserProgress",
    "advance_streak",
    "apply_completion",
    "reset_progress",
]
