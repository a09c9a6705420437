"""
Declarative scheduling rules.

A RuleSet is pure data: the generator reads it to build plans and the
validator reads it to check plans produced elsewhere. The nine rules are:

1. Study time per day never exceeds the requested hours.
2. A study block lasts at most one hour.
3. A micro break (10-15 min) follows each block.
4. A long break (30-60 min) replaces it after every 4th block.
5. Every day has Breakfast, Lunch, Dinner and Free Time. Breakfast opens
   the day, Lunch follows the last block that ends by lunch time and
   Dinner closes the day at a fixed hour.
6. Break slots only use the allowed break labels.
7. The daily cap holds after every adjustment (no rounding up).
8. Time in the day window that is not study is break time.
9. Plans are exchanged as structured data (see planner.schemas).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import time
from enum import Enum


class BreakKind(str, Enum):
    """Kinds of non-study slots."""

    MICRO_BREAK = "MicroBreak"
    LONG_BREAK = "LongBreak"
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    FREE_TIME = "FreeTime"


MEALS = (BreakKind.BREAKFAST, BreakKind.LUNCH, BreakKind.DINNER)

# Labels the source planner prompt allowed for break slots
ALLOWED_BREAK_LABELS = (
    "Break",
    "Rest",
    "Free Time",
    "Snack Break",
    "Nap",
    "Stretching",
    "Walk",
    "Lunch",
    "Dinner",
    "Breakfast",
    "Long Break",
)


def parse_clock(value: str | time) -> time:
    """Parse an HH:MM string into a time."""
    if isinstance(value, time):
        return value
    hours, _, minutes = value.strip().partition(":")
    return time(int(hours), int(minutes or 0))


def to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def budget_minutes(hours: float) -> int:
    """Whole study minutes in a daily budget of `hours`, never rounded up."""
    # 1.15 * 60 is 68.999...; round away float noise before flooring
    return math.floor(round(hours * 60, 6))


@dataclass(frozen=True)
class RuleSet:
    """The constraint set every Plan must satisfy."""

    max_block_minutes: int = 60
    micro_break_minutes: int = 10
    micro_break_range: tuple[int, int] = (10, 15)
    long_break_minutes: int = 30
    long_break_range: tuple[int, int] = (30, 60)
    long_break_after_blocks: int = 4
    min_final_block_minutes: int = 15

    breakfast_minutes: int = 30
    lunch_minutes: int = 60
    dinner_minutes: int = 60
    min_free_time_minutes: int = 30

    day_start: time = time(9, 0)
    day_end: time = time(20, 0)
    lunch_at: time = time(13, 0)

    topic_cycle: tuple[str, ...] = ("Practice", "Revision", "Theory")
    mandatory_slots: tuple[BreakKind, ...] = (
        BreakKind.BREAKFAST,
        BreakKind.LUNCH,
        BreakKind.DINNER,
        BreakKind.FREE_TIME,
    )
    allowed_break_labels: tuple[str, ...] = ALLOWED_BREAK_LABELS

    def __post_init__(self) -> None:
        low, high = self.micro_break_range
        if not low <= self.micro_break_minutes <= high:
            raise ValueError(f"micro_break_minutes must lie in {low}-{high}")
        low, high = self.long_break_range
        if not low <= self.long_break_minutes <= high:
            raise ValueError(f"long_break_minutes must lie in {low}-{high}")
        if self.max_block_minutes <= 0 or self.long_break_after_blocks < 1:
            raise ValueError("block size and long-break cadence must be positive")
        if to_minutes(self.day_end) <= to_minutes(self.day_start):
            raise ValueError("day_end must be after day_start")
        if not to_minutes(self.day_start) < to_minutes(self.lunch_at) < self.dinner_start:
            raise ValueError("lunch_at must fall between day_start and dinner")
        fixed = self.breakfast_minutes + self.lunch_minutes + self.dinner_minutes + self.min_free_time_minutes
        if self.window_minutes < fixed:
            raise ValueError(f"day window must hold at least {fixed} min of meals and free time")

    @property
    def window_minutes(self) -> int:
        """Length of the modeled day window."""
        return to_minutes(self.day_end) - to_minutes(self.day_start)

    @property
    def dinner_start(self) -> int:
        """Minute of the day Dinner starts; Dinner always ends at day_end."""
        return to_minutes(self.day_end) - self.dinner_minutes

    def meal_minutes(self, kind: BreakKind) -> int:
        return {
            BreakKind.BREAKFAST: self.breakfast_minutes,
            BreakKind.LUNCH: self.lunch_minutes,
            BreakKind.DINNER: self.dinner_minutes,
        }[kind]

    @classmethod
    def from_settings(cls, settings) -> "RuleSet":
        """Build a RuleSet whose day window comes from application settings."""
        return cls(
            day_start=parse_clock(settings.plan_day_start),
            day_end=parse_clock(settings.plan_day_end),
            lunch_at=parse_clock(settings.plan_lunch_at),
        )

    def describe(self) -> list[str]:
        """Human-readable rules, as sent to a remote optimizer."""
        return [
            "Total study time per day must not exceed the requested hours.",
            f"Each study block lasts at most {self.max_block_minutes} minutes.",
            f"After each block add a {self.micro_break_range[0]}-{self.micro_break_range[1]} min micro break.",
            f"After every {self.long_break_after_blocks} blocks add a "
            f"{self.long_break_range[0]}-{self.long_break_range[1]} min long break.",
            f"Every day runs without gaps from {self.day_start:%H:%M} to {self.day_end:%H:%M}: "
            f"Breakfast ({self.breakfast_minutes} min) first, Lunch ({self.lunch_minutes} min) "
            f"near {self.lunch_at:%H:%M}, Free Time (at least {self.min_free_time_minutes} min), "
            f"then Dinner ({self.dinner_minutes} min) ending the day.",
            "Allowed break labels: " + ", ".join(self.allowed_break_labels) + ".",
            "Never exceed the daily study hours.",
            "Remaining time is breaks only.",
            "Output JSON only.",
        ]


DEFAULT_RULES = RuleSet()
