"""
Value objects for plan requests and generated plans.

All of these are frozen: regenerating produces a new Plan, nothing is
mutated in place.
"""

from __future__ import annotations

import hashlib
import json
import numbers
from dataclasses import dataclass, field
from datetime import time

from timora.core.errors import InvalidRequest
from timora.planner.rules import BreakKind, to_minutes


@dataclass(frozen=True)
class PlanRequest:
    """What the learner asked for."""

    subjects: tuple[str, ...]
    hours_per_day: float
    days: int
    goal: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.subjects, str) or not self.subjects:
            raise InvalidRequest("at least one subject is required", field="subjects")
        cleaned = []
        for subject in self.subjects:
            if not isinstance(subject, str) or not subject.strip():
                raise InvalidRequest(f"subject labels must be non-empty: {subject!r}", field="subjects")
            cleaned.append(subject.strip())
        object.__setattr__(self, "subjects", tuple(cleaned))

        hours = self.hours_per_day
        if isinstance(hours, bool) or not isinstance(hours, numbers.Real):
            raise InvalidRequest(f"hours per day must be a number: {hours!r}", field="hours_per_day")
        if not 0 < hours <= 24:
            raise InvalidRequest(f"hours per day must be in (0, 24]: {hours}", field="hours_per_day")

        days = self.days
        if isinstance(days, bool) or not isinstance(days, numbers.Integral):
            raise InvalidRequest(f"days must be an integer: {days!r}", field="days")
        if days <= 0:
            raise InvalidRequest(f"days must be positive: {days}", field="days")

        object.__setattr__(self, "goal", str(self.goal or ""))

    def to_dict(self) -> dict:
        return {
            "subjects": list(self.subjects),
            "hoursPerDay": self.hours_per_day,
            "days": self.days,
            "goal": self.goal,
        }

    def fingerprint(self) -> str:
        """Stable digest of the request, usable as a plan cache key."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Slot:
    """One interval of a day: a study block or a break."""

    start: time
    end: time
    label: str | BreakKind
    topic: str | None = None

    @property
    def is_study(self) -> bool:
        return not isinstance(self.label, BreakKind)

    @property
    def duration_minutes(self) -> int:
        return to_minutes(self.end) - to_minutes(self.start)

    @property
    def time_range(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"


@dataclass(frozen=True)
class DaySchedule:
    """Slots of a single day, ordered by start time."""

    day_index: int
    slots: tuple[Slot, ...] = field(default_factory=tuple)

    @property
    def study_slots(self) -> tuple[Slot, ...]:
        return tuple(slot for slot in self.slots if slot.is_study)

    @property
    def study_minutes(self) -> int:
        return sum(slot.duration_minutes for slot in self.study_slots)

    def count(self, kind: BreakKind) -> int:
        # BreakKind is a str enum; identity keeps a subject named "Lunch" out
        return sum(1 for slot in self.slots if slot.label is kind)


@dataclass(frozen=True)
class Plan:
    """A day-by-day timetable for one request."""

    meta: PlanRequest
    days: tuple[DaySchedule, ...]

    @property
    def total_study_minutes(self) -> int:
        return sum(day.study_minutes for day in self.days)

    def minutes_by_subject(self) -> dict[str, int]:
        totals = {subject: 0 for subject in self.meta.subjects}
        for day in self.days:
            for slot in day.study_slots:
                totals[slot.label] = totals.get(slot.label, 0) + slot.duration_minutes
        return totals
