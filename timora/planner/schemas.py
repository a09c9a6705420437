"""
Wire schemas for plan requests and responses.

Shape shared with renderers and remote optimizers:

    request:  {subjects: [str], hoursPerDay: number, days: int, goal: str}
    response: {plan: {meta: {...request}, days: [{day: int, slots: [
                  {time: "HH:MM - HH:MM", subject: str, topic?: str}]}]}}
"""

from __future__ import annotations

import re
from datetime import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from timora.core.errors import InvalidRequest, RuleViolation
from timora.planner.models import DaySchedule, Plan, PlanRequest, Slot
from timora.planner.rules import DEFAULT_RULES, BreakKind, RuleSet

TIME_RANGE_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})\s*$")

BREAK_LABELS: dict[BreakKind, str] = {
    BreakKind.MICRO_BREAK: "Break",
    BreakKind.LONG_BREAK: "Long Break",
    BreakKind.BREAKFAST: "Breakfast",
    BreakKind.LUNCH: "Lunch",
    BreakKind.DINNER: "Dinner",
    BreakKind.FREE_TIME: "Free Time",
}

# Labels that name a specific kind regardless of duration
_FIXED_LABELS = {
    "long break": BreakKind.LONG_BREAK,
    "breakfast": BreakKind.BREAKFAST,
    "lunch": BreakKind.LUNCH,
    "dinner": BreakKind.DINNER,
    "free time": BreakKind.FREE_TIME,
}


class PlanRequestPayload(BaseModel):
    """Incoming plan request."""

    model_config = ConfigDict(populate_by_name=True)

    subjects: list[str] = Field(..., description="Ordered subject labels")
    hours_per_day: float = Field(..., alias="hoursPerDay", description="Daily study-hour budget")
    days: int = Field(..., description="Number of days to plan")
    goal: str = Field(default="", description="Opaque goal label")

    def to_request(self) -> PlanRequest:
        return PlanRequest(
            subjects=tuple(self.subjects),
            hours_per_day=self.hours_per_day,
            days=self.days,
            goal=self.goal,
        )


class SlotPayload(BaseModel):
    time: str = Field(..., description="HH:MM - HH:MM")
    subject: str
    topic: str | None = None


class DayPayload(BaseModel):
    day: int
    slots: list[SlotPayload] = Field(default_factory=list)


class PlanPayload(BaseModel):
    meta: PlanRequestPayload
    days: list[DayPayload] = Field(default_factory=list)


class PlanResponse(BaseModel):
    plan: PlanPayload | None = None


def parse_request(data: dict[str, Any]) -> PlanRequest:
    """
    Parse a wire request into a PlanRequest.

    Raises:
        InvalidRequest: If a field is missing, mistyped or out of range
    """
    try:
        return PlanRequestPayload.model_validate(data).to_request()
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise InvalidRequest(f"{field}: {first.get('msg')}", field=field or None) from e


def _slot_to_payload(slot: Slot) -> SlotPayload:
    if slot.is_study:
        return SlotPayload(time=slot.time_range, subject=slot.label, topic=slot.topic)
    return SlotPayload(time=slot.time_range, subject=BREAK_LABELS[slot.label])


def plan_to_payload(plan: Plan) -> dict[str, Any]:
    """Serialize a plan to the wire shape (topic omitted on break slots)."""
    payload = PlanPayload(
        meta=PlanRequestPayload(
            subjects=list(plan.meta.subjects),
            hours_per_day=plan.meta.hours_per_day,
            days=plan.meta.days,
            goal=plan.meta.goal,
        ),
        days=[
            DayPayload(day=day.day_index, slots=[_slot_to_payload(slot) for slot in day.slots])
            for day in plan.days
        ],
    )
    return payload.model_dump(by_alias=True, exclude_none=True)


def plan_to_json(plan: Plan) -> str:
    """Byte-stable JSON for a plan."""
    return PlanResponse.model_validate({"plan": plan_to_payload(plan)}).model_dump_json(
        by_alias=True, exclude_none=True
    )


def _parse_time_range(value: str) -> tuple[time, time]:
    match = TIME_RANGE_PATTERN.match(value)
    if not match:
        raise ValueError(f"malformed time range {value!r}")
    h1, m1, h2, m2 = (int(part) for part in match.groups())
    return time(h1, m1), time(h2, m2)


def _classify_label(label: str, minutes: int, subjects: set[str], rules: RuleSet) -> str | BreakKind:
    if label in subjects:
        return label
    fixed = _FIXED_LABELS.get(label.strip().lower())
    if fixed is not None:
        return fixed
    allowed = {name.lower() for name in rules.allowed_break_labels}
    if label.strip().lower() in allowed:
        if minutes >= rules.long_break_range[0]:
            return BreakKind.LONG_BREAK
        return BreakKind.MICRO_BREAK
    # Unknown labels stay study-labelled so validation reports them
    return label


def plan_from_payload(
    data: dict[str, Any],
    request: PlanRequest,
    rules: RuleSet = DEFAULT_RULES,
) -> Plan:
    """
    Parse a wire plan produced elsewhere.

    The meta block is replaced by the request actually sent, so a remote
    collaborator cannot loosen the daily cap by echoing different hours.

    Raises:
        RuleViolation: If the payload is structurally unusable
    """
    try:
        payload = PlanPayload.model_validate(data)
        days = []
        subjects = set(request.subjects)
        for day in payload.days:
            slots = []
            for item in day.slots:
                start, end = _parse_time_range(item.time)
                minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
                label = _classify_label(item.subject, minutes, subjects, rules)
                topic = item.topic if not isinstance(label, BreakKind) else None
                slots.append(Slot(start=start, end=end, label=label, topic=topic))
            days.append(DaySchedule(day_index=day.day, slots=tuple(slots)))
    except (ValidationError, ValueError) as e:
        raise RuleViolation([f"unreadable plan payload: {e}"]) from e
    return Plan(meta=request, days=tuple(days))
