"""
Plan validation against a RuleSet.

Used for plans that did not come from the local generator (a remote
optimizer) and by the test-suite for generated ones.
"""

from __future__ import annotations

from datetime import time

from loguru import logger

from timora.core.errors import RuleViolation
from timora.planner.models import DaySchedule, Plan
from timora.planner.rules import DEFAULT_RULES, MEALS, BreakKind, RuleSet, budget_minutes, to_minutes


def _clock(minutes: int) -> str:
    return f"{time(minutes // 60, minutes % 60):%H:%M}"


def _check_coverage(day: DaySchedule, rules: RuleSet) -> list[str]:
    """Slots must tile the day window end to end."""
    if not day.slots:
        return [f"day {day.day_index}: has no slots"]

    problems = []
    previous_end = to_minutes(rules.day_start)
    for slot in day.slots:
        start, end = to_minutes(slot.start), to_minutes(slot.end)
        if end <= start:
            problems.append(f"day {day.day_index}: slot {slot.time_range} is empty or crosses midnight")
        if start > previous_end:
            problems.append(
                f"day {day.day_index}: {start - previous_end} min unscheduled from {_clock(previous_end)}"
            )
        elif start < previous_end:
            problems.append(f"day {day.day_index}: slot {slot.time_range} overlaps or is out of order")
        previous_end = max(previous_end, end)

    day_end = to_minutes(rules.day_end)
    if previous_end < day_end:
        problems.append(
            f"day {day.day_index}: {day_end - previous_end} min unscheduled from {_clock(previous_end)}"
        )
    elif previous_end > day_end:
        problems.append(f"day {day.day_index}: runs until {_clock(previous_end)}, past {rules.day_end:%H:%M}")
    return problems


def _check_break_slots(day: DaySchedule, rules: RuleSet) -> list[str]:
    problems = []
    for slot in day.slots:
        if slot.is_study:
            continue
        kind, minutes = slot.label, slot.duration_minutes
        if kind is BreakKind.MICRO_BREAK:
            low, high = rules.micro_break_range
        elif kind is BreakKind.LONG_BREAK:
            low, high = rules.long_break_range
        elif kind in MEALS:
            low = high = rules.meal_minutes(kind)
        else:
            low, high = rules.min_free_time_minutes, rules.window_minutes
        if not low <= minutes <= high:
            expected = f"{low}" if low == high else f"{low}-{high}"
            problems.append(
                f"day {day.day_index}: {kind.value} {slot.time_range} is {minutes} min (expected {expected})"
            )
        if kind is BreakKind.DINNER and to_minutes(slot.start) != rules.dinner_start:
            problems.append(
                f"day {day.day_index}: Dinner starts at {slot.start:%H:%M}, expected {_clock(rules.dinner_start)}"
            )
    return problems


def _check_breaks(day: DaySchedule, rules: RuleSet) -> list[str]:
    """Rest between blocks is counted from break slots only, never from empty time."""
    problems = []
    run = 0
    rest = None
    for slot in day.slots:
        if not slot.is_study:
            if rest is not None:
                rest += slot.duration_minutes
            continue
        if rest is not None:
            if rest < rules.micro_break_range[0]:
                problems.append(f"day {day.day_index}: only {rest} min of break before {slot.time_range}")
            if rest >= rules.long_break_range[0]:
                run = 0
        run += 1
        if run > rules.long_break_after_blocks:
            problems.append(
                f"day {day.day_index}: {run} blocks in a row without a long break at {slot.time_range}"
            )
        rest = 0
    return problems


def find_violations(plan: Plan, rules: RuleSet = DEFAULT_RULES) -> list[str]:
    """Return every rule the plan breaks; an empty list means compliant."""
    request = plan.meta
    cap = budget_minutes(request.hours_per_day)
    subjects = set(request.subjects)
    problems: list[str] = []

    if len(plan.days) != request.days:
        problems.append(f"plan has {len(plan.days)} day(s), expected {request.days}")

    for expected_index, day in enumerate(plan.days, start=1):
        if day.day_index != expected_index:
            problems.append(f"day {day.day_index} found where day {expected_index} was expected")

        problems.extend(_check_coverage(day, rules))

        if day.study_minutes > cap:
            problems.append(f"day {day.day_index}: {day.study_minutes} study min exceeds cap of {cap}")

        for slot in day.study_slots:
            if slot.duration_minutes > rules.max_block_minutes:
                problems.append(
                    f"day {day.day_index}: block {slot.time_range} is {slot.duration_minutes} min "
                    f"(max {rules.max_block_minutes})"
                )
            if slot.label not in subjects:
                problems.append(f"day {day.day_index}: unknown subject or break label {slot.label!r}")

        for kind in rules.mandatory_slots:
            found = day.count(kind)
            if found != 1:
                problems.append(f"day {day.day_index}: expected one {kind.value}, found {found}")

        problems.extend(_check_break_slots(day, rules))
        problems.extend(_check_breaks(day, rules))

    return problems


def is_compliant(plan: Plan, rules: RuleSet = DEFAULT_RULES) -> bool:
    return not find_violations(plan, rules)


def ensure_compliant(plan: Plan, rules: RuleSet = DEFAULT_RULES) -> Plan:
    """
    Return the plan unchanged if it satisfies the rules.

    Raises:
        RuleViolation: Listing every broken rule
    """
    problems = find_violations(plan, rules)
    if problems:
        logger.debug(f"Plan failed validation with {len(problems)} violation(s)")
        raise RuleViolation(problems)
    return plan
