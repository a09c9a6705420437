"""
Deterministic plan generator.

Packs each day's study budget into blocks of at most one hour, interleaves
micro and long breaks, and wraps the study window with the mandatory meals
and free time. Output is rule-compliant by construction and identical for
identical inputs, so plans can be memoised by request fingerprint.

Day layout (gapless from day_start to day_end):
    Breakfast | blocks ending by lunch_at | Lunch | later blocks | Free Time | Dinner

Breakfast and Dinner sit at fixed times at the edges of the window. Lunch
follows the last block that ends by lunch_at, and Free Time
absorbs whatever the study window leaves before Dinner.
"""

from __future__ import annotations

from datetime import time
from functools import lru_cache

from loguru import logger

from timora.core.errors import InvalidRequest
from timora.planner.models import DaySchedule, Plan, PlanRequest, Slot
from timora.planner.rules import DEFAULT_RULES, BreakKind, RuleSet, budget_minutes, to_minutes


def split_budget(hours_per_day: float, rules: RuleSet = DEFAULT_RULES) -> list[int]:
    """
    Split a day's study budget into block lengths in minutes.

    Full blocks take max_block_minutes; a remainder of at least
    min_final_block_minutes becomes a final shorter block, anything smaller
    is dropped (Free Time absorbs it).
    """
    budget = budget_minutes(hours_per_day)
    full, remainder = divmod(budget, rules.max_block_minutes)
    blocks = [rules.max_block_minutes] * full
    if remainder >= rules.min_final_block_minutes:
        blocks.append(remainder)
    elif remainder:
        logger.debug(f"Dropping {remainder} min remainder below {rules.min_final_block_minutes} min")
    return blocks


def break_after(position: int, rules: RuleSet = DEFAULT_RULES) -> BreakKind:
    """Break that follows the block at 1-based position within a day."""
    if position % rules.long_break_after_blocks == 0:
        return BreakKind.LONG_BREAK
    return BreakKind.MICRO_BREAK


def _break_minutes(kind: BreakKind, rules: RuleSet) -> int:
    if kind == BreakKind.LONG_BREAK:
        return rules.long_break_minutes
    return rules.micro_break_minutes


def _required_minutes(blocks: list[int], rules: RuleSet) -> int:
    breaks = sum(_break_minutes(break_after(pos, rules), rules) for pos in range(1, len(blocks)))
    meals = rules.breakfast_minutes + rules.lunch_minutes + rules.dinner_minutes
    return sum(blocks) + breaks + meals + rules.min_free_time_minutes


def fit_to_window(blocks: list[int], rules: RuleSet = DEFAULT_RULES) -> list[int]:
    """Shorten or drop trailing blocks until the day fits inside the day window."""
    fitted = list(blocks)
    while fitted:
        overflow = _required_minutes(fitted, rules) - rules.window_minutes
        if overflow <= 0:
            break
        if fitted[-1] - overflow >= rules.min_final_block_minutes:
            fitted[-1] -= overflow
        else:
            fitted.pop()
    if fitted != blocks:
        logger.warning(
            f"Day window {rules.day_start:%H:%M}-{rules.day_end:%H:%M} fits only "
            f"{sum(fitted)} of {sum(blocks)} study minutes; clipping the rest"
        )
    return fitted


def lunch_position(blocks: list[int], rules: RuleSet = DEFAULT_RULES) -> int:
    """Number of blocks that end by lunch_at when laid out after Breakfast."""
    end = to_minutes(rules.day_start) + rules.breakfast_minutes
    lunch_after = 0
    for position, minutes in enumerate(blocks, start=1):
        end += minutes
        if end > to_minutes(rules.lunch_at):
            break
        lunch_after = position
        end += _break_minutes(break_after(position, rules), rules)
    return lunch_after


class _DayBuilder:
    """Lays slots end to end from a start minute."""

    def __init__(self, start_minute: int):
        self.cursor = start_minute
        self.slots: list[Slot] = []

    def place(self, minutes: int, label: str | BreakKind, topic: str | None = None) -> None:
        start = self.cursor
        self.cursor += minutes
        self.slots.append(
            Slot(
                start=time(start // 60, start % 60),
                end=time(self.cursor // 60, self.cursor % 60),
                label=label,
                topic=topic,
            )
        )


def build_day(day_index: int, request: PlanRequest, rules: RuleSet = DEFAULT_RULES) -> DaySchedule:
    """Build the schedule for one 1-based day."""
    subjects = request.subjects
    blocks = fit_to_window(split_budget(request.hours_per_day, rules), rules)
    offset = (day_index - 1) % len(subjects)
    lunch_after = lunch_position(blocks, rules)

    day = _DayBuilder(to_minutes(rules.day_start))
    day.place(rules.breakfast_minutes, BreakKind.BREAKFAST)
    if lunch_after == 0:
        day.place(rules.lunch_minutes, BreakKind.LUNCH)

    for i, minutes in enumerate(blocks):
        position = i + 1
        subject = subjects[(offset + i) % len(subjects)]
        topic = rules.topic_cycle[(day_index - 1 + i // len(subjects)) % len(rules.topic_cycle)]
        day.place(minutes, subject, topic)
        if position < len(blocks):
            kind = break_after(position, rules)
            day.place(_break_minutes(kind, rules), kind)
        if position == lunch_after:
            day.place(rules.lunch_minutes, BreakKind.LUNCH)

    day.place(rules.dinner_start - day.cursor, BreakKind.FREE_TIME)
    day.place(rules.dinner_minutes, BreakKind.DINNER)
    return DaySchedule(day_index=day_index, slots=tuple(day.slots))


def generate(request: PlanRequest, rules: RuleSet = DEFAULT_RULES) -> Plan:
    """
    Generate a rule-compliant plan.

    Args:
        request: Validated plan request
        rules: Constraint set to honour

    Returns:
        Plan with one DaySchedule per requested day

    Raises:
        InvalidRequest: If the request is not a PlanRequest
    """
    if not isinstance(request, PlanRequest):
        raise InvalidRequest(f"expected a PlanRequest, got {type(request).__name__}")

    days = tuple(build_day(index, request, rules) for index in range(1, request.days + 1))
    plan = Plan(meta=request, days=days)
    logger.debug(
        f"Generated {request.days}-day plan for {len(request.subjects)} subject(s), "
        f"{plan.total_study_minutes} study minutes"
    )
    return plan


@lru_cache(maxsize=128)
def generate_cached(request: PlanRequest, rules: RuleSet = DEFAULT_RULES) -> Plan:
    """Memoised generate(); safe because plans are immutable."""
    return generate(request, rules)
