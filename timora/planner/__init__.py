"""
Study plan generation.

Provides:
- RuleSet: declarative scheduling constraints
- generate: deterministic, rule-compliant plan generator
- find_violations / ensure_compliant: plan validation
- plan_with_fallback: optional remote optimizer with local fallback
"""

from timora.planner.generator import generate, generate_cached
from timora.planner.models import DaySchedule, Plan, PlanRequest, Slot
from timora.planner.rules import DEFAULT_RULES, BreakKind, RuleSet
from timora.planner.schemas import parse_request, plan_from_payload, plan_to_json, plan_to_payload
from timora.planner.validator import ensure_compliant, find_violations, is_compliant

__all__ = [
    "BreakKind",
    "DEFAULT_RULES",
    "DaySchedule",
    "Plan",
    "PlanRequest",
    "RuleSet",
    "Slot",
    "ensure_compliant",
    "find_violations",
    "generate",
    "generate_cached",
    "is_compliant",
    "parse_request",
    "plan_from_payload",
    "plan_to_json",
    "plan_to_payload",
]
