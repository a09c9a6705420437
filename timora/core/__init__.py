"""Shared building blocks for Timora."""

from timora.core.errors import (
    InvalidRequest,
    PersistenceFailure,
    RuleViolation,
    TimerMisuse,
    TimoraError,
)

__all__ = [
    "TimoraError",
    "InvalidRequest",
    "RuleViolation",
    "PersistenceFailure",
    "TimerMisuse",
]
