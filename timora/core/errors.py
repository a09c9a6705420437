"""
Error taxonomy for Timora.

None of these terminate the process: requests are rejected before any work
is done, rule violations trigger a fallback, persistence failures are retried,
and timer misuse is corrected in place.
"""

from __future__ import annotations

from typing import Any


class TimoraError(Exception):
    """Base class for all Timora errors."""

    pass


class InvalidRequest(TimoraError, ValueError):
    """Raised when a plan request has malformed subjects, hours or days."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class RuleViolation(TimoraError):
    """Raised when a plan does not satisfy its RuleSet."""

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        summary = "; ".join(self.violations[:3])
        if len(self.violations) > 3:
            summary += f" (+{len(self.violations) - 3} more)"
        super().__init__(f"Plan violates {len(self.violations)} rule(s): {summary}")


class PersistenceFailure(TimoraError):
    """Raised or reported when a write to the external store fails."""

    def __init__(self, message: str, attempts: int = 1, cause: BaseException | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.cause = cause


class TimerMisuse(TimoraError):
    """Describes a timer setting that was corrected instead of rejected."""

    def __init__(self, field: str, value: Any, corrected: Any):
        super().__init__(f"{field}={value!r} is not allowed; using {corrected!r}")
        self.field = field
        self.value = value
        self.corrected = corrected
