"""Exception hierarchy for the planning core.

Every refusal raised by a service derives from :class:`PlanningError` so the
caller can catch one type, show the message and let the user retry.
"""

from __future__ import annotations

from typing import Dict, List


class PlanningError(Exception):
    """Base class for recoverable business-rule refusals."""


class InvalidWindowError(PlanningError, ValueError):
    """Raised when an end timestamp does not come after its start."""


class InvalidTransitionError(PlanningError):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, entity: str, current, target):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity}: transition {current.value} -> {target.value} is not allowed")


class InsufficientBalanceError(PlanningError):
    """Raised when a leave counter cannot cover the requested days."""


class OverlappingAbsenceError(PlanningError):
    """Raised when a new absence overlaps a pending or approved one."""


class PlanningLockedError(PlanningError):
    """Raised when a validated planning month is mutated."""


class StaffedMonthError(PlanningError):
    """Raised when regenerating a skeleton would drop existing assignments."""


class VillaRequiredError(PlanningError):
    """Raised when a main shift is created without a villa."""


class ConcurrentUpdateError(PlanningError):
    """Raised when a concurrent writer committed first on the same versioned row."""


class PlanningValidationFailed(PlanningError):
    """Raised by the month lock when the plan-wide validation reports errors."""

    def __init__(self, result):
        self.result = result
        messages = "; ".join(issue.message for issue in result.errors)
        super().__init__(f"Planning cannot be validated: {messages}")


class PatternValidationError(PlanningError):
    """Collected structural errors of a shift pattern.

    All problems are gathered before raising so the caller can display the
    full list at once.
    """

    def __init__(self, errors: List[Dict[str, str]], warnings: List[Dict[str, str]] | None = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__(" ".join(error["message"] for error in self.errors))


class DuplicatePatternNameError(PatternValidationError):
    """Raised when a pattern name is blank or already taken."""


class MissingReasonError(PlanningError, ValueError):
    """Raised when a rejection is submitted without a reason."""
