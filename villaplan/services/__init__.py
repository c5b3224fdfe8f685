"""Planning services."""

from .absences import AbsenceService
from .annual_days import AnnualDayCounterService
from .appointments import AppointmentService
from .assignment import AssignmentService
from .availability import AvailabilityResolver
from .conflicts import ConflictDetector
from .counters import AbsenceCounterService, PaidLeaveCounterService
from .generator import SkeletonGenerator
from .validation import ValidationEngine, ValidationResult
from .working_time import WorkingTimeCalculator, report_to_frame, worked_days_for_window

__all__ = [
    "AbsenceService",
    "AnnualDayCounterService",
    "AppointmentService",
    "AssignmentService",
    "AvailabilityResolver",
    "ConflictDetector",
    "AbsenceCounterService",
    "PaidLeaveCounterService",
    "SkeletonGenerator",
    "ValidationEngine",
    "ValidationResult",
    "WorkingTimeCalculator",
    "report_to_frame",
    "worked_days_for_window",
]
