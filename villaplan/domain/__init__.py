"""Domain models and data access layer."""

from .models import (
    Absence,
    AbsenceType,
    Affectation,
    AnnualDayCounter,
    Appointment,
    Base,
    LeaveCounter,
    PaidLeaveCounter,
    PlanningMonth,
    ShiftPattern,
    User,
    Villa,
)
from .repositories import (
    AbsenceRepository,
    AbsenceTypeRepository,
    AffectationRepository,
    AnnualDayCounterRepository,
    AppointmentRepository,
    LeaveCounterRepository,
    PaidLeaveCounterRepository,
    PlanningMonthRepository,
    ShiftPatternRepository,
    UserRepository,
    VillaRepository,
)

__all__ = [
    "Absence",
    "AbsenceType",
    "Affectation",
    "AnnualDayCounter",
    "Appointment",
    "Base",
    "LeaveCounter",
    "PaidLeaveCounter",
    "PlanningMonth",
    "ShiftPattern",
    "User",
    "Villa",
    "AbsenceRepository",
    "AbsenceTypeRepository",
    "AffectationRepository",
    "AnnualDayCounterRepository",
    "AppointmentRepository",
    "LeaveCounterRepository",
    "PaidLeaveCounterRepository",
    "PlanningMonthRepository",
    "ShiftPatternRepository",
    "UserRepository",
    "VillaRepository",
]
