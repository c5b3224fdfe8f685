"""Closed status and kind enumerations with their transition tables."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class AffectationKind(str, Enum):
    """Kinds of shift slots."""
    MAIN_24H = "garde_24h"
    MAIN_48H = "garde_48h"
    REINFORCEMENT = "renfort"

    @property
    def is_main(self) -> bool:
        """True for the two main-shift kinds, which must carry a villa."""
        return self in (AffectationKind.MAIN_24H, AffectationKind.MAIN_48H)

    @property
    def nominal_hours(self) -> int | None:
        return {
            AffectationKind.MAIN_24H: 24,
            AffectationKind.MAIN_48H: 48,
        }.get(self)


class AffectationStatus(str, Enum):
    """Lifecycle of a shift slot."""
    DRAFT = "draft"
    VALIDATED = "validated"
    TO_REPLACE_ABSENCE = "to_replace_absence"
    TO_REPLACE_APPOINTMENT = "to_replace_rdv"


class PlanningStatus(str, Enum):
    DRAFT = "draft"
    VALIDATED = "validated"


class AbsenceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class AppointmentStatus(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


CONFLICT_STATUSES: FrozenSet[AffectationStatus] = frozenset({
    AffectationStatus.TO_REPLACE_ABSENCE,
    AffectationStatus.TO_REPLACE_APPOINTMENT,
})

# Statuses whose slots count as worked time for payroll and annual limits.
COUNTED_STATUSES: FrozenSet[AffectationStatus] = frozenset({
    AffectationStatus.VALIDATED,
    AffectationStatus.TO_REPLACE_ABSENCE,
    AffectationStatus.TO_REPLACE_APPOINTMENT,
})

# Status a slot takes when its conflict check finds nothing. Statuses absent
# from this table keep their value: a cleared conflict never re-validates.
RESOLUTION_TRANSITIONS: Dict[AffectationStatus, AffectationStatus] = {
    AffectationStatus.TO_REPLACE_ABSENCE: AffectationStatus.DRAFT,
    AffectationStatus.TO_REPLACE_APPOINTMENT: AffectationStatus.DRAFT,
}

# Statuses from which the month lock promotes a slot to validated.
LOCK_TRANSITIONS: Dict[AffectationStatus, AffectationStatus] = {
    AffectationStatus.DRAFT: AffectationStatus.VALIDATED,
}

PLANNING_TRANSITIONS: Dict[PlanningStatus, FrozenSet[PlanningStatus]] = {
    PlanningStatus.DRAFT: frozenset({PlanningStatus.VALIDATED}),
    PlanningStatus.VALIDATED: frozenset(),
}

ABSENCE_TRANSITIONS: Dict[AbsenceStatus, FrozenSet[AbsenceStatus]] = {
    AbsenceStatus.PENDING: frozenset({
        AbsenceStatus.APPROVED,
        AbsenceStatus.REJECTED,
        AbsenceStatus.CANCELLED,
    }),
    AbsenceStatus.APPROVED: frozenset({AbsenceStatus.CANCELLED}),
    AbsenceStatus.REJECTED: frozenset(),
    AbsenceStatus.CANCELLED: frozenset(),
}
