"""Availability of a user over a time window: absences, appointments, slots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from villaplan.domain.models import AbsenceType, Affectation, User
from villaplan.domain.repositories import (
    AbsenceRepository,
    AffectationRepository,
    AppointmentRepository,
)
from villaplan.services.issues import WARNING, Issue, format_window

DEFAULT_ABSENCE_COLOR = "#FCA5A5"
APPOINTMENT_COLOR = "#FDE047"
ABSENCE_COLORS = {
    "CP": "#FCA5A5",
    "RTT": "#FCA5A5",
    "MAL": "#FDBA74",
    "AT": "#FDBA74",
}

ABSENCE_OVERLAP = "absence_overlap"
APPOINTMENT_OVERLAP = "appointment_overlap"


@dataclass
class AvailabilityItem:
    """Absence or appointment hit, annotated for calendar display."""
    source_id: int
    start: datetime
    end: datetime
    category: str
    label: str
    color: str
    severity: str = WARNING


@dataclass
class Availability:
    absences: List[AvailabilityItem] = field(default_factory=list)
    appointments: List[AvailabilityItem] = field(default_factory=list)
    affectations: List[Affectation] = field(default_factory=list)

    @property
    def is_free(self) -> bool:
        return not self.absences and not self.appointments


def absence_color(absence_type: Optional[AbsenceType]) -> str:
    if absence_type is None:
        return DEFAULT_ABSENCE_COLOR
    return ABSENCE_COLORS.get(absence_type.code, DEFAULT_ABSENCE_COLOR)


class AvailabilityResolver:
    """Looks up what overlaps a user's time window."""

    def __init__(self, session: Session):
        self.session = session

    def for_period(
        self,
        user: User,
        start: datetime,
        end: datetime,
        exclude_affectation_id: Optional[int] = None,
    ) -> Availability:
        """
        Everything overlapping ``[start, end)`` for one user.

        Args:
            user: The educator
            start: Window start
            end: Window end (exclusive)
            exclude_affectation_id: Slot to leave out of the existing-slot list

        Returns:
            Availability with approved absences, shift-impacting appointments
            (cancelled ones excluded) and the user's existing slots
        """
        absences = AbsenceRepository.get_approved_overlapping(self.session, user.id, start, end)
        appointments = AppointmentRepository.get_impacting_overlapping(self.session, user.id, start, end)
        slots = AffectationRepository.get_overlapping_for_user(
            self.session, user.id, start, end, exclude_id=exclude_affectation_id
        )

        return Availability(
            absences=[
                AvailabilityItem(
                    source_id=absence.id,
                    start=absence.start_at,
                    end=absence.end_at,
                    category=absence.absence_type.code if absence.absence_type else "unknown",
                    label=absence.absence_type.label if absence.absence_type else "Absence",
                    color=absence_color(absence.absence_type),
                )
                for absence in absences
            ],
            appointments=[
                AvailabilityItem(
                    source_id=appointment.id,
                    start=appointment.start_at,
                    end=appointment.end_at,
                    category="appointment",
                    label=appointment.title or "Appointment",
                    color=APPOINTMENT_COLOR,
                )
                for appointment in appointments
            ],
            affectations=slots,
        )

    def overlaps_for_slot(self, slot: Affectation) -> List[Issue]:
        """Absence and appointment hits for an assigned slot; empty when unassigned."""
        if slot.user is None:
            return []
        availability = self.for_period(slot.user, slot.start_at, slot.end_at, exclude_affectation_id=slot.id)

        overlaps = []
        for issue_type, items in (
            (ABSENCE_OVERLAP, availability.absences),
            (APPOINTMENT_OVERLAP, availability.appointments),
        ):
            for item in items:
                overlaps.append(Issue(
                    type=issue_type,
                    message=f"Overlap with {item.label} {format_window(item.start, item.end)}",
                    severity=item.severity,
                    details={
                        "subtype": item.category,
                        "label": item.label,
                        "start": item.start,
                        "end": item.end,
                    },
                ))
        return overlaps
