"""Binding educators to shift slots."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.enums import RESOLUTION_TRANSITIONS, AffectationKind, AffectationStatus
from villaplan.domain.models import Affectation, PlanningMonth, User, Villa
from villaplan.errors import InvalidWindowError, PlanningLockedError, VillaRequiredError
from villaplan.logging_setup import get_logger
from villaplan.services.availability import AvailabilityResolver
from villaplan.services.conflicts import ConflictDetector
from villaplan.services.issues import WARNING, Issue
from villaplan.services.working_time import worked_days_for_window

logger = get_logger(__name__)

DURATION_TOO_SHORT = "duration_too_short"
DURATION_TOO_LONG = "duration_too_long"


def _check_window(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidWindowError(f"End ({end}) must be after start ({start})")


def _check_editable(planning: Optional[PlanningMonth]) -> None:
    if planning is not None and planning.is_locked:
        raise PlanningLockedError(
            f"Planning {planning.year}-{planning.month:02d} is validated and cannot be edited"
        )


class AssignmentService:
    """Assigns, resizes and creates slots; every change re-runs the conflict check."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg
        self.detector = ConflictDetector(session)
        self.availability = AvailabilityResolver(session)

    def _refresh_worked_days(self, slot: Affectation) -> None:
        slot.worked_days = worked_days_for_window(
            slot.start_at, slot.end_at, self.cfg.working_time.min_counted_hours
        )

    def warnings_for(self, slot: Affectation) -> List[Issue]:
        """Overlap and duration warnings of a slot (never raised)."""
        warnings = self.availability.overlaps_for_slot(slot)

        hours = round(slot.duration_hours, 2)
        bounds = self.cfg.working_time
        if hours < bounds.duration_warning_min_hours:
            warnings.append(Issue(
                type=DURATION_TOO_SHORT,
                message=f"Duration too short: {hours:g}h (minimum {bounds.duration_warning_min_hours:g}h)",
                severity=WARNING,
            ))
        elif hours > bounds.duration_warning_max_hours:
            warnings.append(Issue(
                type=DURATION_TOO_LONG,
                message=f"Unusually long duration: {hours:g}h (recommended maximum {bounds.duration_warning_max_hours:g}h)",
                severity=WARNING,
            ))
        return warnings

    def assign(self, slot: Affectation, user: User) -> List[Issue]:
        """
        Assign a user to a slot and persist.

        Args:
            slot: Target slot
            user: Educator to assign

        Returns:
            Non-blocking warnings (overlapping absences/appointments, odd durations)

        Raises:
            PlanningLockedError: If the slot's month is validated
        """
        _check_editable(slot.planning_month)
        with transaction(self.session):
            slot.user = user
            self._refresh_worked_days(slot)
            self.detector.check(slot)
            slot.planning_month.touch()

        logger.info("Slot %s assigned to user %s (status %s)", slot.id, user.id, slot.status.value)
        return self.warnings_for(slot)

    def resize(self, slot: Affectation, start: datetime, end: datetime) -> None:
        """
        Move a slot's window and re-check conflicts when it is assigned.

        Raises:
            InvalidWindowError: If end is not after start
            PlanningLockedError: If the slot's month is validated
        """
        _check_window(start, end)
        _check_editable(slot.planning_month)
        with transaction(self.session):
            slot.start_at = start
            slot.end_at = end
            self._refresh_worked_days(slot)
            if slot.user is not None:
                self.detector.check(slot)
            slot.planning_month.touch()

    def unassign(self, slot: Affectation) -> None:
        """Clear the user of a slot; a conflict status falls back to draft."""
        _check_editable(slot.planning_month)
        with transaction(self.session):
            slot.user = None
            slot.status = RESOLUTION_TRANSITIONS.get(slot.status, slot.status)
            slot.planning_month.touch()

    def create_manual(
        self,
        planning: PlanningMonth,
        start: datetime,
        end: datetime,
        kind: AffectationKind,
        villa: Optional[Villa] = None,
        user: Optional[User] = None,
        comment: Optional[str] = None,
    ) -> Affectation:
        """
        Create a hand-made slot (kept across skeleton regenerations).

        Raises:
            InvalidWindowError: If end is not after start
            VillaRequiredError: If a main shift has no villa
            PlanningLockedError: If the month is validated
        """
        _check_window(start, end)
        _check_editable(planning)
        slot = Affectation(
            villa=villa,
            start_at=start,
            end_at=end,
            kind=kind,
            status=AffectationStatus.DRAFT,
            from_skeleton=False,
            comment=comment,
        )
        if not slot.check_villa_rule():
            raise VillaRequiredError(f"A {kind.value} slot must be attached to a villa")

        with transaction(self.session):
            slot.planning_month = planning
            slot.user = user
            self._refresh_worked_days(slot)
            self.session.add(slot)
            self.session.flush()
            if user is not None:
                self.detector.check(slot)
            planning.touch()

        logger.info("Manual %s slot %s created on planning %s", kind.value, slot.id, planning.id)
        return slot
