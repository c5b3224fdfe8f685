"""Per-slot conflict detection against absences and appointments."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from villaplan.domain.enums import RESOLUTION_TRANSITIONS, AffectationStatus
from villaplan.domain.models import Affectation, User
from villaplan.domain.repositories import (
    AbsenceRepository,
    AffectationRepository,
    AppointmentRepository,
)
from villaplan.logging_setup import get_logger

logger = get_logger(__name__)


class ConflictDetector:
    """
    Rewrites a slot's status from the availability of its assigned user.

    An approved absence wins over an impacting appointment. When nothing
    conflicts any more, a slot leaves a conflict status through
    ``RESOLUTION_TRANSITIONS`` only; a cleared conflict never re-validates.
    """

    def __init__(self, session: Session):
        self.session = session

    def _conflict_status(self, slot: Affectation) -> Optional[AffectationStatus]:
        user_id = slot.user.id if slot.user is not None else slot.user_id
        if AbsenceRepository.get_approved_overlapping(self.session, user_id, slot.start_at, slot.end_at):
            return AffectationStatus.TO_REPLACE_ABSENCE
        if AppointmentRepository.get_impacting_overlapping(self.session, user_id, slot.start_at, slot.end_at):
            return AffectationStatus.TO_REPLACE_APPOINTMENT
        return None

    def check(self, slot: Affectation) -> AffectationStatus:
        """
        Re-evaluate one slot and update its status in place.

        Args:
            slot: Slot to check (unassigned slots are left untouched)

        Returns:
            The slot's status after the check
        """
        if slot.user is None and slot.user_id is None:
            return slot.status

        previous = slot.status
        conflict = self._conflict_status(slot)
        if conflict is not None:
            slot.status = conflict
        else:
            slot.status = RESOLUTION_TRANSITIONS.get(previous, previous)

        if slot.status != previous:
            logger.info(
                "Slot %s: %s -> %s", slot.id, previous.value, slot.status.value
            )
        return slot.status

    def recheck_user_window(self, user: User, start: datetime, end: datetime) -> List[Affectation]:
        """
        Re-run the check on every slot of ``user`` overlapping ``[start, end)``.

        The planning month of every changed slot is touched so its version
        moves with the slot.

        Returns:
            Slots whose status changed
        """
        changed = []
        for slot in AffectationRepository.get_overlapping_for_user(self.session, user.id, start, end):
            before = slot.status
            if self.check(slot) != before:
                slot.planning_month.touch()
                changed.append(slot)
        return changed
