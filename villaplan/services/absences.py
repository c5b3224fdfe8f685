"""Absence requests: creation, approval, rejection, cancellation."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.enums import ABSENCE_TRANSITIONS, AbsenceStatus
from villaplan.domain.models import Absence, AbsenceType, Affectation, User
from villaplan.domain.repositories import AbsenceRepository
from villaplan.errors import (
    InvalidTransitionError,
    InvalidWindowError,
    MissingReasonError,
    OverlappingAbsenceError,
)
from villaplan.logging_setup import get_logger
from villaplan.services.conflicts import ConflictDetector
from villaplan.services.counters import AbsenceCounterService

logger = get_logger(__name__)

ACTIVE_STATUSES = (AbsenceStatus.PENDING, AbsenceStatus.APPROVED)

DateLike = Union[date, datetime]


def _start_of(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _end_of(value: DateLike) -> datetime:
    """A bare date as an end bound covers the whole day."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time(23, 59, 59))


class AbsenceService:
    """Absence lifecycle; counters and slot conflicts move in the same transaction."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.counters = AbsenceCounterService(session, cfg)
        self.detector = ConflictDetector(session)

    def _transition(self, absence: Absence, target: AbsenceStatus) -> None:
        if target not in ABSENCE_TRANSITIONS[absence.status]:
            raise InvalidTransitionError("absence", absence.status, target)
        absence.status = target

    def create(
        self,
        user: User,
        absence_type: AbsenceType,
        start: DateLike,
        end: DateLike,
        reason: Optional[str] = None,
    ) -> Absence:
        """
        Record a pending absence request.

        Raises:
            InvalidWindowError: If end is before start
            OverlappingAbsenceError: If a pending or approved absence overlaps
            InsufficientBalanceError: If the leave counter cannot cover it
        """
        start_at, end_at = _start_of(start), _end_of(end)
        if end_at < start_at:
            raise InvalidWindowError("The end date must be on or after the start date")

        with transaction(self.session):
            if AbsenceRepository.get_overlapping(self.session, user.id, start_at, end_at, ACTIVE_STATUSES):
                raise OverlappingAbsenceError(
                    f"{user.full_name} already has an absence overlapping this period"
                )
            self.counters.check_sufficient_balance(user, absence_type, start_at, end_at)

            absence = Absence(
                user=user,
                absence_type=absence_type,
                start_at=start_at,
                end_at=end_at,
                reason=reason,
                status=AbsenceStatus.PENDING,
                working_days=self.counters.calculate_working_days(start_at, end_at),
            )
            AbsenceRepository.create(self.session, absence)

        logger.info(
            "Absence created: id=%s user=%s type=%s %s -> %s (%s working days)",
            absence.id, user.id, absence_type.code, start_at.date(), end_at.date(), absence.working_days,
        )
        return absence

    def approve(self, absence: Absence, validator: User) -> List[Affectation]:
        """
        Approve a pending absence, consume its counter and flag the user's slots.

        Returns:
            Slots whose status changed
        """
        with transaction(self.session):
            self._transition(absence, AbsenceStatus.APPROVED)
            absence.validated_by = validator
            self.counters.deduct_days(absence)
            changed = self.detector.recheck_user_window(absence.user, absence.start_at, absence.end_at)

        logger.info(
            "Absence approved: id=%s user=%s by=%s, %d slots flagged",
            absence.id, absence.user_id, validator.id, len(changed),
        )
        return changed

    def reject(self, absence: Absence, validator: User, reason: str) -> None:
        if not reason or not reason.strip():
            raise MissingReasonError("A rejection reason is required")
        with transaction(self.session):
            self._transition(absence, AbsenceStatus.REJECTED)
            absence.validated_by = validator
            absence.rejection_reason = reason
        logger.info("Absence rejected: id=%s by=%s reason=%s", absence.id, validator.id, reason)

    def cancel(self, absence: Absence) -> List[Affectation]:
        """
        Cancel a pending or approved absence; approved days are credited back.

        Returns:
            Slots whose status changed
        """
        was_approved = absence.is_approved
        if AbsenceStatus.CANCELLED not in ABSENCE_TRANSITIONS[absence.status]:
            raise InvalidTransitionError("absence", absence.status, AbsenceStatus.CANCELLED)

        with transaction(self.session):
            if was_approved:
                self.counters.credit_days(absence)
            self._transition(absence, AbsenceStatus.CANCELLED)
            changed = []
            if was_approved:
                changed = self.detector.recheck_user_window(absence.user, absence.start_at, absence.end_at)

        logger.info(
            "Absence cancelled: id=%s user=%s was_approved=%s, %d slots re-checked",
            absence.id, absence.user_id, was_approved, len(changed),
        )
        return changed
