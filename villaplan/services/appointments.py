"""Appointments and their effect on participants' shift slots."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from villaplan.domain.db import transaction
from villaplan.domain.enums import AppointmentStatus
from villaplan.domain.models import Affectation, Appointment, User
from villaplan.domain.repositories import AppointmentRepository
from villaplan.errors import InvalidTransitionError, InvalidWindowError
from villaplan.logging_setup import get_logger
from villaplan.services.conflicts import ConflictDetector

logger = get_logger(__name__)

Window = Tuple[datetime, datetime]


class AppointmentService:
    """Persists appointments and re-checks the slots they may conflict with."""

    def __init__(self, session: Session):
        self.session = session
        self.detector = ConflictDetector(session)

    def _recheck(self, participants: Iterable[User], windows: Sequence[Window]) -> List[Affectation]:
        changed = {}
        for user in participants:
            for start, end in windows:
                for slot in self.detector.recheck_user_window(user, start, end):
                    changed[slot.id] = slot
        return list(changed.values())

    def create(
        self,
        title: str,
        start: datetime,
        end: datetime,
        participants: Sequence[User],
        impacts_shift: bool = False,
    ) -> Appointment:
        if end <= start:
            raise InvalidWindowError("An appointment must end after it starts")

        with transaction(self.session):
            appointment = Appointment(
                title=title,
                start_at=start,
                end_at=end,
                impacts_shift=impacts_shift,
                status=AppointmentStatus.PLANNED,
                participants=list(participants),
            )
            AppointmentRepository.create(self.session, appointment)
            changed = self._recheck(appointment.participants, [(start, end)]) if impacts_shift else []

        logger.info(
            "Appointment created: id=%s impacts_shift=%s, %d slots changed",
            appointment.id, impacts_shift, len(changed),
        )
        return appointment

    def update(
        self,
        appointment: Appointment,
        title: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        impacts_shift: Optional[bool] = None,
        participants: Optional[Sequence[User]] = None,
    ) -> List[Affectation]:
        """
        Change an appointment; slots under both the old and the new window are re-checked.

        Returns:
            Slots whose status changed
        """
        new_start = start if start is not None else appointment.start_at
        new_end = end if end is not None else appointment.end_at
        if new_end <= new_start:
            raise InvalidWindowError("An appointment must end after it starts")

        previous_window = (appointment.start_at, appointment.end_at)
        affected_users = {user.id: user for user in appointment.participants}

        with transaction(self.session):
            if title is not None:
                appointment.title = title
            if impacts_shift is not None:
                appointment.impacts_shift = impacts_shift
            if participants is not None:
                appointment.participants = list(participants)
            appointment.start_at, appointment.end_at = new_start, new_end
            affected_users.update({user.id: user for user in appointment.participants})
            changed = self._recheck(affected_users.values(), [previous_window, (new_start, new_end)])

        logger.info("Appointment updated: id=%s, %d slots changed", appointment.id, len(changed))
        return changed

    def cancel(self, appointment: Appointment) -> List[Affectation]:
        """Cancel an appointment; slots it held in conflict fall back to draft."""
        if appointment.status == AppointmentStatus.CANCELLED:
            raise InvalidTransitionError("appointment", appointment.status, AppointmentStatus.CANCELLED)

        with transaction(self.session):
            appointment.status = AppointmentStatus.CANCELLED
            changed = self._recheck(appointment.participants, [(appointment.start_at, appointment.end_at)])

        logger.info("Appointment cancelled: id=%s, %d slots changed", appointment.id, len(changed))
        return changed
