"""Repository classes for data access.

Repositories add and flush; committing is left to the service layer so a
whole unit of work succeeds or fails together.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from .enums import AbsenceStatus, AffectationKind, AppointmentStatus
from .models import (
    Absence,
    AbsenceType,
    Affectation,
    AnnualDayCounter,
    Appointment,
    LeaveCounter,
    PaidLeaveCounter,
    PlanningMonth,
    ShiftPattern,
    User,
    Villa,
)


class UserRepository:
    """Repository for user data access."""

    @staticmethod
    def get_all(session: Session) -> List[User]:
        """Get all users."""
        return session.query(User).order_by(User.last_name, User.first_name).all()

    @staticmethod
    def get_by_id(session: Session, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return session.get(User, user_id)

    @staticmethod
    def create(session: Session, user: User) -> User:
        """Create a new user."""
        session.add(user)
        session.flush()
        return user


class VillaRepository:
    """Repository for villa data access."""

    @staticmethod
    def get_all(session: Session) -> List[Villa]:
        return session.query(Villa).order_by(Villa.name).all()

    @staticmethod
    def get_by_id(session: Session, villa_id: int) -> Optional[Villa]:
        return session.get(Villa, villa_id)

    @staticmethod
    def create(session: Session, villa: Villa) -> Villa:
        session.add(villa)
        session.flush()
        return villa


class PlanningMonthRepository:
    """Repository for planning months."""

    @staticmethod
    def get_by_id(session: Session, planning_id: int) -> Optional[PlanningMonth]:
        return session.get(PlanningMonth, planning_id)

    @staticmethod
    def find(session: Session, villa_id: int, year: int, month: int) -> Optional[PlanningMonth]:
        """Get the planning of one villa for one month, if it exists."""
        return (
            session.query(PlanningMonth)
            .filter(
                PlanningMonth.villa_id == villa_id,
                PlanningMonth.year == year,
                PlanningMonth.month == month,
            )
            .first()
        )

    @staticmethod
    def get_or_create(session: Session, villa: Villa, year: int, month: int) -> PlanningMonth:
        """Get the planning of a villa/month, creating a draft one when missing."""
        planning = PlanningMonthRepository.find(session, villa.id, year, month)
        if planning is None:
            planning = PlanningMonth(villa=villa, year=year, month=month)
            session.add(planning)
            session.flush()
        return planning


class AffectationRepository:
    """Repository for shift slots."""

    @staticmethod
    def get_by_id(session: Session, affectation_id: int) -> Optional[Affectation]:
        return session.get(Affectation, affectation_id)

    @staticmethod
    def get_by_planning(session: Session, planning_id: int) -> List[Affectation]:
        """Get all slots of a planning month ordered by start."""
        return (
            session.query(Affectation)
            .filter(Affectation.planning_month_id == planning_id)
            .order_by(Affectation.start_at)
            .all()
        )

    @staticmethod
    def delete_skeleton_slots(session: Session, planning: PlanningMonth) -> List[Affectation]:
        """
        Remove the skeleton-origin slots of a planning month.

        Manual slots are kept. Returns the removed slots (still readable
        until the session is committed).
        """
        removed = [slot for slot in planning.affectations if slot.from_skeleton]
        for slot in removed:
            planning.affectations.remove(slot)
        session.flush()
        return removed

    @staticmethod
    def bulk_create(session: Session, slots: Iterable[Affectation]) -> None:
        """Create multiple slots."""
        session.add_all(list(slots))
        session.flush()

    @staticmethod
    def get_for_user_starting_between(
        session: Session,
        user_id: int,
        start: datetime,
        end: datetime,
        statuses: Optional[Iterable] = None,
    ) -> List[Affectation]:
        """Slots of a user whose start lies in ``[start, end]``."""
        query = session.query(Affectation).filter(
            Affectation.user_id == user_id,
            Affectation.start_at >= start,
            Affectation.start_at <= end,
        )
        if statuses is not None:
            query = query.filter(Affectation.status.in_(list(statuses)))
        return query.order_by(Affectation.start_at).all()

    @staticmethod
    def get_assigned_starting_between(
        session: Session, start: datetime, end: datetime, statuses: Iterable
    ) -> List[Affectation]:
        """Assigned slots of every user whose start lies in ``[start, end]``."""
        return (
            session.query(Affectation)
            .filter(
                Affectation.user_id.isnot(None),
                Affectation.start_at >= start,
                Affectation.start_at <= end,
                Affectation.status.in_(list(statuses)),
            )
            .order_by(Affectation.user_id, Affectation.start_at)
            .all()
        )

    @staticmethod
    def get_user_ids_with_slots_between(
        session: Session, start: datetime, end: datetime, statuses: Iterable
    ) -> List[int]:
        rows = (
            session.query(Affectation.user_id)
            .filter(
                Affectation.user_id.isnot(None),
                Affectation.start_at >= start,
                Affectation.start_at <= end,
                Affectation.status.in_(list(statuses)),
            )
            .distinct()
            .all()
        )
        return sorted(row[0] for row in rows)

    @staticmethod
    def get_overlapping_for_user(
        session: Session,
        user_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> List[Affectation]:
        """Slots of a user overlapping the half-open window ``[start, end)``."""
        query = session.query(Affectation).filter(
            Affectation.user_id == user_id,
            Affectation.start_at < end,
            Affectation.end_at > start,
        )
        if exclude_id is not None:
            query = query.filter(Affectation.id != exclude_id)
        return query.order_by(Affectation.start_at).all()

    @staticmethod
    def get_assigned_overlapping(session: Session, start: datetime, end: datetime) -> List[Affectation]:
        """All assigned slots (any villa) overlapping ``[start, end)``."""
        return (
            session.query(Affectation)
            .filter(
                Affectation.user_id.isnot(None),
                Affectation.start_at < end,
                Affectation.end_at > start,
            )
            .order_by(Affectation.user_id, Affectation.start_at)
            .all()
        )

    @staticmethod
    def get_assigned_main_for_villa(
        session: Session, villa_id: int, start: datetime, end: datetime
    ) -> List[Affectation]:
        """Assigned main-shift slots of a villa overlapping ``[start, end)``."""
        return (
            session.query(Affectation)
            .filter(
                Affectation.villa_id == villa_id,
                Affectation.user_id.isnot(None),
                Affectation.kind.in_([AffectationKind.MAIN_24H, AffectationKind.MAIN_48H]),
                Affectation.start_at < end,
                Affectation.end_at > start,
            )
            .order_by(Affectation.start_at)
            .all()
        )


class AbsenceTypeRepository:
    """Repository for leave categories."""

    @staticmethod
    def get_all(session: Session) -> List[AbsenceType]:
        return session.query(AbsenceType).order_by(AbsenceType.code).all()

    @staticmethod
    def get_by_code(session: Session, code: str) -> Optional[AbsenceType]:
        return session.query(AbsenceType).filter(AbsenceType.code == code).first()

    @staticmethod
    def get_deducting(session: Session) -> List[AbsenceType]:
        """Leave types whose approval consumes a yearly counter."""
        return (
            session.query(AbsenceType)
            .filter(AbsenceType.deducts_from_counter.is_(True))
            .order_by(AbsenceType.code)
            .all()
        )

    @staticmethod
    def create(session: Session, absence_type: AbsenceType) -> AbsenceType:
        session.add(absence_type)
        session.flush()
        return absence_type


class AbsenceRepository:
    """Repository for absences."""

    @staticmethod
    def create(session: Session, absence: Absence) -> Absence:
        session.add(absence)
        session.flush()
        return absence

    @staticmethod
    def get_by_user(session: Session, user_id: int) -> List[Absence]:
        return session.query(Absence).filter(Absence.user_id == user_id).order_by(Absence.start_at).all()

    @staticmethod
    def get_overlapping(
        session: Session,
        user_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[AbsenceStatus],
        exclude_id: Optional[int] = None,
    ) -> List[Absence]:
        """Absences of a user in the given statuses overlapping ``[start, end)``."""
        query = session.query(Absence).filter(
            Absence.user_id == user_id,
            Absence.status.in_(list(statuses)),
            Absence.start_at < end,
            Absence.end_at > start,
        )
        if exclude_id is not None:
            query = query.filter(Absence.id != exclude_id)
        return query.order_by(Absence.start_at).all()

    @staticmethod
    def get_approved_overlapping(
        session: Session, user_id: int, start: datetime, end: datetime
    ) -> List[Absence]:
        return AbsenceRepository.get_overlapping(
            session, user_id, start, end, [AbsenceStatus.APPROVED]
        )


class AppointmentRepository:
    """Repository for appointments."""

    @staticmethod
    def create(session: Session, appointment: Appointment) -> Appointment:
        session.add(appointment)
        session.flush()
        return appointment

    @staticmethod
    def get_impacting_overlapping(
        session: Session, user_id: int, start: datetime, end: datetime
    ) -> List[Appointment]:
        """Shift-impacting, non-cancelled appointments of a participant overlapping ``[start, end)``."""
        return (
            session.query(Appointment)
            .filter(
                Appointment.participants.any(User.id == user_id),
                Appointment.impacts_shift.is_(True),
                Appointment.status != AppointmentStatus.CANCELLED,
                Appointment.start_at < end,
                Appointment.end_at > start,
            )
            .order_by(Appointment.start_at)
            .all()
        )


class LeaveCounterRepository:
    """Repository for yearly leave counters."""

    @staticmethod
    def find(session: Session, user_id: int, absence_type_id: int, year: int) -> Optional[LeaveCounter]:
        return (
            session.query(LeaveCounter)
            .filter(
                LeaveCounter.user_id == user_id,
                LeaveCounter.absence_type_id == absence_type_id,
                LeaveCounter.year == year,
            )
            .first()
        )

    @staticmethod
    def get_by_user_and_year(session: Session, user_id: int, year: int) -> List[LeaveCounter]:
        return (
            session.query(LeaveCounter)
            .filter(LeaveCounter.user_id == user_id, LeaveCounter.year == year)
            .all()
        )

    @staticmethod
    def create(session: Session, counter: LeaveCounter) -> LeaveCounter:
        session.add(counter)
        session.flush()
        return counter


class PaidLeaveCounterRepository:
    """Repository for payroll paid-leave counters."""

    @staticmethod
    def find(session: Session, user_id: int, period_reference: str) -> Optional[PaidLeaveCounter]:
        return (
            session.query(PaidLeaveCounter)
            .filter(
                PaidLeaveCounter.user_id == user_id,
                PaidLeaveCounter.period_reference == period_reference,
            )
            .first()
        )

    @staticmethod
    def create(session: Session, counter: PaidLeaveCounter) -> PaidLeaveCounter:
        session.add(counter)
        session.flush()
        return counter


class AnnualDayCounterRepository:
    """Repository for yearly working-day allocations."""

    @staticmethod
    def _remaining():
        return (
            AnnualDayCounter.allocated_days
            + AnnualDayCounter.admin_adjustment
            - AnnualDayCounter.consumed_days
        )

    @staticmethod
    def find(session: Session, user_id: int, year: int) -> Optional[AnnualDayCounter]:
        return (
            session.query(AnnualDayCounter)
            .filter(AnnualDayCounter.user_id == user_id, AnnualDayCounter.year == year)
            .first()
        )

    @staticmethod
    def get_by_year(session: Session, year: int) -> List[AnnualDayCounter]:
        return (
            session.query(AnnualDayCounter)
            .filter(AnnualDayCounter.year == year)
            .order_by(AnnualDayCounter.user_id)
            .all()
        )

    @staticmethod
    def get_low_balance(session: Session, year: int, threshold: float) -> List[AnnualDayCounter]:
        """Counters with a remaining balance in ``[0, threshold)``, lowest first."""
        remaining = AnnualDayCounterRepository._remaining()
        return (
            session.query(AnnualDayCounter)
            .filter(AnnualDayCounter.year == year, remaining < threshold, remaining >= 0)
            .order_by(remaining)
            .all()
        )

    @staticmethod
    def get_negative(session: Session, year: int) -> List[AnnualDayCounter]:
        remaining = AnnualDayCounterRepository._remaining()
        return (
            session.query(AnnualDayCounter)
            .filter(AnnualDayCounter.year == year, remaining < 0)
            .order_by(remaining)
            .all()
        )

    @staticmethod
    def create(session: Session, counter: AnnualDayCounter) -> AnnualDayCounter:
        session.add(counter)
        session.flush()
        return counter


class ShiftPatternRepository:
    """Repository for reusable shift patterns."""

    @staticmethod
    def get_all(session: Session) -> List[ShiftPattern]:
        return session.query(ShiftPattern).order_by(ShiftPattern.name).all()

    @staticmethod
    def get_by_id(session: Session, pattern_id: int) -> Optional[ShiftPattern]:
        return session.get(ShiftPattern, pattern_id)

    @staticmethod
    def get_by_name(session: Session, name: str) -> Optional[ShiftPattern]:
        return session.query(ShiftPattern).filter(ShiftPattern.name == name).first()

    @staticmethod
    def get_most_used(session: Session, limit: int = 5) -> List[ShiftPattern]:
        return (
            session.query(ShiftPattern)
            .filter(ShiftPattern.usage_count > 0)
            .order_by(ShiftPattern.usage_count.desc(), ShiftPattern.name)
            .limit(limit)
            .all()
        )

    @staticmethod
    def name_exists(session: Session, name: str, exclude_id: Optional[int] = None) -> bool:
        """Case-sensitive name lookup, ignoring the record being updated."""
        query = session.query(ShiftPattern.id).filter(ShiftPattern.name == name)
        if exclude_id is not None:
            query = query.filter(ShiftPattern.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def create(session: Session, pattern: ShiftPattern) -> ShiftPattern:
        session.add(pattern)
        session.flush()
        return pattern

    @staticmethod
    def delete(session: Session, pattern: ShiftPattern) -> None:
        session.delete(pattern)
        session.flush()
