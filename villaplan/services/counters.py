"""Yearly leave counters and the payroll paid-leave counter.

``deduct_days``/``credit_days`` and the paid-leave ``deduct``/``cancel_deduction``
only flush: they run inside the caller's transaction so a counter always
moves together with the absence status change that triggered it.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.models import Absence, AbsenceType, LeaveCounter, PaidLeaveCounter, User
from villaplan.domain.repositories import (
    AbsenceTypeRepository,
    LeaveCounterRepository,
    PaidLeaveCounterRepository,
)
from villaplan.errors import InsufficientBalanceError
from villaplan.logging_setup import get_logger
from villaplan.services.holidays import count_working_days

logger = get_logger(__name__)

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def previous_period(period_reference: str) -> str:
    first, second = (int(part) for part in period_reference.split("-"))
    return f"{first - 1}-{second - 1}"


class PaidLeaveCounterService:
    """Payroll paid-leave balances, one counter per June-to-May reference period."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg

    def get_or_create_counter(self, user: User, on: Optional[DateLike] = None) -> PaidLeaveCounter:
        """
        Counter of the reference period containing ``on`` (today by default).

        A new counter starts from the balance carried over from the previous
        period, when there is one.
        """
        moment = on if on is not None else datetime.now()
        if not isinstance(moment, datetime):
            moment = datetime.combine(moment, datetime.min.time())
        period = PaidLeaveCounter.period_for(moment)

        counter = PaidLeaveCounterRepository.find(self.session, user.id, period)
        if counter is None:
            previous = PaidLeaveCounterRepository.find(self.session, user.id, previous_period(period))
            counter = PaidLeaveCounter(
                user=user,
                period_reference=period,
                initial_balance=previous.balance if previous is not None else 0.0,
            )
            PaidLeaveCounterRepository.create(self.session, counter)
            logger.info(
                "Paid-leave counter created: user=%s period=%s initial=%.2f",
                user.id, period, counter.initial_balance,
            )
        return counter

    def deduct(self, user: User, days: float, on: Optional[DateLike] = None) -> None:
        if days <= 0:
            return
        counter = self.get_or_create_counter(user, on)
        counter.taken = (counter.taken or 0.0) + days
        self.session.flush()
        logger.info("Paid leave deducted: user=%s days=%s balance=%.2f", user.id, days, counter.balance)

    def cancel_deduction(self, user: User, days: float, on: Optional[DateLike] = None) -> None:
        if days <= 0:
            return
        counter = self.get_or_create_counter(user, on)
        counter.taken = max(0.0, (counter.taken or 0.0) - days)
        self.session.flush()
        logger.info("Paid leave restored: user=%s days=%s balance=%.2f", user.id, days, counter.balance)

    def credit_monthly(self, user: User, year: int, month: int) -> float:
        """Credit one month of acquired paid leave to the period containing that month."""
        acquired = self.cfg.leave.monthly_paid_leave_acquisition
        with transaction(self.session):
            counter = self.get_or_create_counter(user, date(year, month, 1))
            counter.acquired = (counter.acquired or 0.0) + acquired
        logger.info(
            "Monthly paid leave credited: user=%s %04d-%02d +%s (acquired %.2f)",
            user.id, year, month, acquired, counter.acquired,
        )
        return acquired

    def adjust_balance(self, user: User, adjustment: float, comment: str, admin: User) -> PaidLeaveCounter:
        """Manual administrator correction, added to any previous adjustment."""
        with transaction(self.session):
            counter = self.get_or_create_counter(user)
            counter.admin_adjustment = (counter.admin_adjustment or 0.0) + adjustment
            counter.adjustment_comment = comment
        logger.info(
            "Paid leave adjusted by admin %s: user=%s %+.2f (%s), balance=%.2f",
            admin.id, user.id, adjustment, comment, counter.balance,
        )
        return counter

    def current_balance(self, user: User, on: Optional[DateLike] = None) -> float:
        moment = on if on is not None else datetime.now()
        if not isinstance(moment, datetime):
            moment = datetime.combine(moment, datetime.min.time())
        counter = PaidLeaveCounterRepository.find(self.session, user.id, PaidLeaveCounter.period_for(moment))
        return counter.balance if counter is not None else 0.0


class AbsenceCounterService:
    """Per-user, per-leave-type, per-year balances kept in step with absence approvals."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg
        self.paid_leave = PaidLeaveCounterService(session, cfg)

    @staticmethod
    def calculate_working_days(start: DateLike, end: DateLike) -> int:
        """Weekdays from start to end (inclusive) minus public holidays."""
        return count_working_days(_as_date(start), _as_date(end))

    def get_or_create_counter(self, user: User, absence_type: AbsenceType, year: int) -> LeaveCounter:
        counter = LeaveCounterRepository.find(self.session, user.id, absence_type.id, year)
        if counter is None:
            counter = LeaveCounter(user=user, absence_type=absence_type, year=year, earned=0.0, taken=0.0)
            LeaveCounterRepository.create(self.session, counter)
            logger.info("Leave counter created: user=%s type=%s year=%s", user.id, absence_type.code, year)
        return counter

    def _days_of(self, absence: Absence) -> float:
        if absence.working_days is None:
            absence.working_days = self.calculate_working_days(absence.start_at, absence.end_at)
        return absence.working_days

    def _is_paid_leave(self, absence: Absence) -> bool:
        return absence.absence_type.code == self.cfg.leave.paid_leave_code

    def deduct_days(self, absence: Absence) -> None:
        """
        Consume the absence's working days from its yearly counter.

        A negative remaining balance is logged, not refused. Paid leave is
        mirrored into the payroll counter.
        """
        if not absence.absence_type.deducts_from_counter:
            return

        days = self._days_of(absence)
        counter = self.get_or_create_counter(absence.user, absence.absence_type, absence.start_at.year)
        counter.taken = (counter.taken or 0.0) + days
        self.session.flush()
        logger.info(
            "Counter deducted: absence=%s user=%s days=%s remaining=%s",
            absence.id, absence.user_id, days, counter.remaining,
        )
        if counter.is_negative:
            logger.warning(
                "Negative counter balance: user=%s type=%s balance=%s",
                absence.user_id, absence.absence_type.code, counter.remaining,
            )

        if self._is_paid_leave(absence):
            self.paid_leave.deduct(absence.user, days, on=absence.start_at)

    def credit_days(self, absence: Absence) -> None:
        """Give back the days of an approved absence (``taken`` never drops below zero)."""
        if not absence.absence_type.deducts_from_counter:
            return
        if not absence.is_approved:
            return

        days = self._days_of(absence)
        counter = self.get_or_create_counter(absence.user, absence.absence_type, absence.start_at.year)
        counter.taken = max(0.0, (counter.taken or 0.0) - days)
        self.session.flush()
        logger.info(
            "Counter credited: absence=%s user=%s days=%s remaining=%s",
            absence.id, absence.user_id, days, counter.remaining,
        )

        if self._is_paid_leave(absence):
            self.paid_leave.cancel_deduction(absence.user, days, on=absence.start_at)

    def check_sufficient_balance(
        self, user: User, absence_type: AbsenceType, start: DateLike, end: DateLike
    ) -> None:
        """
        Raises:
            InsufficientBalanceError: If the yearly counter cannot cover the request
        """
        if not absence_type.deducts_from_counter:
            return
        counter = self.get_or_create_counter(user, absence_type, _as_date(start).year)
        required = self.calculate_working_days(start, end)
        if not counter.has_sufficient_balance(required):
            raise InsufficientBalanceError(
                f"Insufficient balance for {absence_type.label}: "
                f"{counter.remaining:g} days available, {required} days requested"
            )

    def get_user_counters(self, user: User, year: int) -> List[LeaveCounter]:
        return LeaveCounterRepository.get_by_user_and_year(self.session, user.id, year)

    def initialize_yearly_counters(self, user: User, year: int, earnings: Dict[str, float]) -> List[LeaveCounter]:
        """Set the earned days of a year, keyed by leave-type code; unknown or non-deducting codes are skipped."""
        counters = []
        with transaction(self.session):
            for code, earned in earnings.items():
                absence_type = AbsenceTypeRepository.get_by_code(self.session, code)
                if absence_type is None or not absence_type.deducts_from_counter:
                    continue
                counter = self.get_or_create_counter(user, absence_type, year)
                counter.earned = earned
                counters.append(counter)
        for counter in counters:
            logger.info(
                "Yearly counter initialized: user=%s type=%s year=%s earned=%s",
                user.id, counter.absence_type.code, year, counter.earned,
            )
        return counters
