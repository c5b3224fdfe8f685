"""Yearly working-day allocation per educator.

Every educator gets the full ``annual_limit.ceiling_days`` allocation for a
calendar year, without prorating. Locking a planning month consumes the
worked days of its slots; ``consume_days``/``restore_days`` only flush so
they commit together with the change that triggered them.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.models import AnnualDayCounter, User
from villaplan.domain.repositories import AnnualDayCounterRepository, UserRepository
from villaplan.logging_setup import get_logger

logger = get_logger(__name__)


class AnnualDayCounterService:
    """Allocated versus consumed working days, one counter per user and year."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg

    @property
    def full_year_days(self) -> float:
        return float(self.cfg.annual_limit.ceiling_days)

    def get_counter(self, user: User, year: int) -> Optional[AnnualDayCounter]:
        return AnnualDayCounterRepository.find(self.session, user.id, year)

    def get_or_create_counter(self, user: User, year: int) -> AnnualDayCounter:
        counter = AnnualDayCounterRepository.find(self.session, user.id, year)
        if counter is None:
            counter = AnnualDayCounter(
                user=user,
                year=year,
                allocated_days=self.full_year_days,
                consumed_days=0.0,
                admin_adjustment=0.0,
            )
            AnnualDayCounterRepository.create(self.session, counter)
            logger.info(
                "Annual day counter created: user=%s year=%s allocated=%s",
                user.id, year, counter.allocated_days,
            )
        return counter

    def allowance_for(self, user: User, year: int) -> float:
        """Days the user may work in ``year``; the default allocation when no counter exists yet."""
        counter = AnnualDayCounterRepository.find(self.session, user.id, year)
        if counter is None:
            return self.full_year_days
        return counter.allowance

    def consume_days(self, user: User, year: int, days: float) -> AnnualDayCounter:
        counter = self.get_or_create_counter(user, year)
        if days <= 0:
            return counter
        counter.consumed_days = (counter.consumed_days or 0.0) + days
        self.session.flush()
        logger.info(
            "Annual days consumed: user=%s year=%s days=%s remaining=%s",
            user.id, year, days, counter.remaining,
        )
        if counter.is_negative:
            logger.warning(
                "Annual day allowance exceeded: user=%s year=%s remaining=%s",
                user.id, year, counter.remaining,
            )
        return counter

    def restore_days(self, user: User, year: int, days: float) -> AnnualDayCounter:
        """Give days back; ``consumed_days`` never drops below zero."""
        counter = self.get_or_create_counter(user, year)
        if days <= 0:
            return counter
        counter.consumed_days = max(0.0, (counter.consumed_days or 0.0) - days)
        self.session.flush()
        logger.info(
            "Annual days restored: user=%s year=%s days=%s remaining=%s",
            user.id, year, days, counter.remaining,
        )
        return counter

    def adjust_balance(
        self, user: User, year: int, adjustment: float, comment: str, admin: User
    ) -> AnnualDayCounter:
        """Manual administrator correction, added to any previous adjustment."""
        with transaction(self.session):
            counter = self.get_or_create_counter(user, year)
            counter.admin_adjustment = (counter.admin_adjustment or 0.0) + adjustment
            counter.adjustment_comment = comment
        logger.info(
            "Annual days adjusted by admin %s: user=%s year=%s %+.1f (%s), remaining=%s",
            admin.id, user.id, year, adjustment, comment, counter.remaining,
        )
        return counter

    def initialize_year(self, year: int, users: Optional[Iterable[User]] = None) -> Dict[str, int]:
        """
        Open the counters of a new year.

        Args:
            year: Calendar year
            users: Users to open a counter for (every user by default)

        Returns:
            ``{"created": n, "skipped": m}``; users that already have a counter are skipped
        """
        results = {"created": 0, "skipped": 0}
        with transaction(self.session):
            for user in users if users is not None else UserRepository.get_all(self.session):
                if AnnualDayCounterRepository.find(self.session, user.id, year) is not None:
                    results["skipped"] += 1
                    continue
                self.get_or_create_counter(user, year)
                results["created"] += 1
        logger.info(
            "Annual day counters opened for %s: %d created, %d skipped",
            year, results["created"], results["skipped"],
        )
        return results

    def get_low_balances(self, year: int, threshold: Optional[float] = None) -> List[AnnualDayCounter]:
        """Counters with fewer than ``threshold`` days left (the warning margin by default), not negative."""
        if threshold is None:
            threshold = self.cfg.annual_limit.warning_margin_days
        return AnnualDayCounterRepository.get_low_balance(self.session, year, threshold)

    def get_negative_balances(self, year: int) -> List[AnnualDayCounter]:
        return AnnualDayCounterRepository.get_negative(self.session, year)
