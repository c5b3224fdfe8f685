"""Monthly skeleton generation from the fixed weekly cycle."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import List

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.enums import AffectationKind, AffectationStatus
from villaplan.domain.models import Affectation, PlanningMonth, Villa
from villaplan.domain.repositories import AffectationRepository, PlanningMonthRepository
from villaplan.errors import PlanningLockedError, StaffedMonthError
from villaplan.logging_setup import get_logger
from villaplan.services.working_time import worked_days_for_window

logger = get_logger(__name__)

MONDAY, WEDNESDAY, THURSDAY, SATURDAY = 1, 3, 4, 6


class SkeletonGenerator:
    """
    Builds the draft slots of a villa/month from the weekly cycle.

    The cycle, keyed by ISO weekday:
        Mon: 48h main shift
        Wed: 24h main shift + reinforcement
        Thu: 48h main shift ending at the weekend start hour
        Sat: 48h main shift ending at the weekday start hour + reinforcement

    Regeneration replaces skeleton-origin slots only; manual slots are kept.
    """

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg
        self.last_dropped_assignments = 0

    def start_hour(self, day: date) -> int:
        if day.isoweekday() >= SATURDAY:
            return self.cfg.cycle.weekend_start_hour
        return self.cfg.cycle.weekday_start_hour

    def cycle_windows(self, day: date):
        """(kind, start, end) tuples opened by the cycle on ``day``."""
        cycle = self.cfg.cycle
        weekday = day.isoweekday()
        start = datetime.combine(day, time(self.start_hour(day)))
        windows = []

        if weekday == MONDAY:
            windows.append((AffectationKind.MAIN_48H, start, start + timedelta(days=2)))
        elif weekday == WEDNESDAY:
            windows.append((AffectationKind.MAIN_24H, start, start + timedelta(days=1)))
            reinforcement = cycle.wednesday_reinforcement
            windows.append((
                AffectationKind.REINFORCEMENT,
                datetime.combine(day, time(reinforcement.start_hour)),
                datetime.combine(day, time(reinforcement.end_hour)),
            ))
        elif weekday == THURSDAY:
            end_day = day + timedelta(days=2)
            windows.append((
                AffectationKind.MAIN_48H,
                start,
                datetime.combine(end_day, time(cycle.weekend_start_hour)),
            ))
        elif weekday == SATURDAY:
            end_day = day + timedelta(days=2)
            windows.append((
                AffectationKind.MAIN_48H,
                start,
                datetime.combine(end_day, time(cycle.weekday_start_hour)),
            ))
            reinforcement = cycle.saturday_reinforcement
            windows.append((
                AffectationKind.REINFORCEMENT,
                datetime.combine(day, time(reinforcement.start_hour)),
                datetime.combine(day, time(reinforcement.end_hour)),
            ))
        return windows

    def build_slots(self, planning: PlanningMonth, villa: Villa) -> List[Affectation]:
        """Unpersisted skeleton slots for every day of the planning's month."""
        min_hours = self.cfg.working_time.min_counted_hours
        last_day = calendar.monthrange(planning.year, planning.month)[1]
        slots = []
        for day_number in range(1, last_day + 1):
            day = date(planning.year, planning.month, day_number)
            for kind, start, end in self.cycle_windows(day):
                slots.append(Affectation(
                    planning_month=planning,
                    villa=villa,
                    start_at=start,
                    end_at=end,
                    kind=kind,
                    status=AffectationStatus.DRAFT,
                    from_skeleton=True,
                    worked_days=worked_days_for_window(start, end, min_hours),
                ))
        return slots

    def generate(self, villa: Villa, year: int, month: int, allow_staffed: bool = True) -> PlanningMonth:
        """
        Generate (or regenerate) the skeleton of one villa/month.

        Deletions and insertions are committed together. Assignments held by
        replaced skeleton slots are lost; their count is kept in
        ``last_dropped_assignments``.

        Args:
            villa: Target villa
            year: Year
            month: Month (1-12)
            allow_staffed: When False, refuse to drop existing assignments

        Returns:
            The planning month

        Raises:
            PlanningLockedError: If the month is already validated
            StaffedMonthError: If assigned skeleton slots exist and allow_staffed is False
        """
        self.last_dropped_assignments = 0
        with transaction(self.session):
            planning = PlanningMonthRepository.get_or_create(self.session, villa, year, month)
            if planning.is_locked:
                raise PlanningLockedError(
                    f"Planning {villa.name} {year}-{month:02d} is validated and cannot be regenerated"
                )

            staffed = [s for s in planning.affectations if s.from_skeleton and s.user_id is not None]
            if staffed:
                if not allow_staffed:
                    raise StaffedMonthError(
                        f"Planning {villa.name} {year}-{month:02d} has {len(staffed)} assigned skeleton slots"
                    )
                logger.warning(
                    "Regenerating %s %04d-%02d drops %d assignments",
                    villa.name, year, month, len(staffed),
                )

            removed = AffectationRepository.delete_skeleton_slots(self.session, planning)
            slots = self.build_slots(planning, villa)
            AffectationRepository.bulk_create(self.session, slots)
            planning.touch()

        self.last_dropped_assignments = len(staffed)
        logger.info(
            "Skeleton %s %04d-%02d: %d slots removed, %d created",
            villa.name, year, month, len(removed), len(slots),
        )
        return planning
