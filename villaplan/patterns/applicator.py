"""Instantiate a reusable pattern into concrete planning months."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.enums import AffectationKind, AffectationStatus
from villaplan.domain.models import Affectation, PlanningMonth, ShiftPattern, Villa
from villaplan.domain.repositories import (
    AffectationRepository,
    PlanningMonthRepository,
    VillaRepository,
)
from villaplan.errors import PlanningLockedError, VillaRequiredError
from villaplan.logging_setup import get_logger
from villaplan.patterns.schema import MainShiftEntry, PatternConfiguration, ReinforcementEntry
from villaplan.patterns.validator import PatternValidator
from villaplan.services.working_time import worked_days_for_window

logger = get_logger(__name__)

DateLike = Union[date, datetime]


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def first_monday_on_or_after(day: date) -> date:
    return day + timedelta(days=(7 - day.weekday()) % 7)


class PatternApplicator:
    """
    Creates skeleton-origin draft slots from a pattern.

    Weeks start on the first Monday on or after the first day of the
    window; a slot is kept when it starts inside the window, even if it
    ends after it.
    """

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg
        self.validator = PatternValidator(session, cfg)

    def _main_slot(self, entry: MainShiftEntry, planning: PlanningMonth, week_start: date, name: str) -> Affectation:
        start = datetime.combine(week_start + timedelta(days=entry.jour_debut - 1), time(entry.heure_debut))
        end = start + timedelta(hours=entry.duree_heures)
        comment = f"Created from pattern: {name}"
        if entry.label:
            comment = f"{comment} - {entry.label}"
        return self._slot(planning, start, end, entry.kind, comment)

    def _reinforcement_slot(
        self, entry: ReinforcementEntry, planning: PlanningMonth, week_start: date, name: str
    ) -> Affectation:
        day = week_start + timedelta(days=entry.jour - 1)
        start = datetime.combine(day, time(entry.heure_debut))
        end = datetime.combine(day, time(entry.heure_fin))
        comment = f"Created from pattern: {name} - {entry.label or 'Reinforcement'}"
        return self._slot(planning, start, end, AffectationKind.REINFORCEMENT, comment)

    def _slot(self, planning, start, end, kind, comment) -> Affectation:
        return Affectation(
            villa=planning.villa,
            start_at=start,
            end_at=end,
            kind=kind,
            status=AffectationStatus.DRAFT,
            from_skeleton=True,
            worked_days=worked_days_for_window(start, end, self.cfg.working_time.min_counted_hours),
            comment=comment,
        )

    def _instantiate(
        self,
        pattern: ShiftPattern,
        configuration: PatternConfiguration,
        planning: PlanningMonth,
        period_start: Optional[DateLike],
        period_end: Optional[DateLike],
    ) -> List[Affectation]:
        """Build and add the slots of one planning month (no commit)."""
        if planning.is_locked:
            raise PlanningLockedError(
                f"Planning {planning.year}-{planning.month:02d} is validated; patterns cannot be applied"
            )

        first_day = datetime(planning.year, planning.month, 1)
        last_day = datetime(planning.year, planning.month, calendar.monthrange(planning.year, planning.month)[1])
        if period_start is not None and _as_datetime(period_start) > first_day:
            first_day = _as_datetime(period_start)
        if period_end is not None and _as_datetime(period_end) < last_day:
            last_day = _as_datetime(period_end)
        window_end = datetime.combine(last_day.date() + timedelta(days=1), time.min)

        slots = []
        week_start = first_monday_on_or_after(first_day.date())
        while week_start <= last_day.date():
            for entry in configuration.creneaux_garde:
                slots.append(self._main_slot(entry, planning, week_start, pattern.name))
            for entry in configuration.creneaux_renfort:
                slots.append(self._reinforcement_slot(entry, planning, week_start, pattern.name))
            week_start += timedelta(days=7)

        kept = [slot for slot in slots if first_day <= slot.start_at < window_end]
        for slot in kept:
            slot.planning_month = planning
        AffectationRepository.bulk_create(self.session, kept)
        planning.touch()
        return kept

    def apply_to_planning(
        self,
        pattern: ShiftPattern,
        planning: PlanningMonth,
        period_start: Optional[DateLike] = None,
        period_end: Optional[DateLike] = None,
    ) -> Dict:
        """
        Apply a pattern to one planning month.

        Args:
            pattern: Pattern to apply
            planning: Target planning month
            period_start: Optional lower bound inside the month
            period_end: Optional upper bound (inclusive day) inside the month

        Returns:
            {"created": number of slots, "affectations": the new slots}

        Raises:
            PatternValidationError: If the stored configuration is invalid
            PlanningLockedError: If the month is validated
        """
        configuration, _ = self.validator.validate_configuration(pattern.get_configuration())
        with transaction(self.session):
            slots = self._instantiate(pattern, configuration, planning, period_start, period_end)
            pattern.increment_usage()

        logger.info(
            "Pattern %s applied to planning %s: %d slots created",
            pattern.id, planning.id, len(slots),
        )
        return {"created": len(slots), "affectations": slots}

    def apply_to_period(
        self,
        pattern: ShiftPattern,
        start_date: DateLike,
        end_date: DateLike,
        villa: Optional[Villa] = None,
        all_villas: bool = False,
    ) -> Dict:
        """
        Apply a pattern over every month touched by a date range.

        Missing planning months are created. Validated months are skipped
        and reported under ``skipped``.

        Returns:
            {"created": total slots, "plannings": [...], "skipped": [...]}

        Raises:
            VillaRequiredError: If neither a villa nor all_villas is given
        """
        if all_villas:
            villas = VillaRepository.get_all(self.session)
        elif villa is not None:
            villas = [villa]
        else:
            raise VillaRequiredError("A villa (or all villas) must be selected to apply a pattern")

        configuration, _ = self.validator.validate_configuration(pattern.get_configuration())
        start, end = _as_datetime(start_date), _as_datetime(end_date)

        created = 0
        plannings, skipped = [], []
        with transaction(self.session):
            year, month = start.year, start.month
            while (year, month) <= (end.year, end.month):
                for target in villas:
                    planning = PlanningMonthRepository.get_or_create(self.session, target, year, month)
                    if planning.is_locked:
                        logger.warning(
                            "Skipping validated planning %s %04d-%02d", target.name, year, month
                        )
                        skipped.append(planning)
                        continue
                    slots = self._instantiate(pattern, configuration, planning, start, end)
                    created += len(slots)
                    plannings.append(planning)
                month += 1
                if month > 12:
                    year, month = year + 1, 1
            pattern.increment_usage()

        logger.info(
            "Pattern %s applied from %s to %s on %d plannings: %d slots created",
            pattern.id, start.date(), end.date(), len(plannings), created,
        )
        return {"created": created, "plannings": plannings, "skipped": skipped}
