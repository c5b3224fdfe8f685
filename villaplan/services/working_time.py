"""Worked-day and worked-hour tallies consumed by payroll."""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, time
from typing import Dict, List

import pandas as pd
from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.enums import COUNTED_STATUSES, AffectationKind
from villaplan.domain.models import Affectation, User
from villaplan.domain.repositories import AffectationRepository, UserRepository
from villaplan.logging_setup import get_logger

logger = get_logger(__name__)

MAIN_SHIFT = "main_shift"
REINFORCEMENT = "reinforcement"
REPORT_COLUMNS = [
    "user_id",
    "user_name",
    "main_shift_days",
    "main_shift_hours",
    "reinforcement_days",
    "reinforcement_hours",
    "total_days",
    "total_hours",
]


def worked_days_for_window(start: datetime, end: datetime, min_hours: float = 7.0) -> int:
    """
    Worked days credited for one slot.

    Under ``min_hours`` counts nothing; otherwise every started 24-hour block
    counts as a full day (24h -> 1, 25h -> 2, 48h -> 2, 49h -> 3).
    """
    hours = (end - start).total_seconds() / 3600.0
    if hours < min_hours:
        return 0
    return int(math.ceil(hours / 24.0))


def worked_hours_for_window(start: datetime, end: datetime) -> int:
    """Whole hours of a slot, rounded to the nearest hour."""
    return int(round((end - start).total_seconds() / 3600.0))


def category_of(kind: AffectationKind) -> str:
    return REINFORCEMENT if kind == AffectationKind.REINFORCEMENT else MAIN_SHIFT


def _period_bounds(start_date: date, end_date: date):
    return datetime.combine(start_date, time.min), datetime.combine(end_date, time(23, 59, 59))


def month_bounds(year: int, month: int):
    """First and last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class WorkingTimeCalculator:
    """Aggregates worked days and hours per user and shift category."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg

    def days_for(self, slot: Affectation) -> int:
        return worked_days_for_window(
            slot.start_at, slot.end_at, self.cfg.working_time.min_counted_hours
        )

    def calculate_for_user(self, user: User, start_date: date, end_date: date) -> Dict:
        """
        Worked time of one user over a date range.

        Only slots in a counted status (validated or awaiting replacement)
        whose start lies within the range are included.

        Args:
            user: The educator
            start_date: First day of the range (inclusive)
            end_date: Last day of the range (inclusive)

        Returns:
            Dict with ``main_shift`` and ``reinforcement`` buckets (days, hours,
            affectations) and a ``total`` bucket (days, hours)
        """
        period_start, period_end = _period_bounds(start_date, end_date)
        slots = AffectationRepository.get_for_user_starting_between(
            self.session, user.id, period_start, period_end, COUNTED_STATUSES
        )

        buckets = {
            MAIN_SHIFT: {"days": 0, "hours": 0, "affectations": []},
            REINFORCEMENT: {"days": 0, "hours": 0, "affectations": []},
        }
        for slot in slots:
            days = self.days_for(slot)
            hours = worked_hours_for_window(slot.start_at, slot.end_at)
            bucket = buckets[category_of(slot.kind)]
            bucket["days"] += days
            bucket["hours"] += hours
            bucket["affectations"].append({
                "id": slot.id,
                "start": slot.start_at,
                "end": slot.end_at,
                "kind": slot.kind.value,
                "villa": slot.villa.name if slot.villa is not None else None,
                "days": days,
                "hours": hours,
            })

        return {
            "user_id": user.id,
            "user_name": user.full_name,
            MAIN_SHIFT: buckets[MAIN_SHIFT],
            REINFORCEMENT: buckets[REINFORCEMENT],
            "total": {
                "days": buckets[MAIN_SHIFT]["days"] + buckets[REINFORCEMENT]["days"],
                "hours": buckets[MAIN_SHIFT]["hours"] + buckets[REINFORCEMENT]["hours"],
            },
        }

    def calculate_for_all_users(self, start_date: date, end_date: date) -> List[Dict]:
        """Same as :meth:`calculate_for_user` for every user with a counted slot in the range."""
        period_start, period_end = _period_bounds(start_date, end_date)
        user_ids = AffectationRepository.get_user_ids_with_slots_between(
            self.session, period_start, period_end, COUNTED_STATUSES
        )
        results = []
        for user_id in user_ids:
            user = UserRepository.get_by_id(self.session, user_id)
            results.append(self.calculate_for_user(user, start_date, end_date))
        return results

    def generate_monthly_report(self, year: int, month: int) -> Dict:
        """
        Monthly payroll report: one row per user plus grand totals.

        Args:
            year: Report year
            month: Report month (1-12)

        Returns:
            Dict with ``year``, ``month``, ``period``, ``users`` (rows) and ``totals``
        """
        start_date, end_date = month_bounds(year, month)
        period_start, period_end = _period_bounds(start_date, end_date)
        slots = AffectationRepository.get_assigned_starting_between(
            self.session, period_start, period_end, COUNTED_STATUSES
        )
        records = [
            {
                "user_id": slot.user_id,
                "user_name": slot.user.full_name,
                "category": category_of(slot.kind),
                "days": self.days_for(slot),
                "hours": worked_hours_for_window(slot.start_at, slot.end_at),
            }
            for slot in slots
        ]

        rows = _aggregate(records)
        totals = {col: int(sum(row[col] for row in rows)) for col in REPORT_COLUMNS[2:]}
        logger.info(
            "Monthly report %04d-%02d: %d users, %d days",
            year, month, len(rows), totals["total_days"],
        )
        return {
            "year": year,
            "month": month,
            "period": {"start": start_date, "end": end_date},
            "users": rows,
            "totals": totals,
        }


def _aggregate(records: List[Dict]) -> List[Dict]:
    """Sum days and hours per user and category into flat report rows."""
    if not records:
        return []
    df = pd.DataFrame(records)
    grouped = (
        df.groupby(["user_id", "user_name", "category"])[["days", "hours"]]
        .sum()
        .unstack("category", fill_value=0)
    )
    rows = []
    for (user_id, user_name), values in grouped.iterrows():
        row = {"user_id": int(user_id), "user_name": user_name}
        for category in (MAIN_SHIFT, REINFORCEMENT):
            row[f"{category}_days"] = int(values.get(("days", category), 0))
            row[f"{category}_hours"] = int(values.get(("hours", category), 0))
        row["total_days"] = row["main_shift_days"] + row["reinforcement_days"]
        row["total_hours"] = row["main_shift_hours"] + row["reinforcement_hours"]
        rows.append(row)
    return sorted(rows, key=lambda r: r["user_name"])


def report_to_frame(report: Dict) -> pd.DataFrame:
    """Monthly report rows as a DataFrame (empty frame with the report columns when no rows)."""
    return pd.DataFrame(report["users"], columns=REPORT_COLUMNS)
