"""CSV export of planning data for payroll."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import pandas as pd

from villaplan.domain.models import PlanningMonth
from villaplan.logging_setup import get_logger
from villaplan.services.working_time import report_to_frame

logger = get_logger(__name__)

PLANNING_COLUMNS = [
    "affectation_id",
    "villa",
    "kind",
    "status",
    "start_at",
    "end_at",
    "user_id",
    "user_name",
    "worked_days",
    "from_skeleton",
]


def export_monthly_report_csv(report: Dict, path: str | Path) -> int:
    """
    Write the per-user rows of a monthly report.

    Returns:
        Number of rows written
    """
    df = report_to_frame(report)
    df.to_csv(path, index=False)
    logger.info("Monthly report %04d-%02d exported to %s (%d rows)", report["year"], report["month"], path, len(df))
    return len(df)


def planning_to_frame(planning: PlanningMonth) -> pd.DataFrame:
    rows = [
        {
            "affectation_id": slot.id,
            "villa": slot.villa.name if slot.villa is not None else "",
            "kind": slot.kind.value,
            "status": slot.status.value,
            "start_at": slot.start_at.isoformat(),
            "end_at": slot.end_at.isoformat(),
            "user_id": slot.user_id,
            "user_name": slot.user.full_name if slot.user is not None else "",
            "worked_days": slot.worked_days,
            "from_skeleton": slot.from_skeleton,
        }
        for slot in planning.affectations
    ]
    return pd.DataFrame(rows, columns=PLANNING_COLUMNS)


def export_planning_csv(planning: PlanningMonth, path: str | Path) -> int:
    """Write every slot of a planning month, ordered by start."""
    df = planning_to_frame(planning).sort_values("start_at")
    df.to_csv(path, index=False)
    logger.info("Planning %s exported to %s (%d slots)", planning.id, path, len(df))
    return len(df)
