"""Tests for CSV exports."""

from datetime import datetime

import pandas as pd

from villaplan.domain.enums import AffectationKind, AffectationStatus
from villaplan.io import export_monthly_report_csv, export_planning_csv
from villaplan.services.generator import SkeletonGenerator
from villaplan.services.working_time import REPORT_COLUMNS, WorkingTimeCalculator


def test_export_monthly_report(db_session, tmp_path, villa, educator, make_planning, make_slot):
    planning = make_planning(villa)
    make_slot(planning, datetime(2025, 3, 3, 7), datetime(2025, 3, 5, 7),
              user=educator, status=AffectationStatus.VALIDATED)
    make_slot(planning, datetime(2025, 3, 5, 11), datetime(2025, 3, 5, 19),
              kind=AffectationKind.REINFORCEMENT, user=educator, status=AffectationStatus.VALIDATED)
    report = WorkingTimeCalculator(db_session).generate_monthly_report(2025, 3)
    path = tmp_path / "report.csv"

    assert export_monthly_report_csv(report, path) == 1

    df = pd.read_csv(path)
    assert list(df.columns) == REPORT_COLUMNS
    row = df.iloc[0]
    assert row["user_name"] == "Alice Martin"
    assert row["main_shift_days"] == 2
    assert row["reinforcement_hours"] == 8
    assert row["total_days"] == 3


def test_export_empty_report_keeps_header(db_session, tmp_path):
    report = WorkingTimeCalculator(db_session).generate_monthly_report(2025, 2)
    path = tmp_path / "empty.csv"

    assert export_monthly_report_csv(report, path) == 0
    assert path.read_text(encoding="utf-8").strip() == ",".join(REPORT_COLUMNS)


def test_export_planning(db_session, tmp_path, villa):
    planning = SkeletonGenerator(db_session).generate(villa, 2025, 3)
    path = tmp_path / "planning.csv"

    assert export_planning_csv(planning, path) == 27

    df = pd.read_csv(path)
    assert df["start_at"].tolist() == sorted(df["start_at"].tolist())
    assert df.iloc[0]["villa"] == "Les Pins"
    assert df.iloc[0]["kind"] == "garde_48h"
    assert df["user_id"].isna().all()
    assert df["from_skeleton"].all()
