"""I/O utilities for CSV export."""

from .export_csv import export_monthly_report_csv, export_planning_csv

__all__ = [
    "export_monthly_report_csv",
    "export_planning_csv",
]
