"""Whole-month checks run before a planning is locked."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.enums import (
    CONFLICT_STATUSES,
    COUNTED_STATUSES,
    LOCK_TRANSITIONS,
    PLANNING_TRANSITIONS,
    AffectationKind,
    PlanningStatus,
)
from villaplan.domain.models import Affectation, PlanningMonth, User
from villaplan.domain.repositories import AffectationRepository
from villaplan.errors import InvalidTransitionError, PlanningValidationFailed
from villaplan.logging_setup import get_logger
from villaplan.services.annual_days import AnnualDayCounterService
from villaplan.services.availability import AvailabilityResolver
from villaplan.services.issues import ERROR, WARNING, Issue, format_window
from villaplan.services.working_time import worked_days_for_window

logger = get_logger(__name__)

COVERAGE_GAP = "coverage_gap"
SCHEDULE_CONFLICT = "schedule_conflict"
ANNUAL_LIMIT_EXCEEDED = "annual_limit_exceeded"
ANNUAL_LIMIT_APPROACHING = "annual_limit_approaching"


@dataclass
class ValidationResult:
    errors: List[Issue] = field(default_factory=list)
    warnings: List[Issue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, issue: Issue) -> None:
        if issue.severity == ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def to_dict(self) -> Dict:
        return {
            "valid": self.valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


def month_window(year: int, month: int) -> Tuple[datetime, datetime]:
    """``[first day 00:00, first day of next month 00:00)``."""
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


def uncovered_intervals(
    slots: List[Affectation], start: datetime, end: datetime
) -> List[Tuple[datetime, datetime]]:
    """Sub-intervals of ``[start, end)`` not covered by the union of the slot windows."""
    gaps = []
    cursor = start
    for slot in sorted(slots, key=lambda s: s.start_at):
        if slot.start_at > cursor:
            gaps.append((cursor, min(slot.start_at, end)))
        cursor = max(cursor, slot.end_at)
        if cursor >= end:
            break
    if cursor < end:
        gaps.append((cursor, end))
    return gaps


def _overlap(a: Affectation, b: Affectation) -> bool:
    return a.start_at < b.end_at and a.end_at > b.start_at


class ValidationEngine:
    """
    Plan-wide sweep of one planning month.

    Errors block the month lock; warnings are informative only.
    """

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg
        self.availability = AvailabilityResolver(session)
        self.annual_counters = AnnualDayCounterService(session, cfg)

    def _assigned_users(self, planning: PlanningMonth) -> List[User]:
        users = {}
        for slot in planning.affectations:
            if slot.user is not None:
                users[slot.user.id] = slot.user
        return [users[user_id] for user_id in sorted(users)]

    def _locked_days_by_user(self, planning: PlanningMonth) -> List[Tuple[User, int]]:
        """Worked days of each user's counted slots in this planning."""
        min_hours = self.cfg.working_time.min_counted_hours
        totals: Dict[int, int] = {}
        for slot in planning.affectations:
            if slot.user is None or slot.status not in COUNTED_STATUSES:
                continue
            totals[slot.user.id] = totals.get(slot.user.id, 0) + worked_days_for_window(
                slot.start_at, slot.end_at, min_hours
            )
        return [(user, totals[user.id]) for user in self._assigned_users(planning) if user.id in totals]

    def check_coverage(self, planning: PlanningMonth) -> List[Issue]:
        """Every instant of the month needs an assigned main shift of the villa."""
        start, end = month_window(planning.year, planning.month)
        slots = [
            slot
            for slot in AffectationRepository.get_assigned_main_for_villa(
                self.session, planning.villa_id, start, end
            )
            if slot.status not in CONFLICT_STATUSES
        ]
        villa_name = planning.villa.name
        return [
            Issue(
                type=COVERAGE_GAP,
                message=f"Coverage gap in {villa_name} {format_window(gap_start, gap_end)}",
                severity=ERROR,
                details={"villa": villa_name, "start": gap_start, "end": gap_end},
            )
            for gap_start, gap_end in uncovered_intervals(slots, start, end)
        ]

    def check_double_booking(self, planning: PlanningMonth) -> List[Issue]:
        """Overlapping main shifts of one user, across all villas."""
        start, end = month_window(planning.year, planning.month)
        issues = []
        for user in self._assigned_users(planning):
            slots = AffectationRepository.get_overlapping_for_user(self.session, user.id, start, end)
            for i, first in enumerate(slots):
                for second in slots[i + 1:]:
                    if planning.id not in (first.planning_month_id, second.planning_month_id):
                        continue
                    if AffectationKind.REINFORCEMENT in (first.kind, second.kind):
                        continue
                    if not _overlap(first, second):
                        continue
                    issues.append(Issue(
                        type=SCHEDULE_CONFLICT,
                        message=(
                            f"{user.full_name} is assigned to overlapping shifts: "
                            f"{_describe(first)} and {_describe(second)}"
                        ),
                        severity=ERROR,
                        details={"user_id": user.id, "affectation_ids": [first.id, second.id]},
                    ))
        return issues

    def annual_days(self, user: User, planning: PlanningMonth) -> int:
        """Worked days of the calendar year: counted slots plus this planning's slots."""
        year_start, year_end = datetime(planning.year, 1, 1), datetime(planning.year, 12, 31, 23, 59, 59)
        slots = {
            slot.id: slot
            for slot in AffectationRepository.get_for_user_starting_between(
                self.session, user.id, year_start, year_end, COUNTED_STATUSES
            )
        }
        for slot in planning.affectations:
            if slot.user_id == user.id:
                slots[slot.id] = slot
        min_hours = self.cfg.working_time.min_counted_hours
        return sum(worked_days_for_window(s.start_at, s.end_at, min_hours) for s in slots.values())

    def check_annual_limits(self, planning: PlanningMonth) -> List[Issue]:
        """Compare each user's worked days with their yearly allowance (258 days unless adjusted)."""
        margin = self.cfg.annual_limit.warning_margin_days
        issues = []
        for user in self._assigned_users(planning):
            ceiling = self.annual_counters.allowance_for(user, planning.year)
            total = self.annual_days(user, planning)
            details = {"user_id": user.id, "days": total, "ceiling": ceiling}
            if total > ceiling:
                issues.append(Issue(
                    type=ANNUAL_LIMIT_EXCEEDED,
                    message=f"{user.full_name}: {total} days worked in {planning.year} (limit {ceiling:g})",
                    severity=ERROR,
                    details=details,
                ))
            elif total >= ceiling - margin:
                issues.append(Issue(
                    type=ANNUAL_LIMIT_APPROACHING,
                    message=f"{user.full_name}: {total} days worked in {planning.year}, close to the {ceiling:g}-day limit",
                    severity=WARNING,
                    details=details,
                ))
        return issues

    def check_overlaps(self, planning: PlanningMonth) -> List[Issue]:
        issues = []
        for slot in planning.affectations:
            if slot.user is None:
                continue
            for overlap in self.availability.overlaps_for_slot(slot):
                overlap.message = f"{slot.user.full_name}: {overlap.message[0].lower()}{overlap.message[1:]}"
                overlap.details["affectation_id"] = slot.id
                issues.append(overlap)
        return issues

    def validate_month(self, planning: PlanningMonth) -> ValidationResult:
        """
        Run every check on a planning month.

        Args:
            planning: The planning month

        Returns:
            ValidationResult; ``valid`` is False when any error was found
        """
        result = ValidationResult()
        for check in (
            self.check_coverage,
            self.check_double_booking,
            self.check_annual_limits,
            self.check_overlaps,
        ):
            for issue in check(planning):
                result.add(issue)

        logger.info(
            "Planning %s validated: %d errors, %d warnings",
            planning.id, len(result.errors), len(result.warnings),
        )
        return result

    def lock_month(self, planning: PlanningMonth, validator: User, force: bool = False) -> ValidationResult:
        """
        Validate and lock a planning month; draft slots become validated.

        The worked days of its counted slots are consumed from each
        user's annual allowance in the same transaction.

        Args:
            planning: The planning month
            validator: User locking the month
            force: Lock even when the validation reports errors

        Returns:
            The validation result

        Raises:
            InvalidTransitionError: If the month is already validated
            PlanningValidationFailed: If errors were found and force is False
        """
        target = PlanningStatus.VALIDATED
        if target not in PLANNING_TRANSITIONS[planning.status]:
            raise InvalidTransitionError("planning", planning.status, target)

        result = self.validate_month(planning)
        if not result.valid:
            if not force:
                raise PlanningValidationFailed(result)
            logger.warning(
                "Planning %s locked with %d errors (forced)", planning.id, len(result.errors)
            )

        with transaction(self.session):
            planning.status = target
            planning.validated_by = validator
            planning.validated_at = datetime.now()
            for slot in planning.affectations:
                slot.status = LOCK_TRANSITIONS.get(slot.status, slot.status)
            for user, days in self._locked_days_by_user(planning):
                self.annual_counters.consume_days(user, planning.year, days)
            planning.touch()

        logger.info("Planning %s locked by user %s", planning.id, validator.id)
        return result


def _describe(slot: Affectation) -> str:
    villa = slot.villa.name if slot.villa is not None else "no villa"
    return f"{villa} {format_window(slot.start_at, slot.end_at)}"
