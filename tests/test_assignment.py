"""Tests for assigning, resizing and creating slots."""

from datetime import datetime

import pytest

from villaplan.domain.enums import AffectationKind, AffectationStatus, PlanningStatus
from villaplan.errors import InvalidWindowError, PlanningLockedError, VillaRequiredError
from villaplan.services.assignment import DURATION_TOO_LONG, DURATION_TOO_SHORT, AssignmentService
from villaplan.services.availability import ABSENCE_OVERLAP

START, END = datetime(2025, 3, 3, 7), datetime(2025, 3, 5, 7)


@pytest.fixture
def planning(villa, make_planning):
    return make_planning(villa)


@pytest.fixture
def slot(planning, make_slot):
    return make_slot(planning, START, END)


def test_assign_free_user(db_session, slot, educator):
    version = slot.planning_month.version

    warnings = AssignmentService(db_session).assign(slot, educator)

    assert warnings == []
    assert slot.user == educator
    assert slot.status == AffectationStatus.DRAFT
    assert slot.worked_days == 2
    assert slot.planning_month.version > version


def test_assign_absent_user_flags_slot(db_session, slot, educator, sick_leave_type, add_absence):
    add_absence(educator, sick_leave_type, datetime(2025, 3, 4), datetime(2025, 3, 4, 23, 59, 59))

    warnings = AssignmentService(db_session).assign(slot, educator)

    assert slot.status == AffectationStatus.TO_REPLACE_ABSENCE
    assert [w.type for w in warnings] == [ABSENCE_OVERLAP]
    assert warnings[0].message == "Overlap with Sick leave from 04/03/2025 00:00 to 04/03/2025 23:59"


def test_assign_refused_on_validated_month(db_session, slot, educator):
    slot.planning_month.status = PlanningStatus.VALIDATED
    db_session.commit()

    with pytest.raises(PlanningLockedError):
        AssignmentService(db_session).assign(slot, educator)
    assert slot.user is None


def test_duration_warnings(db_session, planning, make_slot, educator):
    service = AssignmentService(db_session)
    short = make_slot(planning, datetime(2025, 3, 12, 11), datetime(2025, 3, 12, 16),
                      kind=AffectationKind.REINFORCEMENT)
    long = make_slot(planning, datetime(2025, 3, 17, 7), datetime(2025, 3, 21, 7))

    short_warnings = service.assign(short, educator)
    long_warnings = service.assign(long, educator)

    assert [w.type for w in short_warnings] == [DURATION_TOO_SHORT]
    assert short_warnings[0].message == "Duration too short: 5h (minimum 7h)"
    assert short.worked_days == 0
    assert [w.type for w in long_warnings] == [DURATION_TOO_LONG]


def test_resize_recomputes_and_rechecks(db_session, slot, educator, sick_leave_type, add_absence):
    service = AssignmentService(db_session)
    service.assign(slot, educator)
    add_absence(educator, sick_leave_type, datetime(2025, 3, 5, 8), datetime(2025, 3, 5, 18))

    service.resize(slot, START, datetime(2025, 3, 5, 12))
    assert slot.status == AffectationStatus.TO_REPLACE_ABSENCE
    assert slot.worked_days == 3

    service.resize(slot, START, datetime(2025, 3, 4, 7))
    assert slot.status == AffectationStatus.DRAFT
    assert slot.worked_days == 1


def test_resize_rejects_inverted_window(db_session, slot):
    with pytest.raises(InvalidWindowError):
        AssignmentService(db_session).resize(slot, END, START)
    assert slot.end_at == END


def test_unassign_clears_conflict(db_session, slot, educator, sick_leave_type, add_absence):
    add_absence(educator, sick_leave_type, START, END)
    service = AssignmentService(db_session)
    service.assign(slot, educator)

    service.unassign(slot)

    assert slot.user is None
    assert slot.status == AffectationStatus.DRAFT


def test_unassign_keeps_validated_status(db_session, planning, make_slot, educator):
    slot = make_slot(planning, START, END, user=educator, status=AffectationStatus.VALIDATED)

    AssignmentService(db_session).unassign(slot)

    assert slot.user is None
    assert slot.status == AffectationStatus.VALIDATED


def test_create_manual(db_session, planning, villa, educator):
    slot = AssignmentService(db_session).create_manual(
        planning, START, END, AffectationKind.MAIN_48H, villa=villa, user=educator, comment="Cover"
    )

    assert slot.id is not None
    assert slot in planning.affectations
    assert not slot.from_skeleton
    assert slot.status == AffectationStatus.DRAFT
    assert slot.worked_days == 2
    assert slot.comment == "Cover"


def test_create_manual_rules(db_session, planning, villa):
    service = AssignmentService(db_session)

    with pytest.raises(VillaRequiredError):
        service.create_manual(planning, START, END, AffectationKind.MAIN_24H)
    with pytest.raises(InvalidWindowError):
        service.create_manual(planning, END, START, AffectationKind.MAIN_48H, villa=villa)

    reinforcement = service.create_manual(
        planning, datetime(2025, 3, 5, 11), datetime(2025, 3, 5, 19), AffectationKind.REINFORCEMENT
    )
    assert reinforcement.villa is None
    assert len(planning.affectations) == 1
