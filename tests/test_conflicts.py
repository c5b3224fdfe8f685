"""Tests for the slot conflict state machine."""

from datetime import datetime

import pytest

from villaplan.domain.enums import AbsenceStatus, AffectationStatus, AppointmentStatus
from villaplan.domain.models import Absence, Appointment
from villaplan.services.conflicts import ConflictDetector

START, END = datetime(2025, 3, 3, 7), datetime(2025, 3, 5, 7)


@pytest.fixture
def slot(villa, educator, make_planning, make_slot):
    return make_slot(make_planning(villa), START, END, user=educator)


def _absence(db_session, user, absence_type, status=AbsenceStatus.APPROVED):
    absence = Absence(user=user, absence_type=absence_type, start_at=START, end_at=END, status=status)
    db_session.add(absence)
    db_session.commit()
    return absence


def _appointment(db_session, user, impacts_shift=True):
    appointment = Appointment(title="Hearing", start_at=START, end_at=END,
                              impacts_shift=impacts_shift, participants=[user])
    db_session.add(appointment)
    db_session.commit()
    return appointment


def test_absence_takes_priority_over_appointment(db_session, slot, educator, sick_leave_type):
    _absence(db_session, educator, sick_leave_type)
    _appointment(db_session, educator)

    assert ConflictDetector(db_session).check(slot) == AffectationStatus.TO_REPLACE_ABSENCE
    assert slot.status == AffectationStatus.TO_REPLACE_ABSENCE


def test_impacting_appointment_flags_slot(db_session, slot, educator):
    _appointment(db_session, educator)

    assert ConflictDetector(db_session).check(slot) == AffectationStatus.TO_REPLACE_APPOINTMENT


def test_pending_absence_and_non_impacting_appointment_ignored(db_session, slot, educator, sick_leave_type):
    _absence(db_session, educator, sick_leave_type, status=AbsenceStatus.PENDING)
    _appointment(db_session, educator, impacts_shift=False)

    assert ConflictDetector(db_session).check(slot) == AffectationStatus.DRAFT


def test_resolved_appointment_conflict_returns_to_draft(db_session, slot, educator):
    appointment = _appointment(db_session, educator)
    detector = ConflictDetector(db_session)
    detector.check(slot)

    appointment.status = AppointmentStatus.CANCELLED
    db_session.commit()

    assert detector.check(slot) == AffectationStatus.DRAFT


def test_validated_slot_is_never_revalidated_or_downgraded_on_resolution(db_session, slot, educator):
    """A resolved conflict leaves a validated slot validated."""
    appointment = _appointment(db_session, educator)
    appointment.status = AppointmentStatus.CANCELLED
    slot.status = AffectationStatus.VALIDATED
    db_session.commit()

    assert ConflictDetector(db_session).check(slot) == AffectationStatus.VALIDATED


def test_unassigned_slot_untouched(db_session, villa, make_planning, make_slot):
    slot = make_slot(make_planning(villa), START, END, status=AffectationStatus.TO_REPLACE_ABSENCE)

    assert ConflictDetector(db_session).check(slot) == AffectationStatus.TO_REPLACE_ABSENCE


def test_recheck_user_window_reports_changes(db_session, slot, educator, sick_leave_type):
    _absence(db_session, educator, sick_leave_type)

    changed = ConflictDetector(db_session).recheck_user_window(educator, START, END)

    assert changed == [slot]
    assert slot.status == AffectationStatus.TO_REPLACE_ABSENCE
