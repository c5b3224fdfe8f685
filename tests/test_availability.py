"""Tests for the availability resolver."""

from datetime import datetime

from villaplan.domain.enums import AbsenceStatus, AffectationKind, AppointmentStatus
from villaplan.domain.models import AbsenceType
from villaplan.services.availability import (
    ABSENCE_OVERLAP,
    APPOINTMENT_COLOR,
    APPOINTMENT_OVERLAP,
    AvailabilityResolver,
)

WINDOW = (datetime(2025, 3, 3, 7), datetime(2025, 3, 5, 7))


def test_only_approved_absences_are_returned(db_session, educator, paid_leave_type, add_absence):
    add_absence(educator, paid_leave_type, datetime(2025, 3, 4), datetime(2025, 3, 4, 23, 59))
    add_absence(educator, paid_leave_type, datetime(2025, 3, 3), datetime(2025, 3, 3, 23, 59),
                status=AbsenceStatus.PENDING)

    availability = AvailabilityResolver(db_session).for_period(educator, *WINDOW)

    assert len(availability.absences) == 1
    item = availability.absences[0]
    assert item.label == "Paid leave"
    assert item.color == "#FCA5A5"
    assert item.severity == "warning"
    assert not availability.is_free


def test_absence_colors_by_category(db_session, educator, add_absence):
    work_accident = AbsenceType(code="AT", label="Work accident")
    training = AbsenceType(code="FORM", label="Training")
    db_session.add_all([work_accident, training])
    db_session.commit()
    add_absence(educator, work_accident, datetime(2025, 3, 3, 8), datetime(2025, 3, 3, 18))
    add_absence(educator, training, datetime(2025, 3, 4, 8), datetime(2025, 3, 4, 18))

    colors = {item.category: item.color for item in AvailabilityResolver(db_session).for_period(educator, *WINDOW).absences}

    assert colors == {"AT": "#FDBA74", "FORM": "#FCA5A5"}


def test_appointments_filtered_by_impact_and_status(db_session, educator, add_appointment):
    add_appointment(educator, datetime(2025, 3, 4, 9), datetime(2025, 3, 4, 10), title="Synthesis")
    add_appointment(educator, datetime(2025, 3, 4, 11), datetime(2025, 3, 4, 12), impacts_shift=False)
    add_appointment(educator, datetime(2025, 3, 4, 14), datetime(2025, 3, 4, 15),
                    status=AppointmentStatus.CANCELLED)

    availability = AvailabilityResolver(db_session).for_period(educator, *WINDOW)

    assert [item.label for item in availability.appointments] == ["Synthesis"]
    assert availability.appointments[0].color == APPOINTMENT_COLOR


def test_touching_windows_do_not_overlap(db_session, educator, sick_leave_type, add_absence):
    """Half-open intervals: an absence ending at the window start is not a hit."""
    add_absence(educator, sick_leave_type, datetime(2025, 3, 1), WINDOW[0])
    add_absence(educator, sick_leave_type, WINDOW[1], datetime(2025, 3, 6))

    assert AvailabilityResolver(db_session).for_period(educator, *WINDOW).absences == []


def test_existing_slots_listed(db_session, villa, educator, make_planning, make_slot):
    planning = make_planning(villa)
    slot = make_slot(planning, datetime(2025, 3, 4, 11), datetime(2025, 3, 4, 19),
                     kind=AffectationKind.REINFORCEMENT, user=educator)

    availability = AvailabilityResolver(db_session).for_period(educator, *WINDOW)

    assert availability.affectations == [slot]
    assert availability.is_free


def test_overlaps_for_slot(db_session, villa, educator, paid_leave_type, make_planning, make_slot,
                           add_absence, add_appointment):
    planning = make_planning(villa)
    slot = make_slot(planning, *WINDOW, user=educator)
    add_absence(educator, paid_leave_type, datetime(2025, 3, 4), datetime(2025, 3, 4, 23, 59))
    add_appointment(educator, datetime(2025, 3, 3, 9), datetime(2025, 3, 3, 10), title="Synthesis")

    overlaps = AvailabilityResolver(db_session).overlaps_for_slot(slot)

    assert [o.type for o in overlaps] == [ABSENCE_OVERLAP, APPOINTMENT_OVERLAP]
    assert overlaps[0].message == "Overlap with Paid leave from 04/03/2025 00:00 to 04/03/2025 23:59"
    assert overlaps[1].details["label"] == "Synthesis"


def test_overlaps_for_unassigned_slot(db_session, villa, make_planning, make_slot):
    planning = make_planning(villa)
    slot = make_slot(planning, *WINDOW)

    assert AvailabilityResolver(db_session).overlaps_for_slot(slot) == []
