"""Tests for yearly leave counters and the paid-leave reference period counter."""

import logging
from datetime import date, datetime

import pytest

from villaplan.domain.enums import AbsenceStatus
from villaplan.domain.models import LeaveCounter, PaidLeaveCounter
from villaplan.errors import InsufficientBalanceError
from villaplan.services.counters import AbsenceCounterService, PaidLeaveCounterService, previous_period


@pytest.fixture
def counters(db_session):
    return AbsenceCounterService(db_session)


@pytest.fixture
def three_day_leave(educator, paid_leave_type, add_absence):
    """Monday 10 to Wednesday 12 March 2025: three working days."""
    return add_absence(educator, paid_leave_type, datetime(2025, 3, 10), datetime(2025, 3, 12, 23, 59, 59))


def test_calculate_working_days():
    assert AbsenceCounterService.calculate_working_days(date(2025, 3, 10), date(2025, 3, 16)) == 5
    assert AbsenceCounterService.calculate_working_days(datetime(2025, 4, 18), datetime(2025, 4, 22, 23, 59)) == 2


def test_deduct_then_credit_restores_balance(db_session, counters, educator, paid_leave_type, three_day_leave):
    counters.initialize_yearly_counters(educator, 2025, {"CP": 25})

    counters.deduct_days(three_day_leave)
    db_session.commit()
    counter = counters.get_or_create_counter(educator, paid_leave_type, 2025)
    assert three_day_leave.working_days == 3
    assert counter.taken == 3
    assert counter.remaining == 22

    counters.credit_days(three_day_leave)
    db_session.commit()
    assert counter.taken == 0
    assert counter.remaining == 25


def test_credit_only_while_approved(db_session, counters, educator, paid_leave_type, three_day_leave):
    counters.deduct_days(three_day_leave)
    three_day_leave.status = AbsenceStatus.CANCELLED

    counters.credit_days(three_day_leave)

    assert counters.get_or_create_counter(educator, paid_leave_type, 2025).taken == 3


def test_credit_never_goes_below_zero(db_session, counters, educator, paid_leave_type, three_day_leave):
    counters.credit_days(three_day_leave)

    assert counters.get_or_create_counter(educator, paid_leave_type, 2025).taken == 0


def test_paid_leave_is_mirrored(db_session, counters, educator, three_day_leave):
    counters.deduct_days(three_day_leave)
    db_session.commit()

    payroll = PaidLeaveCounterService(db_session)
    counter = payroll.get_or_create_counter(educator, date(2025, 3, 10))
    assert counter.period_reference == "2024-2025"
    assert counter.taken == 3

    counters.credit_days(three_day_leave)
    db_session.commit()
    assert counter.taken == 0


def test_non_deducting_type_is_ignored(db_session, counters, educator, sick_leave_type, add_absence):
    absence = add_absence(educator, sick_leave_type, datetime(2025, 3, 10), datetime(2025, 3, 12))

    counters.deduct_days(absence)
    counters.check_sufficient_balance(educator, sick_leave_type, absence.start_at, absence.end_at)

    assert db_session.query(LeaveCounter).count() == 0
    assert db_session.query(PaidLeaveCounter).count() == 0


def test_negative_balance_is_logged(db_session, counters, three_day_leave, caplog):
    with caplog.at_level(logging.WARNING, logger="villaplan"):
        counters.deduct_days(three_day_leave)

    assert "Negative counter balance" in caplog.text


def test_insufficient_balance(db_session, counters, educator, paid_leave_type):
    counters.initialize_yearly_counters(educator, 2025, {"CP": 2})

    with pytest.raises(InsufficientBalanceError) as exc_info:
        counters.check_sufficient_balance(educator, paid_leave_type, date(2025, 3, 10), date(2025, 3, 12))

    assert str(exc_info.value) == "Insufficient balance for Paid leave: 2 days available, 3 days requested"
    counters.check_sufficient_balance(educator, paid_leave_type, date(2025, 3, 10), date(2025, 3, 11))


def test_initialize_skips_unknown_and_non_deducting(db_session, counters, educator, paid_leave_type,
                                                    sick_leave_type):
    created = counters.initialize_yearly_counters(educator, 2025, {"CP": 25, "MAL": 10, "XXX": 3})

    assert [c.absence_type.code for c in created] == ["CP"]
    assert [c.earned for c in counters.get_user_counters(educator, 2025)] == [25]

    counters.initialize_yearly_counters(educator, 2025, {"CP": 27})
    assert [c.earned for c in counters.get_user_counters(educator, 2025)] == [27]


def test_period_reference():
    assert PaidLeaveCounter.period_for(datetime(2025, 5, 31)) == "2024-2025"
    assert PaidLeaveCounter.period_for(datetime(2025, 6, 1)) == "2025-2026"
    assert previous_period("2025-2026") == "2024-2025"


def test_monthly_credit_and_adjustment(db_session, educator, make_user):
    admin = make_user("Bruno", "Durand")
    service = PaidLeaveCounterService(db_session)

    for month in (6, 7, 8):
        assert service.credit_monthly(educator, 2025, month) == 2.5
    counter = service.get_or_create_counter(educator, date(2025, 9, 1))
    assert counter.acquired == 7.5

    service.adjust_balance(educator, -1.5, "Payroll correction", admin)
    service.adjust_balance(educator, 0.5, "Second correction", admin)

    current = service.get_or_create_counter(educator)
    assert current.admin_adjustment == -1.0
    assert current.adjustment_comment == "Second correction"


def test_new_period_carries_previous_balance(db_session, educator):
    service = PaidLeaveCounterService(db_session)
    service.credit_monthly(educator, 2024, 6)
    service.credit_monthly(educator, 2024, 7)
    service.deduct(educator, 1, on=date(2024, 8, 5))
    db_session.commit()

    counter = service.get_or_create_counter(educator, date(2025, 6, 2))

    assert counter.period_reference == "2025-2026"
    assert counter.initial_balance == 4.0
    assert service.current_balance(educator, date(2025, 6, 2)) == 4.0
    assert service.current_balance(educator, date(2030, 1, 1)) == 0.0
