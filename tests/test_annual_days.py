"""Tests for the yearly working-day allowance."""

import logging

import pytest

from villaplan.services.annual_days import AnnualDayCounterService


@pytest.fixture
def annual(db_session):
    return AnnualDayCounterService(db_session)


def test_counter_opens_with_full_year(db_session, annual, educator):
    counter = annual.get_or_create_counter(educator, 2025)
    db_session.commit()

    assert counter.allocated_days == 258
    assert counter.consumed_days == 0
    assert counter.remaining == 258
    assert annual.get_or_create_counter(educator, 2025) is counter
    assert annual.get_counter(educator, 2026) is None


def test_allowance_without_counter_is_the_default(db_session, annual, educator):
    assert annual.allowance_for(educator, 2025) == 258
    assert annual.get_counter(educator, 2025) is None


def test_consume_then_restore(db_session, annual, educator):
    annual.consume_days(educator, 2025, 12)
    counter = annual.consume_days(educator, 2025, 3)
    db_session.commit()
    assert counter.consumed_days == 15
    assert counter.remaining == 243
    assert counter.percentage_used == pytest.approx(5.81)

    annual.restore_days(educator, 2025, 5)
    db_session.commit()
    assert counter.consumed_days == 10

    annual.restore_days(educator, 2025, 50)
    assert counter.consumed_days == 0


def test_overconsumption_logs_a_warning(db_session, annual, educator, caplog):
    with caplog.at_level(logging.WARNING, logger="villaplan"):
        counter = annual.consume_days(educator, 2025, 260)

    assert counter.is_negative
    assert not counter.has_sufficient_balance(1)
    assert "allowance exceeded" in caplog.text


def test_admin_adjustment_accumulates(db_session, annual, educator, make_user):
    admin = make_user("Claire", "Petit")

    annual.adjust_balance(educator, 2025, -8, "Part-time from September", admin)
    counter = annual.adjust_balance(educator, 2025, 2, "Correction", admin)

    assert counter.admin_adjustment == -6
    assert counter.adjustment_comment == "Correction"
    assert counter.allowance == 252
    assert annual.allowance_for(educator, 2025) == 252


def test_initialize_year_skips_existing(db_session, annual, educator, make_user):
    make_user("Bruno", "Durand")
    annual.get_or_create_counter(educator, 2026)
    db_session.commit()

    assert annual.initialize_year(2026) == {"created": 1, "skipped": 1}
    assert annual.initialize_year(2026) == {"created": 0, "skipped": 2}


def test_low_and_negative_balances(db_session, annual, educator, make_user):
    bruno = make_user("Bruno", "Durand")
    chloe = make_user("Chloe", "Moreau")
    annual.consume_days(educator, 2025, 252)
    annual.consume_days(bruno, 2025, 260)
    annual.consume_days(chloe, 2025, 100)
    annual.consume_days(chloe, 2024, 255)
    db_session.commit()

    assert [c.user for c in annual.get_low_balances(2025)] == [educator]
    assert [c.user for c in annual.get_low_balances(2025, threshold=200)] == [educator, chloe]
    assert [c.user for c in annual.get_negative_balances(2025)] == [bruno]
    assert annual.get_negative_balances(2024) == []
