"""Tests for the transaction wrapper and repositories."""

import logging
from datetime import datetime

import pytest

from villaplan.domain.db import transaction
from villaplan.domain.enums import AbsenceStatus
from villaplan.domain.models import AbsenceType, User, Villa
from villaplan.domain.repositories import (
    AbsenceRepository,
    AbsenceTypeRepository,
    PlanningMonthRepository,
    UserRepository,
    VillaRepository,
)
from villaplan.logging_setup import APP_LOGGER, setup_logging


def test_transaction_rolls_back_on_error(db_session):
    with pytest.raises(RuntimeError):
        with transaction(db_session):
            UserRepository.create(db_session, User(first_name="Eve", last_name="Blanc"))
            raise RuntimeError("boom")

    assert UserRepository.get_all(db_session) == []

    with transaction(db_session):
        UserRepository.create(db_session, User(first_name="Eve", last_name="Blanc"))
    assert [u.full_name for u in UserRepository.get_all(db_session)] == ["Eve Blanc"]


def test_villa_queries(db_session, villa):
    annexe = VillaRepository.create(db_session, Villa(name="Annexe"))

    assert [v.name for v in VillaRepository.get_all(db_session)] == ["Annexe", "Les Pins"]
    assert VillaRepository.get_by_id(db_session, annexe.id) is annexe


def test_get_or_create_planning(db_session, villa):
    first = PlanningMonthRepository.get_or_create(db_session, villa, 2025, 3)
    second = PlanningMonthRepository.get_or_create(db_session, villa, 2025, 3)

    assert first is second
    assert first.version == 1
    assert PlanningMonthRepository.get_by_id(db_session, first.id) is first
    assert PlanningMonthRepository.find(db_session, villa.id, 2025, 4) is None


def test_absence_type_queries(db_session, paid_leave_type, sick_leave_type):
    rtt = AbsenceTypeRepository.create(db_session, AbsenceType(code="RTT", label="Time off", deducts_from_counter=True))

    assert [t.code for t in AbsenceTypeRepository.get_all(db_session)] == ["CP", "MAL", "RTT"]
    assert AbsenceTypeRepository.get_deducting(db_session) == [paid_leave_type, rtt]
    assert AbsenceTypeRepository.get_by_code(db_session, "MAL") == sick_leave_type


def test_absence_queries(db_session, educator, sick_leave_type, add_absence):
    later = add_absence(educator, sick_leave_type, datetime(2025, 3, 10), datetime(2025, 3, 11))
    earlier = add_absence(educator, sick_leave_type, datetime(2025, 3, 3), datetime(2025, 3, 4),
                          status=AbsenceStatus.PENDING)

    assert AbsenceRepository.get_by_user(db_session, educator.id) == [earlier, later]
    assert AbsenceRepository.get_approved_overlapping(
        db_session, educator.id, datetime(2025, 3, 1), datetime(2025, 3, 31)
    ) == [later]
    assert AbsenceRepository.get_overlapping(
        db_session, educator.id, datetime(2025, 3, 1), datetime(2025, 3, 31),
        [AbsenceStatus.PENDING, AbsenceStatus.APPROVED], exclude_id=later.id,
    ) == [earlier]


def test_setup_logging_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "villaplan.log"
    logger = setup_logging("DEBUG", log_file=str(log_file))
    try:
        logging.getLogger(f"{APP_LOGGER}.tests").info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert "hello" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
