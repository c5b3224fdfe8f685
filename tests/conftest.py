"""Pytest configuration and shared fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from villaplan.domain.enums import AbsenceStatus, AffectationKind, AffectationStatus, AppointmentStatus
from villaplan.domain.models import (
    Absence,
    AbsenceType,
    Affectation,
    Appointment,
    Base,
    PlanningMonth,
    User,
    Villa,
)
from villaplan.services.working_time import worked_days_for_window


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )


@pytest.fixture
def db_session():
    """Create in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def villa(db_session):
    villa = Villa(name="Les Pins", color="#60A5FA")
    db_session.add(villa)
    db_session.commit()
    return villa


@pytest.fixture
def other_villa(db_session):
    villa = Villa(name="Les Chenes", color="#34D399")
    db_session.add(villa)
    db_session.commit()
    return villa


@pytest.fixture
def make_user(db_session):
    """Factory for educators."""
    def _make(first_name="Alice", last_name="Martin", villa=None):
        user = User(first_name=first_name, last_name=last_name, role="educator", villa=villa)
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def educator(make_user):
    return make_user()


@pytest.fixture
def paid_leave_type(db_session):
    absence_type = AbsenceType(code="CP", label="Paid leave", deducts_from_counter=True, affects_planning=True)
    db_session.add(absence_type)
    db_session.commit()
    return absence_type


@pytest.fixture
def sick_leave_type(db_session):
    absence_type = AbsenceType(code="MAL", label="Sick leave", deducts_from_counter=False, affects_planning=True)
    db_session.add(absence_type)
    db_session.commit()
    return absence_type


@pytest.fixture
def make_planning(db_session):
    def _make(villa, year=2025, month=3):
        planning = PlanningMonth(villa=villa, year=year, month=month)
        db_session.add(planning)
        db_session.commit()
        return planning
    return _make


@pytest.fixture
def make_slot(db_session):
    """Factory for slots attached directly to a planning month."""
    def _make(
        planning,
        start,
        end,
        kind=AffectationKind.MAIN_48H,
        user=None,
        status=AffectationStatus.DRAFT,
        villa="planning",
        from_skeleton=False,
    ):
        slot = Affectation(
            planning_month=planning,
            villa=planning.villa if villa == "planning" else villa,
            start_at=start,
            end_at=end,
            kind=kind,
            status=status,
            user=user,
            from_skeleton=from_skeleton,
            worked_days=worked_days_for_window(start, end),
        )
        db_session.add(slot)
        db_session.commit()
        return slot
    return _make


@pytest.fixture
def add_absence(db_session):
    def _add(user, absence_type, start, end, status=AbsenceStatus.APPROVED):
        absence = Absence(user=user, absence_type=absence_type, start_at=start, end_at=end, status=status)
        db_session.add(absence)
        db_session.commit()
        return absence
    return _add


@pytest.fixture
def add_appointment(db_session):
    def _add(user, start, end, impacts_shift=True, status=AppointmentStatus.PLANNED, title="Team meeting"):
        appointment = Appointment(
            title=title, start_at=start, end_at=end, impacts_shift=impacts_shift,
            status=status, participants=[user],
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment
    return _add
