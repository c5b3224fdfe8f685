"""SQLAlchemy models for villa shift planning."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from .enums import (
    AbsenceStatus,
    AffectationKind,
    AffectationStatus,
    AppointmentStatus,
    PlanningStatus,
)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _enum_column(enum_cls, default):
    """String-backed enum column storing the member values."""
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            values_callable=lambda members: [m.value for m in members],
            length=32,
        ),
        nullable=False,
        default=default,
    )


class Villa(Base):
    """Housing unit staffed around the clock."""

    __tablename__ = "villas"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(7), nullable=True)

    plannings = relationship("PlanningMonth", back_populates="villa")

    def __repr__(self) -> str:
        return f"<Villa(id={self.id}, name='{self.name}')>"


class User(Base):
    """Educator or staff member (read from the external directory)."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(180), nullable=True)
    role = Column(String(30), nullable=False, default="educator")
    villa_id = Column(Integer, ForeignKey("villas.id"), nullable=True)

    villa = relationship("Villa")
    affectations = relationship("Affectation", back_populates="user", foreign_keys="Affectation.user_id")
    absences = relationship("Absence", back_populates="user", foreign_keys="Absence.user_id")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.full_name}')>"


class PlanningMonth(Base):
    """One villa/year/month planning, owning its shift slots."""

    __tablename__ = "planning_months"
    __table_args__ = (UniqueConstraint("villa_id", "year", "month", name="uq_planning_villa_month"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    villa_id = Column(Integer, ForeignKey("villas.id"), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    status = _enum_column(PlanningStatus, PlanningStatus.DRAFT)
    validated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    validated_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    # Optimistic concurrency: every write bumps it, stale writers fail on flush.
    version = Column(Integer, nullable=False)

    villa = relationship("Villa", back_populates="plannings")
    validated_by = relationship("User", foreign_keys=[validated_by_id])
    affectations = relationship(
        "Affectation",
        back_populates="planning_month",
        cascade="all, delete-orphan",
        order_by="Affectation.start_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_locked(self) -> bool:
        return self.status == PlanningStatus.VALIDATED

    def touch(self) -> None:
        """Force an UPDATE so the version counter is checked and bumped."""
        self.updated_at = datetime.now()

    def __repr__(self) -> str:
        return f"<PlanningMonth(id={self.id}, villa={self.villa_id}, {self.year}-{self.month:02d}, status={self.status.value})>"


class Affectation(Base):
    """A shift slot: one coverage window, optionally assigned to a user."""

    __tablename__ = "affectations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    planning_month_id = Column(Integer, ForeignKey("planning_months.id"), nullable=False)
    villa_id = Column(Integer, ForeignKey("villas.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    kind = _enum_column(AffectationKind, AffectationKind.MAIN_48H)
    status = _enum_column(AffectationStatus, AffectationStatus.DRAFT)
    from_skeleton = Column(Boolean, nullable=False, default=False)
    worked_days = Column(Integer, nullable=True)
    comment = Column(String(255), nullable=True)
    version = Column(Integer, nullable=False)

    planning_month = relationship("PlanningMonth", back_populates="affectations")
    villa = relationship("Villa")
    user = relationship("User", back_populates="affectations", foreign_keys=[user_id])

    __mapper_args__ = {"version_id_col": version}

    @property
    def duration_hours(self) -> float:
        return (self.end_at - self.start_at).total_seconds() / 3600.0

    @property
    def is_main_shift(self) -> bool:
        return self.kind.is_main

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap test against ``[start, end)``."""
        return self.start_at < end and self.end_at > start

    def check_villa_rule(self) -> bool:
        """Main shifts must be tied to a villa; reinforcements may or may not."""
        if self.kind.is_main:
            return self.villa_id is not None or self.villa is not None
        return True

    def __repr__(self) -> str:
        return (
            f"<Affectation(id={self.id}, kind={self.kind.value}, {self.start_at:%Y-%m-%d %H:%M}"
            f" -> {self.end_at:%Y-%m-%d %H:%M}, user={self.user_id}, status={self.status.value})>"
        )


class AbsenceType(Base):
    """Leave category (paid leave, sick leave, ...)."""

    __tablename__ = "absence_types"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False, unique=True)
    label = Column(String(100), nullable=False)
    deducts_from_counter = Column(Boolean, nullable=False, default=False)
    affects_planning = Column(Boolean, nullable=False, default=True)
    color = Column(String(7), nullable=True)

    def __repr__(self) -> str:
        return f"<AbsenceType(code='{self.code}', deducts={self.deducts_from_counter})>"


class Absence(Base):
    """Leave request of a user over a time window."""

    __tablename__ = "absences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    absence_type_id = Column(Integer, ForeignKey("absence_types.id"), nullable=False)
    status = _enum_column(AbsenceStatus, AbsenceStatus.PENDING)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    reason = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    validated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    working_days = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    version = Column(Integer, nullable=False)

    user = relationship("User", back_populates="absences", foreign_keys=[user_id])
    absence_type = relationship("AbsenceType")
    validated_by = relationship("User", foreign_keys=[validated_by_id])

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_approved(self) -> bool:
        return self.status == AbsenceStatus.APPROVED

    def __repr__(self) -> str:
        return f"<Absence(id={self.id}, user={self.user_id}, status={self.status.value})>"


appointment_participants = Table(
    "appointment_participants",
    Base.metadata,
    Column("appointment_id", Integer, ForeignKey("appointments.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
)


class Appointment(Base):
    """Appointment (rendez-vous) with one or more participants."""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(150), nullable=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    impacts_shift = Column(Boolean, nullable=False, default=False)
    status = _enum_column(AppointmentStatus, AppointmentStatus.PLANNED)

    participants = relationship("User", secondary=appointment_participants)

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, title='{self.title}', impacts_shift={self.impacts_shift})>"


class LeaveCounter(Base):
    """Yearly balance of one leave type for one user."""

    __tablename__ = "leave_counters"
    __table_args__ = (UniqueConstraint("user_id", "absence_type_id", "year", name="uq_counter_user_type_year"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    absence_type_id = Column(Integer, ForeignKey("absence_types.id"), nullable=False)
    year = Column(Integer, nullable=False)
    earned = Column(Float, nullable=False, default=0.0)
    taken = Column(Float, nullable=False, default=0.0)
    version = Column(Integer, nullable=False)

    user = relationship("User")
    absence_type = relationship("AbsenceType")

    __mapper_args__ = {"version_id_col": version}

    @property
    def remaining(self) -> float:
        return (self.earned or 0.0) - (self.taken or 0.0)

    def has_sufficient_balance(self, days: float) -> bool:
        return self.remaining >= days

    @property
    def is_negative(self) -> bool:
        return self.remaining < 0

    def __repr__(self) -> str:
        return f"<LeaveCounter(user={self.user_id}, type={self.absence_type_id}, year={self.year}, remaining={self.remaining})>"


class PaidLeaveCounter(Base):
    """Payroll paid-leave counter over a June-to-May reference period."""

    __tablename__ = "paid_leave_counters"
    __table_args__ = (UniqueConstraint("user_id", "period_reference", name="uq_paid_leave_user_period"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    period_reference = Column(String(9), nullable=False)  # e.g. "2025-2026"
    initial_balance = Column(Float, nullable=False, default=0.0)
    acquired = Column(Float, nullable=False, default=0.0)
    taken = Column(Float, nullable=False, default=0.0)
    admin_adjustment = Column(Float, nullable=False, default=0.0)
    adjustment_comment = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    user = relationship("User")

    __mapper_args__ = {"version_id_col": version}

    @property
    def balance(self) -> float:
        return (self.initial_balance or 0.0) + (self.acquired or 0.0) - (self.taken or 0.0) + (self.admin_adjustment or 0.0)

    @staticmethod
    def period_for(moment: datetime) -> str:
        """Reference period label; January to May belong to the period started the previous June."""
        if moment.month < 6:
            return f"{moment.year - 1}-{moment.year}"
        return f"{moment.year}-{moment.year + 1}"

    def __repr__(self) -> str:
        return f"<PaidLeaveCounter(user={self.user_id}, period={self.period_reference}, balance={self.balance})>"


class AnnualDayCounter(Base):
    """Yearly working-day allocation of one user (258 days by default)."""

    __tablename__ = "annual_day_counters"
    __table_args__ = (UniqueConstraint("user_id", "year", name="uq_annual_days_user_year"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    year = Column(Integer, nullable=False)
    allocated_days = Column(Float, nullable=False, default=258.0)
    consumed_days = Column(Float, nullable=False, default=0.0)
    admin_adjustment = Column(Float, nullable=False, default=0.0)
    adjustment_comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    version = Column(Integer, nullable=False)

    user = relationship("User")

    __mapper_args__ = {"version_id_col": version}

    @property
    def allowance(self) -> float:
        """Allocated days plus any administrator adjustment."""
        return (self.allocated_days or 0.0) + (self.admin_adjustment or 0.0)

    @property
    def remaining(self) -> float:
        return self.allowance - (self.consumed_days or 0.0)

    def has_sufficient_balance(self, days: float) -> bool:
        return self.remaining >= days

    @property
    def is_negative(self) -> bool:
        return self.remaining < 0

    @property
    def percentage_used(self) -> float:
        if not self.allowance:
            return 0.0
        return round((self.consumed_days or 0.0) / self.allowance * 100, 2)

    def __repr__(self) -> str:
        return f"<AnnualDayCounter(user={self.user_id}, year={self.year}, remaining={self.remaining})>"


class ShiftPattern(Base):
    """Named, reusable weekly slot configuration stored as JSON text."""

    __tablename__ = "shift_patterns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    configuration = Column(Text, nullable=False, default='{"creneaux_garde": [], "creneaux_renfort": [], "options": {}}')
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    created_by = relationship("User", foreign_keys=[created_by_id])
    updated_by = relationship("User", foreign_keys=[updated_by_id])

    def get_configuration(self) -> Dict[str, Any]:
        try:
            decoded = json.loads(self.configuration or "")
        except ValueError:
            decoded = None
        if not isinstance(decoded, dict):
            return {"creneaux_garde": [], "creneaux_renfort": [], "options": {}}
        return decoded

    def set_configuration(self, config: Dict[str, Any]) -> None:
        self.configuration = json.dumps(config)

    def increment_usage(self) -> None:
        self.usage_count = (self.usage_count or 0) + 1
        self.last_used_at = datetime.now()

    def __repr__(self) -> str:
        return f"<ShiftPattern(id={self.id}, name='{self.name}', used={self.usage_count})>"
