"""ORM Models for the staffing marketplace analytics service — SQLAlchemy 2.0"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String, Text, Boolean, Integer, Numeric, DateTime,
    ForeignKey, Index
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from app.db import Base


def gen_uuid():
    return str(uuid.uuid4())


# ── FACILITIES ────────────────────────────────────────────────────────────────
class Facility(Base):
    __tablename__ = "facilities"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(120))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    duties: Mapped[list["Duty"]] = relationship("Duty", back_populates="facility")
    settings: Mapped[Optional["FacilitySettings"]] = relationship(
        "FacilitySettings", back_populates="facility", uselist=False
    )


class FacilitySettings(Base):
    __tablename__ = "facility_settings"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    facility_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("facilities.id"), unique=True, nullable=False
    )
    monthly_budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    # Fraction 0–1; out-of-range values are clamped by the engine, not rejected
    alert_threshold: Mapped[float] = mapped_column(Numeric(5, 4), default=0.80)
    forecast_horizon_days: Mapped[int] = mapped_column(Integer, default=14)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")
    top_performers_limit: Mapped[int] = mapped_column(Integer, default=5)
    # {"POST_EARLIER": true, "BUDGET_REVIEW": false, ...}; missing key = enabled
    advisories_enabled: Mapped[Optional[dict]] = mapped_column(JSONB, default=dict)
    # Personnel ids the facility hires first, in preference order
    preferred_personnel: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    facility: Mapped["Facility"] = relationship("Facility", back_populates="settings")


# ── PERSONNEL DIRECTORY ───────────────────────────────────────────────────────
class Personnel(Base):
    __tablename__ = "personnel"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), default="doctor")  # doctor | nurse
    specialization: Mapped[Optional[str]] = mapped_column(String(120))
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=Decimal("0"))
    experience_years: Mapped[Decimal] = mapped_column(Numeric(4, 1), default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ── DUTIES ────────────────────────────────────────────────────────────────────
class Duty(Base):
    __tablename__ = "duties"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    facility_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("facilities.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), default="")
    specialty: Mapped[str] = mapped_column(String(120), default="General")
    scheduled_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    scheduled_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    rate_type: Mapped[str] = mapped_column(String(10), default="FLAT")  # HOURLY | FLAT
    urgent: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), default="OPEN")  # OPEN | FILLED | CANCELLED | COMPLETED
    assigned_personnel_id: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False), ForeignKey("personnel.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    facility: Mapped["Facility"] = relationship("Facility", back_populates="duties")
    applications: Mapped[list["Application"]] = relationship("Application", back_populates="duty")

    __table_args__ = (
        Index("ix_duties_facility_created", "facility_id", "created_at"),
        Index("ix_duties_facility_scheduled", "facility_id", "scheduled_start"),
    )


# ── APPLICATIONS ──────────────────────────────────────────────────────────────
class Application(Base):
    __tablename__ = "applications"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    duty_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("duties.id"), nullable=False)
    personnel_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("personnel.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING | ACCEPTED | REJECTED | WITHDRAWN
    cover_letter: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duty: Mapped["Duty"] = relationship("Duty", back_populates="applications")

    __table_args__ = (
        Index("ix_applications_duty", "duty_id"),
    )


# ── EARNINGS ──────────────────────────────────────────────────────────────────
class Earning(Base):
    __tablename__ = "earnings"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    facility_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("facilities.id"), nullable=False)
    personnel_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("personnel.id"), nullable=False)
    duty_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("duties.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    payment_status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING | PAID | OVERDUE
    earned_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_earnings_facility_earned_on", "facility_id", "earned_on"),
    )
