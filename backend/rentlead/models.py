# rentlead/models.py
from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .domain.parsing import json_list
from .domain.types import FamilyType, JobType, LeadStatus, Priority, UserRole, utcnow


class Base(DeclarativeBase):
    pass


# -----------------------------
# Infra enums
# -----------------------------
class OutboxStatus(str, enum.Enum):
    pending = "pending"
    delivered = "delivered"
    failed = "failed"


class JobRunStatus(str, enum.Enum):
    running = "running"
    success = "success"
    failed = "failed"


# Statuses that free the (property, tenant) pair for a new lead
_ACTIVE_LEAD_WHERE = text("status NOT IN ('closed', 'expired')")


# -----------------------------
# Models
# -----------------------------
class User(Base):
    """
    Owner or tenant. Owners carry the response-time aggregate; every write to
    those columns goes through a compare-and-swap on stats_version.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), default="")
    phone_number: Mapped[str] = mapped_column(String(20), unique=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.tenant, index=True)

    avg_response_time_minutes: Mapped[int] = mapped_column(Integer, default=0)
    total_responses: Mapped[int] = mapped_column(Integer, default=0)
    fast_response_count: Mapped[int] = mapped_column(Integer, default=0)  # first responses <= 10 min
    last_response_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    stats_version: Mapped[int] = mapped_column(Integer, default=0)

    # Advisory snapshot only; recomputed on read
    trust_score: Mapped[int] = mapped_column(Integer, default=0)
    trust_score_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Property(Base):
    __tablename__ = "properties"
    __table_args__ = (
        Index("ix_property_market_key", "city", "area", "unit_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)

    title: Mapped[str] = mapped_column(String(200), default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON arrays; upload/search live elsewhere
    images_json: Mapped[str] = mapped_column(Text, default="[]")
    amenities_json: Mapped[str] = mapped_column(Text, default="[]")

    city: Mapped[str] = mapped_column(String(80))
    area: Mapped[str] = mapped_column(String(120))
    unit_type: Mapped[str] = mapped_column(String(20))  # 1BHK, 2BHK, Studio, ...
    price: Mapped[float | None] = mapped_column(Float, nullable=True)

    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    is_expired: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    @property
    def images(self) -> list[str]:
        return json_list(self.images_json)

    @property
    def amenities(self) -> list[str]:
        return json_list(self.amenities_json)


class Lead(Base):
    __tablename__ = "leads"
    __table_args__ = (
        # At most one non-terminal lead per (property, tenant)
        Index(
            "uq_lead_active_property_tenant",
            "property_id",
            "tenant_id",
            unique=True,
            sqlite_where=_ACTIVE_LEAD_WHERE,
            postgresql_where=_ACTIVE_LEAD_WHERE,
        ),
        Index("ix_lead_owner_status", "owner_id", "status"),
        Index("ix_lead_priority_created", "priority", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(Integer, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, index=True)
    # Denormalized from the property at creation
    owner_id: Mapped[int] = mapped_column(Integer, index=True)

    # Qualification
    budget: Mapped[float] = mapped_column(Float)
    move_in_date: Mapped[date] = mapped_column(Date)
    family_type: Mapped[FamilyType] = mapped_column(Enum(FamilyType))
    job_type: Mapped[JobType] = mapped_column(Enum(JobType))
    tenant_notes: Mapped[str] = mapped_column(Text, default="")
    owner_notes: Mapped[str] = mapped_column(Text, default="")

    # Cached at write time
    priority: Mapped[Priority] = mapped_column(Enum(Priority), default=Priority.casual)
    status: Mapped[LeadStatus] = mapped_column(Enum(LeadStatus), default=LeadStatus.new, index=True)

    contact_unlocked: Mapped[bool] = mapped_column(Boolean, default=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    owner_responded: Mapped[bool] = mapped_column(Boolean, default=False)
    response_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Deal outcome (closed only)
    final_rent: Mapped[float | None] = mapped_column(Float, nullable=True)
    deposit: Mapped[float | None] = mapped_column(Float, nullable=True)
    days_to_close: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MarketData(Base):
    """Derived rollup, fully recomputed on each close touching the key."""
    __tablename__ = "market_data"
    __table_args__ = (
        UniqueConstraint("city", "area", "unit_type", "year", "month", name="uq_market_bucket"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    city: Mapped[str] = mapped_column(String(80), index=True)
    area: Mapped[str] = mapped_column(String(120))
    unit_type: Mapped[str] = mapped_column(String(20))
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)

    avg_rent: Mapped[float] = mapped_column(Float, default=0.0)
    min_rent: Mapped[float] = mapped_column(Float, default=0.0)
    max_rent: Mapped[float] = mapped_column(Float, default=0.0)
    avg_deposit: Mapped[float] = mapped_column(Float, default=0.0)
    avg_days_to_rent: Mapped[float] = mapped_column(Float, default=0.0)
    fastest_days_to_rent: Mapped[int] = mapped_column(Integer, default=0)

    total_listings: Mapped[int] = mapped_column(Integer, default=0)
    active_listings: Mapped[int] = mapped_column(Integer, default=0)
    rented_this_month: Mapped[int] = mapped_column(Integer, default=0)

    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class OutboxEvent(Base):
    """Notification waiting for the push/SMS gateway."""
    __tablename__ = "outbox_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipient_id: Mapped[int] = mapped_column(Integer, index=True)
    event_type: Mapped[str] = mapped_column(String(60), index=True)
    title: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text)
    payload_json: Mapped[str] = mapped_column(Text, default="{}")

    status: Mapped[OutboxStatus] = mapped_column(Enum(OutboxStatus), default=OutboxStatus.pending, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)

    next_attempt_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class JobRun(Base):
    """
    Tracks job executions (dispatch, reprioritize, expire, market recompute).
    """
    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(80), index=True)

    status: Mapped[JobRunStatus] = mapped_column(Enum(JobRunStatus), default=JobRunStatus.running, index=True)

    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # store error message
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    meta_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_json: Mapped[str | None] = mapped_column(Text, nullable=True)
