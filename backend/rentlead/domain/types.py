# rentlead/domain/types.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    # Naive UTC, which is what the DateTime columns store.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LeadStatus(str, Enum):
    new = "new"
    contacted = "contacted"
    interested = "interested"
    not_interested = "not_interested"
    closed = "closed"
    expired = "expired"


TERMINAL_STATUSES: frozenset[LeadStatus] = frozenset({LeadStatus.closed, LeadStatus.expired})


class Priority(str, Enum):
    hot = "hot"
    warm = "warm"
    casual = "casual"


# Dashboard ordering: hot leads first
PRIORITY_ORDER: dict[Priority, int] = {Priority.hot: 0, Priority.warm: 1, Priority.casual: 2}


class FamilyType(str, Enum):
    bachelor = "bachelor"
    family = "family"
    couple = "couple"


class JobType(str, Enum):
    student = "student"
    working = "working"
    business = "business"
    other = "other"


class UserRole(str, Enum):
    owner = "owner"
    broker = "broker"
    tenant = "tenant"


@dataclass(frozen=True)
class Qualification:
    budget: float
    move_in_date: date
    family_type: FamilyType
    job_type: JobType
    tenant_notes: str = ""


@dataclass(frozen=True)
class DealInfo:
    final_rent: float | None
    deposit: float | None = None


@dataclass(frozen=True)
class OwnerStats:
    avg_response_time_minutes: int = 0
    total_responses: int = 0
    fast_response_count: int = 0
    last_response_time: datetime | None = None
    version: int = 0


@dataclass(frozen=True)
class TenantContact:
    name: str
    phone_number: str


@dataclass(frozen=True)
class PropertyFacts:
    """Read-only catalog snapshot of one property."""

    property_id: int
    owner_id: int
    city: str
    area: str
    unit_type: str
    title: str = ""
    image_count: int = 0
    description: str = ""
    amenity_count: int = 0
    is_available: bool = True
    is_expired: bool = False

    @property
    def is_active(self) -> bool:
        return self.is_available and not self.is_expired


@dataclass(frozen=True)
class LeadFacts:
    status: LeadStatus
    owner_responded: bool
    response_time_minutes: int | None
    created_at: datetime


@dataclass(frozen=True)
class ClosedDeal:
    final_rent: float
    deposit: float | None
    days_to_close: int | None
    closed_at: datetime


@dataclass(frozen=True)
class MarketBucketKey:
    city: str
    area: str
    unit_type: str
    year: int
    month: int
