from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from .domain.types import DealInfo, FamilyType, JobType, Qualification
from .models import Lead

LeadStatusLiteral = Literal["new", "contacted", "interested", "not_interested", "closed", "expired"]


# ----- Requests -----

class QualificationIn(BaseModel):
    budget: float = Field(..., gt=0)
    move_in_date: date
    family_type: Literal["bachelor", "family", "couple"]
    job_type: Literal["student", "working", "business", "other"]
    tenant_notes: str = Field("", max_length=2000)

    def to_domain(self) -> Qualification:
        return Qualification(
            budget=self.budget,
            move_in_date=self.move_in_date,
            family_type=FamilyType(self.family_type),
            job_type=JobType(self.job_type),
            tenant_notes=self.tenant_notes,
        )


class LeadCreate(BaseModel):
    property_id: int
    qualification: QualificationIn


class DealInfoIn(BaseModel):
    final_rent: float | None = None
    deposit: float | None = None

    def to_domain(self) -> DealInfo:
        return DealInfo(final_rent=self.final_rent, deposit=self.deposit)


class LeadStatusUpdate(BaseModel):
    status: LeadStatusLiteral
    notes: str | None = Field(None, max_length=2000)
    deal: DealInfoIn | None = None


class UnlockReject(BaseModel):
    notes: str | None = Field(None, max_length=2000)


# ----- Responses -----

class LeadOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    owner_id: int

    budget: float
    move_in_date: date
    family_type: str
    job_type: str
    tenant_notes: str
    owner_notes: str

    priority: str
    status: str

    contact_unlocked: bool
    unlocked_at: datetime | None = None
    owner_responded: bool
    response_time_minutes: int | None = None
    responded_at: datetime | None = None

    final_rent: float | None = None
    deposit: float | None = None
    days_to_close: int | None = None

    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_lead(cls, lead: Lead, priority: str | None = None) -> "LeadOut":
        return cls(
            id=lead.id,
            property_id=lead.property_id,
            tenant_id=lead.tenant_id,
            owner_id=lead.owner_id,
            budget=lead.budget,
            move_in_date=lead.move_in_date,
            family_type=lead.family_type.value,
            job_type=lead.job_type.value,
            tenant_notes=lead.tenant_notes or "",
            owner_notes=lead.owner_notes or "",
            priority=priority or lead.priority.value,
            status=lead.status.value,
            contact_unlocked=bool(lead.contact_unlocked),
            unlocked_at=lead.unlocked_at,
            owner_responded=bool(lead.owner_responded),
            response_time_minutes=lead.response_time_minutes,
            responded_at=lead.responded_at,
            final_rent=lead.final_rent,
            deposit=lead.deposit,
            days_to_close=lead.days_to_close,
            created_at=lead.created_at,
            updated_at=lead.updated_at,
        )


class LeadStatusCheck(BaseModel):
    has_lead: bool
    lead: LeadOut | None = None


class DashboardStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]


class OwnerDashboard(BaseModel):
    leads: list[LeadOut]
    total: int
    limit: int
    offset: int
    stats: DashboardStats


class TenantLeads(BaseModel):
    leads: list[LeadOut]
    total: int
    limit: int
    offset: int


class TenantContactOut(BaseModel):
    tenant_name: str
    tenant_phone: str


class LeadAnalytics(BaseModel):
    total_leads: int
    closed_leads: int
    conversion_rate: float
    avg_rent: float | None = None
    avg_deposit: float | None = None
    avg_days_to_close: float | None = None
    priority_distribution: dict[str, int]


class TrustScoreOut(BaseModel):
    owner_id: int
    trust_score: int = Field(..., ge=0, le=100)
    property_quality: float
    response_performance: float
    conversion_rate: float
    activity_level: float


class OwnerStatsOut(BaseModel):
    owner_id: int
    avg_response_time_minutes: int
    total_responses: int
    fast_response_count: int
    last_response_time: datetime | None = None
    trust_score: int
    trust_score_updated_at: datetime | None = None


class MarketDataOut(BaseModel):
    city: str
    area: str
    unit_type: str
    year: int
    month: int
    avg_rent: float
    min_rent: float
    max_rent: float
    avg_deposit: float
    avg_days_to_rent: float
    fastest_days_to_rent: int
    total_listings: int
    active_listings: int
    rented_this_month: int
    last_updated: datetime

    model_config = {"from_attributes": True}


class MarketTrend(BaseModel):
    year: int
    month: int
    avg_rent: float
    total_deals: int
    avg_days_to_rent: float


class AreaSummary(BaseModel):
    area: str
    avg_rent: float
    total_deals: int
    avg_days_to_rent: float
    total_listings: int


class UnitTypeMarketOut(BaseModel):
    avg_rent: float
    min_rent: float
    max_rent: float
    total_listings: int
    active_listings: int


class AreaMarketOut(BaseModel):
    area: str
    year: int
    month: int
    avg_rent: float
    avg_deposit: float
    avg_days_to_rent: float
    total_deals: int
    total_listings: int
    active_listings: int
    # True when no closed deals exist yet and asking prices were used
    from_catalog: bool
    by_unit_type: dict[str, UnitTypeMarketOut]


class DispatchResult(BaseModel):
    delivered: int
    failed: int
    retrying: int = 0
    events: int | None = None
    skipped_no_sink: int | None = None
