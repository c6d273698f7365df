# rentlead/service_layer/leads.py
"""
Lead lifecycle operations.

Every function takes the request's SqlAlchemyRepos and leaves the commit to
the caller (router, job or unit of work). Validation and authorization run
before anything is written.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from ..adapters.sqlalchemy_repos import SqlAlchemyRepos
from ..config import settings
from ..domain.errors import InvalidTransition, NotFound, Unauthorized
from ..domain.policies import (
    check_resubmission,
    check_status_change,
    is_terminal,
    validate_deal_info,
    validate_qualification,
)
from ..domain.ports import Notifier
from ..domain.priority import classify
from ..domain.types import PRIORITY_ORDER, DealInfo, LeadStatus, Priority, Qualification, utcnow
from ..integrations import templates
from ..integrations.notify import notify_safely
from ..models import Lead
from .market_data import recompute_after_close
from .owner_stats import record_owner_first_response

log = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class LeadView:
    """A lead plus the priority to display (cached, or recomputed on read)."""

    lead: Lead
    priority: Priority


def priority_for(move_in_date: date, now: datetime) -> Priority:
    return classify(
        move_in_date,
        now,
        hot_max_days=settings.HOT_MAX_DAYS,
        warm_max_days=settings.WARM_MAX_DAYS,
    )


def days_between(start: datetime, end: datetime) -> int:
    return math.ceil((end - start).total_seconds() / _SECONDS_PER_DAY)


async def _require_lead(repos: SqlAlchemyRepos, lead_id: int) -> Lead:
    lead = await repos.leads.get(lead_id)
    if lead is None:
        raise NotFound("lead", lead_id)
    return lead


async def require_owned_lead(repos: SqlAlchemyRepos, lead_id: int, actor_owner_id: int) -> Lead:
    lead = await _require_lead(repos, lead_id)
    if lead.owner_id != actor_owner_id:
        raise Unauthorized(f"user {actor_owner_id} does not own lead {lead_id}")
    return lead


async def require_tenant_lead(repos: SqlAlchemyRepos, lead_id: int, actor_tenant_id: int) -> Lead:
    lead = await _require_lead(repos, lead_id)
    if lead.tenant_id != actor_tenant_id:
        raise Unauthorized(f"user {actor_tenant_id} is not the tenant on lead {lead_id}")
    return lead


async def lead_names(repos: SqlAlchemyRepos, lead: Lead) -> tuple[str, str, str]:
    """(tenant name, owner name, property title) for notification text."""
    tenant = await repos.owners.contact(lead.tenant_id)
    owner = await repos.owners.contact(lead.owner_id)
    prop = await repos.properties.get_facts(lead.property_id)
    return (
        tenant.name if tenant else "A tenant",
        owner.name if owner else "The owner",
        prop.title if prop and prop.title else "your property",
    )


# -----------------------------
# Create / read
# -----------------------------

async def create_lead(
    repos: SqlAlchemyRepos,
    *,
    property_id: int,
    tenant_id: int,
    qualification: Qualification,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> Lead:
    now = now or utcnow()
    validate_qualification(qualification)

    prop = await repos.properties.get_facts(property_id)
    if prop is None:
        raise NotFound("property", property_id)
    if await repos.owners.get(tenant_id) is None:
        raise NotFound("tenant", tenant_id)
    if prop.owner_id == tenant_id:
        raise Unauthorized("owners cannot open a lead on their own property")

    priority = priority_for(qualification.move_in_date, now)
    lead = await repos.leads.add_active(
        Lead(
            property_id=property_id,
            tenant_id=tenant_id,
            owner_id=prop.owner_id,
            budget=float(qualification.budget),
            move_in_date=qualification.move_in_date,
            family_type=qualification.family_type,
            job_type=qualification.job_type,
            tenant_notes=qualification.tenant_notes or "",
            owner_notes="",
            priority=priority,
            status=LeadStatus.new,
            contact_unlocked=False,
            owner_responded=False,
            created_at=now,
            updated_at=now,
        )
    )
    log.info("lead created id=%s property=%s tenant=%s priority=%s", lead.id, property_id, tenant_id, priority.value)

    tenant_name, _, title = await lead_names(repos, lead)
    await notify_safely(
        notifier,
        recipient_id=lead.owner_id,
        type=templates.NEW_LEAD,
        template=templates.new_lead(tenant_name, title, priority),
        data={"lead_id": lead.id, "property_id": property_id, "priority": priority.value},
    )
    return lead


async def check_lead_status(repos: SqlAlchemyRepos, *, property_id: int, tenant_id: int) -> dict[str, Any]:
    lead = await repos.leads.latest_visible(property_id=property_id, tenant_id=tenant_id)
    return {"has_lead": lead is not None, "lead": lead}


def _views(leads: list[Lead], now: datetime, fresh_priority: bool) -> list[LeadView]:
    if not fresh_priority:
        return [LeadView(l, l.priority) for l in leads]
    views = [
        LeadView(l, l.priority if is_terminal(l.status) else priority_for(l.move_in_date, now))
        for l in leads
    ]
    # Re-sort the page by the fresh tiers; newest first within a tier
    views.sort(key=lambda v: (-v.lead.created_at.timestamp(), -v.lead.id))
    views.sort(key=lambda v: PRIORITY_ORDER[v.priority])
    return views


async def list_leads_for_owner(
    repos: SqlAlchemyRepos,
    owner_id: int,
    *,
    status: LeadStatus | None = None,
    priority: Priority | None = None,
    limit: int = 20,
    offset: int = 0,
    fresh_priority: bool = False,
    now: datetime | None = None,
) -> list[LeadView]:
    """
    Hot first, then warm, then casual; newest first inside a tier.
    With fresh_priority the displayed tier is recomputed for `now` without
    being written back.
    """
    leads = await repos.leads.list_for_owner(owner_id, status=status, priority=priority, limit=limit, offset=offset)
    return _views(leads, now or utcnow(), fresh_priority)


async def owner_dashboard(
    repos: SqlAlchemyRepos,
    owner_id: int,
    *,
    status: LeadStatus | None = None,
    priority: Priority | None = None,
    limit: int = 20,
    offset: int = 0,
    fresh_priority: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    views = await list_leads_for_owner(
        repos,
        owner_id,
        status=status,
        priority=priority,
        limit=limit,
        offset=offset,
        fresh_priority=fresh_priority,
        now=now,
    )
    total = await repos.leads.count_for_owner(owner_id, status=status, priority=priority)
    by_status = await repos.leads.count_by_status(owner_id)
    by_priority = await repos.leads.count_open_by_priority(owner_id)
    return {
        "leads": views,
        "total": total,
        "limit": limit,
        "offset": offset,
        "stats": {
            "total": sum(by_status.values()),
            "by_status": {s.value: by_status.get(s.value, 0) for s in LeadStatus},
            "by_priority": {p.value: by_priority.get(p.value, 0) for p in Priority},
        },
    }


async def list_leads_for_tenant(
    repos: SqlAlchemyRepos,
    tenant_id: int,
    *,
    limit: int = 20,
    offset: int = 0,
) -> dict[str, Any]:
    leads = await repos.leads.list_for_tenant(tenant_id, limit=limit, offset=offset)
    total = await repos.leads.count_for_tenant(tenant_id)
    return {"leads": leads, "total": total, "limit": limit, "offset": offset}


# -----------------------------
# Owner-side mutations
# -----------------------------

async def apply_owner_status(
    repos: SqlAlchemyRepos,
    lead: Lead,
    new_status: LeadStatus,
    *,
    notes: str | None,
    deal: DealInfo | None,
    now: datetime,
) -> Lead:
    """
    Shared by updateStatus and rejectUnlock. Caller has already checked
    ownership; this validates the transition, records the first response,
    then writes.
    """
    check_status_change(lead.status, new_status)
    validate_deal_info(new_status, deal)

    # Needs the untouched created_at and runs before the status moves
    await record_owner_first_response(repos, lead, now)

    lead.status = new_status
    if notes:
        lead.owner_notes = notes
    if new_status == LeadStatus.closed:
        assert deal is not None
        lead.final_rent = float(deal.final_rent)
        lead.deposit = float(deal.deposit) if deal.deposit is not None else 0.0
        lead.days_to_close = days_between(lead.created_at, now)
    lead.priority = priority_for(lead.move_in_date, now)
    lead.updated_at = now
    await repos.session.flush()

    if new_status == LeadStatus.closed:
        await recompute_after_close(repos, lead.property_id, now)
    return lead


async def update_lead_status(
    repos: SqlAlchemyRepos,
    *,
    lead_id: int,
    actor_owner_id: int,
    new_status: LeadStatus,
    notes: str | None = None,
    deal: DealInfo | None = None,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> Lead:
    now = now or utcnow()
    lead = await require_owned_lead(repos, lead_id, actor_owner_id)
    lead = await apply_owner_status(repos, lead, new_status, notes=notes, deal=deal, now=now)
    log.info("lead %s status -> %s by owner %s", lead.id, new_status.value, actor_owner_id)

    if new_status in (LeadStatus.interested, LeadStatus.closed):
        _, owner_name, title = await lead_names(repos, lead)
        template = (
            templates.lead_accepted(owner_name, title)
            if new_status == LeadStatus.interested
            else templates.deal_closed(title)
        )
        await notify_safely(
            notifier,
            recipient_id=lead.tenant_id,
            type=templates.LEAD_UPDATE,
            template=template,
            data={"lead_id": lead.id, "status": new_status.value},
        )
    return lead


async def expire_lead(
    repos: SqlAlchemyRepos,
    *,
    lead_id: int,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> Lead:
    """Effect of the time-based sweep. Expiring twice is a no-op."""
    now = now or utcnow()
    lead = await _require_lead(repos, lead_id)
    if lead.status == LeadStatus.expired:
        return lead
    if lead.status == LeadStatus.closed:
        raise InvalidTransition(f"lead {lead_id} is closed and cannot expire")

    lead.status = LeadStatus.expired
    lead.priority = priority_for(lead.move_in_date, now)
    lead.updated_at = now
    await repos.session.flush()
    log.info("lead %s expired", lead.id)

    _, _, title = await lead_names(repos, lead)
    await notify_safely(
        notifier,
        recipient_id=lead.tenant_id,
        type=templates.LEAD_EXPIRED,
        template=templates.lead_expired(title),
        data={"lead_id": lead.id},
    )
    return lead


# -----------------------------
# Tenant-side mutations
# -----------------------------

async def resubmit_qualification(
    repos: SqlAlchemyRepos,
    *,
    lead_id: int,
    actor_tenant_id: int,
    qualification: Qualification,
    now: datetime | None = None,
) -> Lead:
    now = now or utcnow()
    lead = await require_tenant_lead(repos, lead_id, actor_tenant_id)
    check_resubmission(lead.status)
    validate_qualification(qualification)

    lead.budget = float(qualification.budget)
    lead.move_in_date = qualification.move_in_date
    lead.family_type = qualification.family_type
    lead.job_type = qualification.job_type
    lead.tenant_notes = qualification.tenant_notes or ""
    lead.status = LeadStatus.new
    lead.priority = priority_for(qualification.move_in_date, now)
    lead.updated_at = now
    await repos.session.flush()
    return lead


# -----------------------------
# Analytics / maintenance
# -----------------------------

async def lead_analytics(
    repos: SqlAlchemyRepos,
    owner_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, Any]:
    a = await repos.leads.analytics(owner_id, start=start, end=end)
    total = a["total_leads"]
    a["conversion_rate"] = round(a["closed_leads"] / total * 100.0, 2) if total else 0.0
    a["priority_distribution"] = {p.value: a["priority_distribution"].get(p.value, 0) for p in Priority}
    return a


async def refresh_open_lead_priorities(repos: SqlAlchemyRepos, now: datetime | None = None) -> dict[str, int]:
    """
    Re-evaluate the cached tier of every open lead. Changes the order owners
    see, so it only runs when scheduled explicitly or called on demand.
    """
    now = now or utcnow()
    checked = 0
    changed = 0
    for lead in await repos.leads.list_open():
        checked += 1
        fresh = priority_for(lead.move_in_date, now)
        if fresh != lead.priority:
            lead.priority = fresh
            changed += 1
    await repos.session.flush()
    log.info("open lead priorities refreshed checked=%s changed=%s", checked, changed)
    return {"checked": checked, "changed": changed}
