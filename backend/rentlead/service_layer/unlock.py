# rentlead/service_layer/unlock.py
"""
Contact-unlock gate. Tenant contact details leave the system only through
accept_unlock, and only once the owner has accepted.
"""
from __future__ import annotations

import logging
from datetime import datetime

from ..adapters.sqlalchemy_repos import SqlAlchemyRepos
from ..domain.errors import InvalidTransition, NotFound
from ..domain.policies import is_terminal
from ..domain.ports import Notifier
from ..domain.types import LeadStatus, Qualification, TenantContact, utcnow
from ..integrations import templates
from ..integrations.notify import notify_safely
from ..models import Lead
from .leads import apply_owner_status, lead_names, priority_for, require_owned_lead, resubmit_qualification
from .owner_stats import record_owner_first_response

log = logging.getLogger(__name__)


async def _tenant_contact(repos: SqlAlchemyRepos, lead: Lead) -> TenantContact:
    contact = await repos.owners.contact(lead.tenant_id)
    if contact is None:
        raise NotFound("tenant", lead.tenant_id)
    return contact


async def request_unlock(
    repos: SqlAlchemyRepos,
    *,
    lead_id: int,
    actor_tenant_id: int,
    qualification: Qualification,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> Lead:
    lead = await resubmit_qualification(
        repos,
        lead_id=lead_id,
        actor_tenant_id=actor_tenant_id,
        qualification=qualification,
        now=now,
    )
    tenant_name, _, title = await lead_names(repos, lead)
    await notify_safely(
        notifier,
        recipient_id=lead.owner_id,
        type=templates.UNLOCK_REQUEST,
        template=templates.contact_unlock_request(tenant_name, title, lead.priority),
        data={"lead_id": lead.id, "property_id": lead.property_id, "priority": lead.priority.value},
    )
    return lead


async def accept_unlock(
    repos: SqlAlchemyRepos,
    *,
    lead_id: int,
    actor_owner_id: int,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> TenantContact:
    now = now or utcnow()
    lead = await require_owned_lead(repos, lead_id, actor_owner_id)

    if lead.contact_unlocked:
        return await _tenant_contact(repos, lead)
    if is_terminal(lead.status):
        raise InvalidTransition(f"lead is {lead.status.value}; contact can no longer be unlocked")

    if not await repos.leads.claim_unlock(lead, now=now):
        # A concurrent accept got there first; same answer, no second set of side effects
        return await _tenant_contact(repos, lead)

    await record_owner_first_response(repos, lead, now)
    lead.status = LeadStatus.contacted
    lead.priority = priority_for(lead.move_in_date, now)
    lead.updated_at = now
    await repos.session.flush()
    log.info("contact unlocked lead=%s owner=%s", lead.id, actor_owner_id)

    contact = await _tenant_contact(repos, lead)
    owner = await repos.owners.contact(lead.owner_id)
    _, owner_name, title = await lead_names(repos, lead)
    await notify_safely(
        notifier,
        recipient_id=lead.tenant_id,
        type=templates.CONTACT_UNLOCKED,
        template=templates.contact_unlocked(owner_name, title),
        data={
            "lead_id": lead.id,
            "property_id": lead.property_id,
            "owner_phone": owner.phone_number if owner else None,
        },
    )
    return contact


async def reject_unlock(
    repos: SqlAlchemyRepos,
    *,
    lead_id: int,
    actor_owner_id: int,
    notes: str | None = None,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> Lead:
    """
    Owner declines: the lead becomes not_interested and counts as the
    owner's first response. Nothing is disclosed; an earlier unlock stands.
    """
    now = now or utcnow()
    lead = await require_owned_lead(repos, lead_id, actor_owner_id)
    lead = await apply_owner_status(repos, lead, LeadStatus.not_interested, notes=notes, deal=None, now=now)
    log.info("unlock rejected lead=%s owner=%s", lead.id, actor_owner_id)

    _, owner_name, title = await lead_names(repos, lead)
    await notify_safely(
        notifier,
        recipient_id=lead.tenant_id,
        type=templates.UNLOCK_REJECTED,
        template=templates.unlock_rejected(owner_name, title),
        data={"lead_id": lead.id},
    )
    return lead
