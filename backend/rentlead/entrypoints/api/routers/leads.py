# rentlead/entrypoints/api/routers/leads.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..deps import actor_id, get_notifier, get_repos
from ....adapters.sqlalchemy_repos import SqlAlchemyRepos
from ....domain.types import LeadStatus, Priority
from ....integrations.services.outbox import OutboxNotifier
from ....schemas import (
    DashboardStats,
    LeadCreate,
    LeadOut,
    LeadStatusCheck,
    LeadStatusUpdate,
    OwnerDashboard,
    QualificationIn,
    TenantContactOut,
    TenantLeads,
    UnlockReject,
)
from ....service_layer import leads as lead_service
from ....service_layer import unlock as unlock_service

router = APIRouter(prefix="/leads", tags=["leads"])


@router.post("", response_model=LeadOut, status_code=201)
async def create_lead(
    body: LeadCreate,
    tenant_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
    notifier: OutboxNotifier = Depends(get_notifier),
) -> LeadOut:
    lead = await lead_service.create_lead(
        repos,
        property_id=body.property_id,
        tenant_id=tenant_id,
        qualification=body.qualification.to_domain(),
        notifier=notifier,
    )
    await repos.session.commit()
    return LeadOut.from_lead(lead)


@router.get("/check/{property_id}", response_model=LeadStatusCheck)
async def check_lead_status(
    property_id: int,
    tenant_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> LeadStatusCheck:
    res = await lead_service.check_lead_status(repos, property_id=property_id, tenant_id=tenant_id)
    lead = res["lead"]
    return LeadStatusCheck(has_lead=res["has_lead"], lead=LeadOut.from_lead(lead) if lead else None)


@router.get("/owner", response_model=OwnerDashboard)
async def owner_dashboard(
    status: LeadStatus | None = Query(None),
    priority: Priority | None = Query(None),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    fresh_priority: bool = Query(False, description="Recompute priority for display without saving"),
    owner_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> OwnerDashboard:
    res = await lead_service.owner_dashboard(
        repos,
        owner_id,
        status=status,
        priority=priority,
        limit=limit,
        offset=offset,
        fresh_priority=fresh_priority,
    )
    return OwnerDashboard(
        leads=[LeadOut.from_lead(v.lead, v.priority.value) for v in res["leads"]],
        total=res["total"],
        limit=res["limit"],
        offset=res["offset"],
        stats=DashboardStats(**res["stats"]),
    )


@router.get("/tenant", response_model=TenantLeads)
async def tenant_leads(
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    tenant_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> TenantLeads:
    res = await lead_service.list_leads_for_tenant(repos, tenant_id, limit=limit, offset=offset)
    return TenantLeads(
        leads=[LeadOut.from_lead(l) for l in res["leads"]],
        total=res["total"],
        limit=res["limit"],
        offset=res["offset"],
    )


@router.put("/{lead_id}/status", response_model=LeadOut)
async def update_lead_status(
    lead_id: int,
    body: LeadStatusUpdate,
    owner_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
    notifier: OutboxNotifier = Depends(get_notifier),
) -> LeadOut:
    lead = await lead_service.update_lead_status(
        repos,
        lead_id=lead_id,
        actor_owner_id=owner_id,
        new_status=LeadStatus(body.status),
        notes=body.notes,
        deal=body.deal.to_domain() if body.deal else None,
        notifier=notifier,
    )
    await repos.session.commit()
    return LeadOut.from_lead(lead)


# ----- Contact-unlock gate -----

@router.post("/{lead_id}/unlock-request", response_model=LeadOut)
async def request_unlock(
    lead_id: int,
    body: QualificationIn,
    tenant_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
    notifier: OutboxNotifier = Depends(get_notifier),
) -> LeadOut:
    lead = await unlock_service.request_unlock(
        repos,
        lead_id=lead_id,
        actor_tenant_id=tenant_id,
        qualification=body.to_domain(),
        notifier=notifier,
    )
    await repos.session.commit()
    return LeadOut.from_lead(lead)


@router.post("/{lead_id}/unlock-accept", response_model=TenantContactOut)
async def accept_unlock(
    lead_id: int,
    owner_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
    notifier: OutboxNotifier = Depends(get_notifier),
) -> TenantContactOut:
    contact = await unlock_service.accept_unlock(
        repos,
        lead_id=lead_id,
        actor_owner_id=owner_id,
        notifier=notifier,
    )
    await repos.session.commit()
    return TenantContactOut(tenant_name=contact.name, tenant_phone=contact.phone_number)


@router.post("/{lead_id}/unlock-reject", response_model=LeadOut)
async def reject_unlock(
    lead_id: int,
    body: UnlockReject | None = None,
    owner_id: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
    notifier: OutboxNotifier = Depends(get_notifier),
) -> LeadOut:
    lead = await unlock_service.reject_unlock(
        repos,
        lead_id=lead_id,
        actor_owner_id=owner_id,
        notes=body.notes if body else None,
        notifier=notifier,
    )
    await repos.session.commit()
    return LeadOut.from_lead(lead)
