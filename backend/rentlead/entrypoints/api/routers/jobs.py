# rentlead/entrypoints/api/routers/jobs.py
from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query

from ..deps import get_notifier, get_repos, require_api_key
from ....adapters.sqlalchemy_repos import SqlAlchemyRepos
from ....domain.types import utcnow
from ....integrations.services.outbox import OutboxNotifier, dispatch_pending_notifications
from ....integrations.webhook import sink_from_settings
from ....schemas import DispatchResult
from ....service_layer import leads as lead_service
from ....service_layer.jobruns import finish_job_fail, finish_job_success, start_job
from ....service_layer.market_data import recompute_bucket

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_api_key)])


@router.post("/dispatch", response_model=DispatchResult)
async def dispatch_outbox(
    batch_size: int = Query(50, ge=1, le=500),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> DispatchResult:
    session = repos.session
    jr = await start_job(session, "dispatch_api")
    try:
        result = await dispatch_pending_notifications(session, sink_from_settings(), batch_size=batch_size)
        await finish_job_success(session, jr, result)
        await session.commit()
        return DispatchResult(**result)
    except Exception as e:
        await finish_job_fail(session, jr, e)
        await session.commit()
        raise


@router.post("/expire/{lead_id}")
async def expire_lead(
    lead_id: int,
    repos: SqlAlchemyRepos = Depends(get_repos),
    notifier: OutboxNotifier = Depends(get_notifier),
) -> dict[str, Any]:
    lead = await lead_service.expire_lead(repos, lead_id=lead_id, notifier=notifier)
    await repos.session.commit()
    return {"lead_id": lead.id, "status": lead.status.value}


@router.post("/reprioritize")
async def reprioritize(repos: SqlAlchemyRepos = Depends(get_repos)) -> dict[str, Any]:
    session = repos.session
    jr = await start_job(session, "reprioritize_api")
    try:
        res = await lead_service.refresh_open_lead_priorities(repos)
        await finish_job_success(session, jr, res)
        await session.commit()
        return res
    except Exception as e:
        await finish_job_fail(session, jr, e)
        await session.commit()
        raise


@router.post("/market/recompute")
async def market_recompute(
    city: str = Query(..., min_length=1),
    area: str = Query(..., min_length=1),
    unit_type: str = Query(..., min_length=1),
    year: int | None = Query(None, ge=2000),
    month: int | None = Query(None, ge=1, le=12),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> dict[str, Any]:
    now = utcnow()
    session = repos.session
    jr = await start_job(session, "market_recompute_api", {"city": city, "area": area, "unit_type": unit_type})
    try:
        stats = await recompute_bucket(
            repos,
            city=city,
            area=area,
            unit_type=unit_type,
            month=month or now.month,
            year=year or now.year,
            now=now,
        )
        res = asdict(stats)
        await finish_job_success(session, jr, res)
        await session.commit()
        return res
    except Exception as e:
        await finish_job_fail(session, jr, e)
        await session.commit()
        raise
