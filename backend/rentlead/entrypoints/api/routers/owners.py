# rentlead/entrypoints/api/routers/owners.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from ..deps import actor_id, get_repos
from ....adapters.sqlalchemy_repos import SqlAlchemyRepos
from ....domain.errors import Unauthorized
from ....schemas import LeadAnalytics, OwnerStatsOut, TrustScoreOut
from ....service_layer import leads as lead_service
from ....service_layer.owner_stats import get_owner_stats
from ....service_layer.trust import refresh_trust_score

router = APIRouter(prefix="/owners", tags=["owners"])


def _require_self(owner_id: int, actor: int) -> None:
    # Response stats and deal figures are private to the owner
    if actor != owner_id:
        raise Unauthorized(f"user {actor} cannot read owner {owner_id}'s figures")


@router.get("/{owner_id}/trust-score", response_model=TrustScoreOut)
async def trust_score(owner_id: int, repos: SqlAlchemyRepos = Depends(get_repos)) -> TrustScoreOut:
    b = await refresh_trust_score(repos, owner_id)
    await repos.session.commit()
    return TrustScoreOut(
        owner_id=owner_id,
        trust_score=b.total,
        property_quality=round(b.property_quality, 2),
        response_performance=round(b.response_performance, 2),
        conversion_rate=round(b.conversion_rate, 2),
        activity_level=round(b.activity_level, 2),
    )


@router.get("/{owner_id}/stats", response_model=OwnerStatsOut)
async def owner_stats(
    owner_id: int,
    actor: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> OwnerStatsOut:
    _require_self(owner_id, actor)
    return OwnerStatsOut(**(await get_owner_stats(repos, owner_id)))


@router.get("/{owner_id}/analytics", response_model=LeadAnalytics)
async def analytics(
    owner_id: int,
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    actor: int = Depends(actor_id),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> LeadAnalytics:
    _require_self(owner_id, actor)
    return LeadAnalytics(**(await lead_service.lead_analytics(repos, owner_id, start=start, end=end)))
