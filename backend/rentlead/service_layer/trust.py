# rentlead/service_layer/trust.py
from __future__ import annotations

import logging
from datetime import datetime

from ..adapters.sqlalchemy_repos import SqlAlchemyRepos
from ..config import settings
from ..domain.errors import NotFound
from ..domain.trust_score import TrustScoreBreakdown, score_components
from ..domain.types import utcnow

log = logging.getLogger(__name__)


async def trust_breakdown(repos: SqlAlchemyRepos, owner_id: int, now: datetime | None = None) -> TrustScoreBreakdown:
    now = now or utcnow()
    if await repos.owners.get(owner_id) is None:
        raise NotFound("owner", owner_id)

    properties = await repos.properties.list_for_owner(owner_id)
    # Leads are taken per property, not per lead.owner_id: an owner is judged
    # on the listings they hold today.
    leads = await repos.leads.facts_for_properties([p.property_id for p in properties])
    return score_components(
        properties,
        leads,
        now,
        prompt_hours=settings.PROMPT_RESPONSE_HOUR_THRESHOLD,
        recent_days=settings.RECENT_LEAD_WINDOW_DAYS,
    )


async def refresh_trust_score(
    repos: SqlAlchemyRepos,
    owner_id: int,
    now: datetime | None = None,
) -> TrustScoreBreakdown:
    """
    Compute from current state and cache the total on the owner as an
    advisory snapshot.
    """
    now = now or utcnow()
    b = await trust_breakdown(repos, owner_id, now)
    await repos.owners.save_trust_score(owner_id, b.total, now)
    log.info("trust score owner=%s score=%s", owner_id, b.total)
    return b


async def get_trust_score(repos: SqlAlchemyRepos, owner_id: int, now: datetime | None = None) -> int:
    return (await refresh_trust_score(repos, owner_id, now)).total
