# rentlead/service_layer/owner_stats.py
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..adapters.sqlalchemy_repos import SqlAlchemyRepos
from ..config import settings
from ..domain.errors import NotFound, OwnerStatsConflict
from ..domain.ports import OwnerStatsStore
from ..domain.response_time import record_first_response, response_minutes
from ..domain.types import OwnerStats
from ..models import Lead

log = logging.getLogger(__name__)


async def apply_first_response(
    store: OwnerStatsStore,
    owner_id: int,
    lead_created_at: datetime,
    now: datetime,
    *,
    max_retries: int | None = None,
    fast_response_minute_threshold: int | None = None,
) -> OwnerStats:
    """
    Optimistic read-modify-write of the owner's response aggregate.
    Each attempt re-reads the stored stats, so a concurrent first response on
    another lead is folded in rather than overwritten.
    """
    max_retries = settings.OWNER_STATS_MAX_RETRIES if max_retries is None else max_retries
    threshold = (
        settings.FAST_RESPONSE_MINUTE_THRESHOLD
        if fast_response_minute_threshold is None
        else fast_response_minute_threshold
    )

    for attempt in range(max_retries + 1):
        current = await store.load_stats(owner_id)
        if current is None:
            raise NotFound("owner", owner_id)

        updated = record_first_response(
            current, lead_created_at, now, fast_response_minute_threshold=threshold
        )
        if await store.compare_and_swap(owner_id, current.version, updated):
            return replace(updated, version=current.version + 1)
        log.warning("owner stats CAS lost owner=%s version=%s attempt=%s", owner_id, current.version, attempt + 1)

    log.error("owner stats CAS exhausted owner=%s retries=%s", owner_id, max_retries)
    raise OwnerStatsConflict(f"owner {owner_id} stats are busy; retry the request")


async def record_owner_first_response(repos: SqlAlchemyRepos, lead: Lead, now: datetime) -> bool:
    """
    First owner-side touch on a lead. The lead flag is claimed before the
    aggregate is updated, so a lead contributes to its owner's stats once.
    Returns False when the lead had already been answered.
    """
    if lead.owner_responded:
        return False

    minutes = response_minutes(lead.created_at, now)
    if not await repos.leads.claim_first_response(lead, minutes=minutes, now=now):
        return False

    stats = await apply_first_response(repos.owners, lead.owner_id, lead.created_at, now)
    log.info(
        "first response lead=%s owner=%s minutes=%s avg=%s total=%s",
        lead.id,
        lead.owner_id,
        minutes,
        stats.avg_response_time_minutes,
        stats.total_responses,
    )
    return True


async def get_owner_stats(repos: SqlAlchemyRepos, owner_id: int) -> dict[str, Any]:
    stats = await repos.owners.load_stats(owner_id)
    snapshot = await repos.owners.trust_snapshot(owner_id)
    if stats is None or snapshot is None:
        raise NotFound("owner", owner_id)
    trust_score, trust_score_updated_at = snapshot
    return {
        "owner_id": owner_id,
        "avg_response_time_minutes": stats.avg_response_time_minutes,
        "total_responses": stats.total_responses,
        "fast_response_count": stats.fast_response_count,
        "last_response_time": stats.last_response_time,
        "trust_score": trust_score,
        "trust_score_updated_at": trust_score_updated_at,
    }
