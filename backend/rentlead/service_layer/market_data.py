# rentlead/service_layer/market_data.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from ..adapters.sqlalchemy_repos import SqlAlchemyRepos
from ..domain.market import (
    AreaMarketSummary,
    MarketStats,
    bucket_key_for,
    summarize_area,
    summarize_catalog,
    summarize_closed_deals,
)
from ..domain.types import MarketBucketKey, utcnow
from ..models import MarketData

log = logging.getLogger(__name__)


async def recompute_bucket(
    repos: SqlAlchemyRepos,
    *,
    city: str,
    area: str,
    unit_type: str,
    month: int,
    year: int,
    now: datetime | None = None,
) -> MarketStats:
    """
    Rebuild one (city, area, unit_type, year, month) bucket from every closed
    lead on a matching property plus live catalog counts. Safe to re-run.
    """
    now = now or utcnow()
    key = MarketBucketKey(city=city, area=area, unit_type=unit_type, year=year, month=month)

    deals = await repos.leads.closed_deals_for_market(city=city, area=area, unit_type=unit_type)
    total, active = await repos.properties.count_listings(city=city, area=area, unit_type=unit_type)
    stats = summarize_closed_deals(key, deals, total_listings=total, active_listings=active)

    await repos.market.save(key, stats, now=now)
    log.info(
        "market bucket recomputed city=%s area=%s unit_type=%s %04d-%02d deals=%s",
        city, area, unit_type, year, month, len(deals),
    )
    return stats


async def recompute_after_close(repos: SqlAlchemyRepos, property_id: int, now: datetime) -> MarketStats | None:
    """
    Post-close hook. The rollup is derived data, so a failure here is logged
    and left for a re-run instead of failing the close.
    """
    facts = await repos.properties.get_facts(property_id)
    if facts is None:
        log.warning("market recompute skipped: property %s not in catalog", property_id)
        return None

    key = bucket_key_for(facts.city, facts.area, facts.unit_type, now)
    try:
        async with repos.session.begin_nested():
            return await recompute_bucket(
                repos,
                city=key.city,
                area=key.area,
                unit_type=key.unit_type,
                month=key.month,
                year=key.year,
                now=now,
            )
    except Exception:
        log.exception("market recompute failed for property %s", property_id)
        return None


async def get_market_data(repos: SqlAlchemyRepos, *, city: str, area: str, unit_type: str) -> MarketData | None:
    return await repos.market.latest(city=city, area=area, unit_type=unit_type)


async def market_trends(
    repos: SqlAlchemyRepos,
    *,
    city: str,
    months: int = 6,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    now = now or utcnow()
    since = now - timedelta(days=30 * months)
    return await repos.market.trends(city=city, since=since)


async def top_areas(
    repos: SqlAlchemyRepos,
    *,
    city: str,
    year: int | None = None,
    month: int | None = None,
    limit: int = 10,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    now = now or utcnow()
    return await repos.market.top_areas(
        city=city,
        year=year or now.year,
        month=month or now.month,
        limit=limit,
    )


async def area_summary(
    repos: SqlAlchemyRepos,
    *,
    city: str,
    area: str,
    year: int | None = None,
    month: int | None = None,
    now: datetime | None = None,
) -> AreaMarketSummary | None:
    """
    The area's month across all unit types, or a catalog estimate when no
    bucket exists for it yet. None when the area has neither.
    """
    now = now or utcnow()
    year = year or now.year
    month = month or now.month

    buckets = await repos.market.area_month(city=city, area=area, year=year, month=month)
    summary = summarize_area(area, year, month, buckets)
    if summary is not None:
        return summary

    count, prices = await repos.properties.catalog_prices(city=city, area=area)
    log.info("no market buckets for %s/%s %04d-%02d; using %s catalog listings", city, area, year, month, count)
    return summarize_catalog(area, year, month, listing_count=count, prices=prices)
