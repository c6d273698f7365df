# rentlead/domain/market.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from .parsing import round_half_up
from .types import ClosedDeal, MarketBucketKey


@dataclass(frozen=True)
class MarketStats:
    avg_rent: int = 0
    min_rent: float = 0.0
    max_rent: float = 0.0
    avg_deposit: int = 0
    avg_days_to_rent: int = 0
    fastest_days_to_rent: int = 0
    total_listings: int = 0
    active_listings: int = 0
    rented_this_month: int = 0


def bucket_key_for(city: str, area: str, unit_type: str, when: datetime) -> MarketBucketKey:
    return MarketBucketKey(city=city, area=area, unit_type=unit_type, year=when.year, month=when.month)


def summarize_closed_deals(
    key: MarketBucketKey,
    deals: Sequence[ClosedDeal],
    *,
    total_listings: int,
    active_listings: int,
) -> MarketStats:
    """
    Full recompute over every closed deal matching the bucket's
    (city, area, unit_type). Same input, same output.
    """
    if not deals:
        return MarketStats(total_listings=total_listings, active_listings=active_listings)

    rents = [d.final_rent for d in deals]
    deposits = [d.deposit or 0.0 for d in deals]
    days = [d.days_to_close for d in deals if d.days_to_close is not None]

    return MarketStats(
        avg_rent=round_half_up(sum(rents) / len(rents)),
        min_rent=min(rents),
        max_rent=max(rents),
        avg_deposit=round_half_up(sum(deposits) / len(deposits)),
        avg_days_to_rent=round_half_up(sum(days) / len(days)) if days else 0,
        fastest_days_to_rent=min(days) if days else 0,
        total_listings=total_listings,
        active_listings=active_listings,
        rented_this_month=sum(
            1 for d in deals if d.closed_at.year == key.year and d.closed_at.month == key.month
        ),
    )


# Placeholders for an area that has listings but no rollup yet
CATALOG_DEPOSIT_MONTHS = 2
CATALOG_DAYS_TO_RENT = 15


@dataclass(frozen=True)
class UnitTypeSummary:
    avg_rent: float
    min_rent: float
    max_rent: float
    total_listings: int
    active_listings: int


@dataclass(frozen=True)
class AreaMarketSummary:
    area: str
    year: int
    month: int
    avg_rent: int
    avg_deposit: int
    avg_days_to_rent: int
    total_deals: int
    total_listings: int
    active_listings: int
    from_catalog: bool = False
    by_unit_type: dict[str, UnitTypeSummary] = field(default_factory=dict)


def summarize_area(
    area: str, year: int, month: int, buckets: Sequence[tuple[str, MarketStats]]
) -> AreaMarketSummary | None:
    """
    One month of an area across unit types. Averages are taken over the
    buckets, so each unit type weighs the same regardless of its deal count.
    """
    if not buckets:
        return None
    n = len(buckets)
    stats = [s for _, s in buckets]
    return AreaMarketSummary(
        area=area,
        year=year,
        month=month,
        avg_rent=round_half_up(sum(s.avg_rent for s in stats) / n),
        avg_deposit=round_half_up(sum(s.avg_deposit for s in stats) / n),
        avg_days_to_rent=round_half_up(sum(s.avg_days_to_rent for s in stats) / n),
        total_deals=sum(s.rented_this_month for s in stats),
        total_listings=sum(s.total_listings for s in stats),
        active_listings=sum(s.active_listings for s in stats),
        by_unit_type={
            unit_type: UnitTypeSummary(
                avg_rent=float(s.avg_rent),
                min_rent=s.min_rent,
                max_rent=s.max_rent,
                total_listings=s.total_listings,
                active_listings=s.active_listings,
            )
            for unit_type, s in buckets
        },
    )


def summarize_catalog(
    area: str, year: int, month: int, *, listing_count: int, prices: Sequence[float]
) -> AreaMarketSummary | None:
    """Asking prices stand in for deal data until the first close in the area."""
    if listing_count == 0:
        return None
    avg_rent = round_half_up(sum(prices) / len(prices)) if prices else 0
    return AreaMarketSummary(
        area=area,
        year=year,
        month=month,
        avg_rent=avg_rent,
        avg_deposit=avg_rent * CATALOG_DEPOSIT_MONTHS,
        avg_days_to_rent=CATALOG_DAYS_TO_RENT,
        total_deals=0,
        total_listings=listing_count,
        active_listings=listing_count,
        from_catalog=True,
    )
