# rentlead/adapters/repos/market_data.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.market import MarketStats
from ...domain.types import MarketBucketKey
from ...models import MarketData


class MarketDataRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: MarketBucketKey) -> MarketData | None:
        q = (
            select(MarketData)
            .where(MarketData.city == key.city)
            .where(MarketData.area == key.area)
            .where(MarketData.unit_type == key.unit_type)
            .where(MarketData.year == key.year)
            .where(MarketData.month == key.month)
        )
        return (await self.session.execute(q)).scalars().first()

    async def save(self, key: MarketBucketKey, stats: MarketStats, *, now: datetime) -> MarketData:
        """
        Overwrite the bucket, creating it on first use. A concurrent first
        insert for the same key loses the savepoint and overwrites instead.
        """
        row = await self.get(key)
        if row is None:
            row = MarketData(city=key.city, area=key.area, unit_type=key.unit_type, year=key.year, month=key.month)
            _apply(row, stats, now)
            try:
                async with self.session.begin_nested():
                    self.session.add(row)
                    await self.session.flush()
                return row
            except IntegrityError:
                row = await self.get(key)
                if row is None:
                    raise

        _apply(row, stats, now)
        await self.session.flush()
        return row

    async def latest(self, *, city: str, area: str, unit_type: str) -> MarketData | None:
        q = (
            select(MarketData)
            .where(MarketData.city == city)
            .where(MarketData.area == area)
            .where(MarketData.unit_type == unit_type)
            .order_by(MarketData.year.desc(), MarketData.month.desc())
        )
        return (await self.session.execute(q)).scalars().first()

    async def trends(self, *, city: str, since: datetime) -> list[dict[str, Any]]:
        q = (
            select(
                MarketData.year,
                MarketData.month,
                func.avg(MarketData.avg_rent),
                func.sum(MarketData.rented_this_month),
                func.avg(MarketData.avg_days_to_rent),
            )
            .where(func.lower(MarketData.city) == city.lower())
            .where(MarketData.last_updated >= since)
            .group_by(MarketData.year, MarketData.month)
            .order_by(MarketData.year.asc(), MarketData.month.asc())
        )
        return [
            {
                "year": int(y),
                "month": int(m),
                "avg_rent": float(rent or 0.0),
                "total_deals": int(deals or 0),
                "avg_days_to_rent": float(days or 0.0),
            }
            for y, m, rent, deals, days in (await self.session.execute(q)).all()
        ]

    async def top_areas(self, *, city: str, year: int, month: int, limit: int = 10) -> list[dict[str, Any]]:
        deals = func.sum(MarketData.rented_this_month)
        q = (
            select(
                MarketData.area,
                func.avg(MarketData.avg_rent),
                deals,
                func.avg(MarketData.avg_days_to_rent),
                func.sum(MarketData.total_listings),
            )
            .where(func.lower(MarketData.city) == city.lower())
            .where(MarketData.year == year)
            .where(MarketData.month == month)
            .group_by(MarketData.area)
            .order_by(deals.desc(), MarketData.area.asc())
            .limit(limit)
        )
        return [
            {
                "area": area,
                "avg_rent": float(rent or 0.0),
                "total_deals": int(n or 0),
                "avg_days_to_rent": float(days or 0.0),
                "total_listings": int(listings or 0),
            }
            for area, rent, n, days, listings in (await self.session.execute(q)).all()
        ]

    async def area_month(self, *, city: str, area: str, year: int, month: int) -> list[tuple[str, MarketStats]]:
        q = (
            select(MarketData)
            .where(func.lower(MarketData.city) == city.lower())
            .where(func.lower(MarketData.area) == area.lower())
            .where(MarketData.year == year)
            .where(MarketData.month == month)
            .order_by(MarketData.unit_type.asc())
        )
        return [(row.unit_type, _stats(row)) for row in (await self.session.execute(q)).scalars().all()]


def _stats(row: MarketData) -> MarketStats:
    return MarketStats(
        avg_rent=int(row.avg_rent or 0),
        min_rent=float(row.min_rent or 0.0),
        max_rent=float(row.max_rent or 0.0),
        avg_deposit=int(row.avg_deposit or 0),
        avg_days_to_rent=int(row.avg_days_to_rent or 0),
        fastest_days_to_rent=int(row.fastest_days_to_rent or 0),
        total_listings=int(row.total_listings or 0),
        active_listings=int(row.active_listings or 0),
        rented_this_month=int(row.rented_this_month or 0),
    )


def _apply(row: MarketData, stats: MarketStats, now: datetime) -> None:
    row.avg_rent = float(stats.avg_rent)
    row.min_rent = float(stats.min_rent)
    row.max_rent = float(stats.max_rent)
    row.avg_deposit = float(stats.avg_deposit)
    row.avg_days_to_rent = float(stats.avg_days_to_rent)
    row.fastest_days_to_rent = int(stats.fastest_days_to_rent)
    row.total_listings = stats.total_listings
    row.active_listings = stats.active_listings
    row.rented_this_month = stats.rented_this_month
    row.last_updated = now
