# rentlead/entrypoints/api/routers/market.py
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_repos
from ....adapters.sqlalchemy_repos import SqlAlchemyRepos
from ....schemas import AreaMarketOut, AreaSummary, MarketDataOut, MarketTrend
from ....service_layer import market_data as market_service

router = APIRouter(prefix="/market", tags=["market"])


@router.get("/data", response_model=MarketDataOut)
async def market_data(
    city: str = Query(..., min_length=1),
    area: str = Query(..., min_length=1),
    unit_type: str = Query(..., min_length=1),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> MarketDataOut:
    row = await market_service.get_market_data(repos, city=city, area=area, unit_type=unit_type)
    if row is None:
        raise HTTPException(status_code=404, detail="No market data for this area yet")
    return MarketDataOut.model_validate(row)


@router.get("/trends", response_model=list[MarketTrend])
async def market_trends(
    city: str = Query(..., min_length=1),
    months: int = Query(6, ge=1, le=36),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> list[MarketTrend]:
    rows = await market_service.market_trends(repos, city=city, months=months)
    return [MarketTrend(**r) for r in rows]


@router.get("/top-areas", response_model=list[AreaSummary])
async def top_areas(
    city: str = Query(..., min_length=1),
    year: int | None = Query(None, ge=2000),
    month: int | None = Query(None, ge=1, le=12),
    limit: int = Query(10, ge=1, le=100),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> list[AreaSummary]:
    rows = await market_service.top_areas(repos, city=city, year=year, month=month, limit=limit)
    return [AreaSummary(**r) for r in rows]


@router.get("/area/{area}", response_model=AreaMarketOut)
async def area_summary(
    area: str,
    city: str = Query(..., min_length=1),
    year: int | None = Query(None, ge=2000),
    month: int | None = Query(None, ge=1, le=12),
    repos: SqlAlchemyRepos = Depends(get_repos),
) -> AreaMarketOut:
    summary = await market_service.area_summary(repos, city=city, area=area, year=year, month=month)
    if summary is None:
        raise HTTPException(status_code=404, detail="No data available for this area")
    return AreaMarketOut(**asdict(summary))
