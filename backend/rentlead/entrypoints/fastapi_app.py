# rentlead/entrypoints/fastapi_app.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from ..db import engine, is_lock_error
from ..domain.errors import (
    DuplicateActiveLead,
    InvalidLeadData,
    InvalidTransition,
    LeadPipelineError,
    NotFound,
    OwnerStatsConflict,
    Unauthorized,
)
from ..logging_config import configure_logging
from ..models import Base
from .api.routers import health, jobs, leads, market, owners

log = logging.getLogger(__name__)

_STATUS: list[tuple[type[LeadPipelineError], int]] = [
    (InvalidLeadData, 400),
    (Unauthorized, 403),
    (NotFound, 404),
    (DuplicateActiveLead, 409),
    (InvalidTransition, 409),
    (OwnerStatsConflict, 503),
]


def _error_response(exc: LeadPipelineError) -> JSONResponse:
    status = 500
    for cls, code in _STATUS:
        if isinstance(exc, cls):
            status = code
            break

    body: dict[str, object] = {"detail": str(exc), "error": type(exc).__name__}
    headers: dict[str, str] = {}
    if isinstance(exc, DuplicateActiveLead):
        body["existing_lead_id"] = exc.existing_lead_id
    if isinstance(exc, OwnerStatsConflict):
        headers["Retry-After"] = "1"
    if status >= 500:
        log.error("request failed: %s", exc)
    return JSONResponse(status_code=status, content=body, headers=headers)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Rentlead - Lead Lifecycle & Scoring")

    @app.on_event("startup")
    async def _startup() -> None:
        # Single place where DB tables are created in dev.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @app.exception_handler(LeadPipelineError)
    async def _pipeline_error(request: Request, exc: LeadPipelineError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(OperationalError)
    async def _db_error(request: Request, exc: OperationalError) -> JSONResponse:
        # Another writer held the SQLite lock past the busy timeout; the request did not apply
        if is_lock_error(exc):
            log.warning("database locked on %s %s", request.method, request.url.path)
            return _error_response(OwnerStatsConflict("database is busy; retry the request"))
        log.exception("database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "database error", "error": "OperationalError"})

    # Routers
    app.include_router(health.router)
    app.include_router(leads.router)
    app.include_router(owners.router)
    app.include_router(market.router)
    app.include_router(jobs.router)

    return app
