# rentlead/service_layer/jobruns.py
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.types import utcnow
from ..models import JobRun, JobRunStatus

log = logging.getLogger(__name__)


async def start_job(session: AsyncSession, job_name: str, meta: dict[str, Any] | None = None) -> JobRun:
    jr = JobRun(
        job_name=job_name,
        started_at=utcnow(),
        status=JobRunStatus.running,
        meta_json=json.dumps(meta or {}, default=str),
    )
    session.add(jr)
    await session.flush()
    log.info("job %s started run=%s", job_name, jr.id)
    return jr


async def finish_job_success(session: AsyncSession, jr: JobRun, summary: dict[str, Any]) -> None:
    jr.status = JobRunStatus.success
    jr.finished_at = utcnow()
    jr.summary_json = json.dumps(summary, default=str)
    jr.error = None
    await session.flush()
    log.info("job %s finished run=%s summary=%s", jr.job_name, jr.id, jr.summary_json)


async def finish_job_fail(session: AsyncSession, jr: JobRun, err: Exception) -> None:
    jr.status = JobRunStatus.failed
    jr.finished_at = utcnow()
    jr.error = str(err)
    await session.flush()
    log.error("job %s failed run=%s: %s", jr.job_name, jr.id, err)
