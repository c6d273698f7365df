# rentlead/jobs/scheduler.py
from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import func, or_, select

from ..config import settings
from ..domain.types import utcnow
from ..integrations.services.outbox import dispatch_pending_notifications
from ..integrations.webhook import sink_from_settings
from ..models import OutboxEvent, OutboxStatus
from ..service_layer.jobruns import finish_job_fail, finish_job_success, start_job
from ..service_layer.leads import refresh_open_lead_priorities
from ..service_layer.unit_of_work import SqlAlchemyUnitOfWork

log = logging.getLogger(__name__)


async def _run_dispatch_quiet() -> None:
    """
    Quiet-by-default posture:
    - If no gateway webhook is configured, do nothing.
    - If there are no due outbox events, do nothing.
    """
    sink = sink_from_settings()
    if sink is None:
        return

    async with SqlAlchemyUnitOfWork() as uow:
        pending = (
            await uow.session.execute(
                select(func.count())
                .select_from(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.pending)
                .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= utcnow()))
            )
        ).scalar_one()
    if int(pending) == 0:
        return

    async with SqlAlchemyUnitOfWork() as uow:
        jr = await start_job(uow.session, "dispatch_scheduler")
        try:
            res = await dispatch_pending_notifications(uow.session, sink)
            await finish_job_success(uow.session, jr, res)
        except Exception as e:
            await finish_job_fail(uow.session, jr, e)


async def _run_reprioritize() -> None:
    async with SqlAlchemyUnitOfWork() as uow:
        jr = await start_job(uow.session, "reprioritize_scheduler")
        try:
            res = await refresh_open_lead_priorities(uow.repos)
            await finish_job_success(uow.session, jr, res)
        except Exception as e:
            await finish_job_fail(uow.session, jr, e)


def build_scheduler() -> AsyncIOScheduler:
    sched = AsyncIOScheduler()

    sched.add_job(
        lambda: asyncio.create_task(_run_dispatch_quiet()),
        "interval",
        minutes=settings.SCHED_DISPATCH_INTERVAL_MINUTES,
    )

    # Changes the order owners see their leads in, so opt-in only
    if settings.SCHED_REPRIORITIZE_ENABLED:
        sched.add_job(
            lambda: asyncio.create_task(_run_reprioritize()),
            "cron",
            hour=settings.SCHED_REPRIORITIZE_HOUR,
            minute=0,
        )
        log.info("daily priority refresh scheduled at %02d:00", settings.SCHED_REPRIORITIZE_HOUR)

    return sched
