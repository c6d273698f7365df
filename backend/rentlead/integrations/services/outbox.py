# rentlead/integrations/services/outbox.py
from __future__ import annotations

import json
import logging
import random
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...domain.ports import Notifier
from ...domain.types import utcnow
from ...models import OutboxEvent, OutboxStatus

log = logging.getLogger(__name__)


class OutboxNotifier:
    """
    Notifier used by API requests: the notification is stored in the caller's
    transaction (inside a savepoint) and delivered later by the dispatcher.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def notify(
        self,
        recipient_id: int,
        type: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        async with self.session.begin_nested():
            self.session.add(
                OutboxEvent(
                    recipient_id=recipient_id,
                    event_type=type,
                    title=title,
                    body=body,
                    payload_json=json.dumps(data or {}, default=str),
                    status=OutboxStatus.pending,
                    attempts=0,
                )
            )
            await self.session.flush()


def _compute_backoff_seconds(attempts_after_increment: int) -> float:
    """
    Exponential backoff with jitter.
    attempts_after_increment: 1,2,3,... (after we increment attempts)
    """
    base = float(settings.OUTBOX_BACKOFF_BASE_SECONDS)
    exp = base * (2 ** max(0, attempts_after_increment - 1))
    capped = min(exp, float(settings.OUTBOX_BACKOFF_CAP_SECONDS))
    jitter = random.uniform(0.0, min(base, capped))
    return capped + jitter


async def dispatch_pending_notifications(
    session: AsyncSession,
    sink: Notifier | None,
    batch_size: int | None = None,
    max_attempts: int | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Deliver pending outbox rows through `sink`.
    Quiet-by-default: without a sink nothing is attempted.
    """
    if sink is None:
        return {"delivered": 0, "failed": 0, "retrying": 0, "events": 0, "skipped_no_sink": 1}

    batch_size = batch_size or settings.OUTBOX_BATCH_SIZE
    max_attempts = max_attempts or settings.OUTBOX_MAX_ATTEMPTS
    now = now or utcnow()

    stmt = (
        select(OutboxEvent)
        .where(OutboxEvent.status == OutboxStatus.pending)
        .where(OutboxEvent.attempts < max_attempts)
        .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= now))
        .order_by(OutboxEvent.id.asc())
        .limit(batch_size)
    )
    events = (await session.execute(stmt)).scalars().all()

    delivered = 0
    failed = 0
    retrying = 0

    for ev in events:
        ev.attempts += 1
        ev.updated_at = now
        try:
            await sink.notify(ev.recipient_id, ev.event_type, ev.title, ev.body, json.loads(ev.payload_json or "{}"))
        except Exception as e:
            ev.last_error = str(e)[:1000]
            if ev.attempts >= max_attempts:
                ev.status = OutboxStatus.failed
                ev.next_attempt_at = None
                failed += 1
                log.error("notification %s gave up after %s attempts: %s", ev.id, ev.attempts, e)
            else:
                ev.next_attempt_at = now + timedelta(seconds=_compute_backoff_seconds(ev.attempts))
                retrying += 1
                log.warning("notification %s attempt %s failed: %s", ev.id, ev.attempts, e)
        else:
            ev.status = OutboxStatus.delivered
            ev.delivered_at = now
            ev.next_attempt_at = None
            ev.last_error = None
            delivered += 1

        await session.flush()

    return {
        "delivered": delivered,
        "failed": failed,
        "retrying": retrying,
        "events": len(events),
        "skipped_no_sink": 0,
    }
