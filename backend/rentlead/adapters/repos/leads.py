# rentlead/adapters/repos/leads.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.errors import DuplicateActiveLead
from ...domain.types import PRIORITY_ORDER, TERMINAL_STATUSES, ClosedDeal, LeadFacts, LeadStatus, Priority
from ...models import Lead, Property

log = logging.getLogger(__name__)

_PRIORITY_RANK = case(PRIORITY_ORDER, value=Lead.priority, else_=len(PRIORITY_ORDER))


def lead_facts(lead: Lead) -> LeadFacts:
    return LeadFacts(
        status=lead.status,
        owner_responded=bool(lead.owner_responded),
        response_time_minutes=lead.response_time_minutes,
        created_at=lead.created_at,
    )


class LeadRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, lead_id: int) -> Lead | None:
        return await self.session.get(Lead, lead_id)

    async def add_active(self, lead: Lead) -> Lead:
        """
        Insert a new non-terminal lead. The partial unique index decides
        duplicates, so two racing inserts cannot both win.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(lead)
                await self.session.flush()
        except IntegrityError:
            existing = await self.find_active(property_id=lead.property_id, tenant_id=lead.tenant_id)
            log.info("duplicate active lead rejected property=%s tenant=%s", lead.property_id, lead.tenant_id)
            raise DuplicateActiveLead(
                lead.property_id,
                lead.tenant_id,
                existing_lead_id=existing.id if existing else None,
            ) from None
        return lead

    async def find_active(self, *, property_id: int, tenant_id: int) -> Lead | None:
        q = (
            select(Lead)
            .where(Lead.property_id == property_id)
            .where(Lead.tenant_id == tenant_id)
            .where(Lead.status.notin_(list(TERMINAL_STATUSES)))
        )
        return (await self.session.execute(q)).scalars().first()

    async def latest_visible(self, *, property_id: int, tenant_id: int) -> Lead | None:
        """Most recent lead for the pair, hiding expired ones (closed still shows)."""
        q = (
            select(Lead)
            .where(Lead.property_id == property_id)
            .where(Lead.tenant_id == tenant_id)
            .where(Lead.status != LeadStatus.expired)
            .order_by(Lead.created_at.desc(), Lead.id.desc())
        )
        return (await self.session.execute(q)).scalars().first()

    async def claim_first_response(self, lead: Lead, *, minutes: int, now: datetime) -> bool:
        """
        Flip owner_responded false->true. Only one caller ever gets True for a
        given lead, and response_time_minutes is written only by that caller.
        """
        res = await self.session.execute(
            update(Lead)
            .where(Lead.id == lead.id)
            .where(Lead.owner_responded == False)  # noqa: E712
            .values(owner_responded=True, response_time_minutes=minutes, responded_at=now)
        )
        if res.rowcount != 1:
            return False
        lead.owner_responded = True
        lead.response_time_minutes = minutes
        lead.responded_at = now
        return True

    async def claim_unlock(self, lead: Lead, *, now: datetime) -> bool:
        res = await self.session.execute(
            update(Lead)
            .where(Lead.id == lead.id)
            .where(Lead.contact_unlocked == False)  # noqa: E712
            .values(contact_unlocked=True, unlocked_at=now)
        )
        if res.rowcount != 1:
            return False
        lead.contact_unlocked = True
        lead.unlocked_at = now
        return True

    async def list_for_owner(
        self,
        owner_id: int,
        *,
        status: LeadStatus | None = None,
        priority: Priority | None = None,
        limit: int | None = 20,
        offset: int = 0,
    ) -> list[Lead]:
        q = select(Lead).where(Lead.owner_id == owner_id)
        if status is not None:
            q = q.where(Lead.status == status)
        if priority is not None:
            q = q.where(Lead.priority == priority)
        q = q.order_by(_PRIORITY_RANK, Lead.created_at.desc(), Lead.id.desc()).offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return list((await self.session.execute(q)).scalars().all())

    async def count_for_owner(
        self,
        owner_id: int,
        *,
        status: LeadStatus | None = None,
        priority: Priority | None = None,
    ) -> int:
        q = select(func.count()).select_from(Lead).where(Lead.owner_id == owner_id)
        if status is not None:
            q = q.where(Lead.status == status)
        if priority is not None:
            q = q.where(Lead.priority == priority)
        return int((await self.session.execute(q)).scalar_one())

    async def list_for_tenant(self, tenant_id: int, *, limit: int = 20, offset: int = 0) -> list[Lead]:
        q = (
            select(Lead)
            .where(Lead.tenant_id == tenant_id)
            .order_by(Lead.created_at.desc(), Lead.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list((await self.session.execute(q)).scalars().all())

    async def count_for_tenant(self, tenant_id: int) -> int:
        q = select(func.count()).select_from(Lead).where(Lead.tenant_id == tenant_id)
        return int((await self.session.execute(q)).scalar_one())

    async def count_by_status(self, owner_id: int) -> dict[str, int]:
        q = (
            select(Lead.status, func.count())
            .where(Lead.owner_id == owner_id)
            .group_by(Lead.status)
        )
        return {s.value: int(n) for s, n in (await self.session.execute(q)).all()}

    async def count_open_by_priority(self, owner_id: int) -> dict[str, int]:
        q = (
            select(Lead.priority, func.count())
            .where(Lead.owner_id == owner_id)
            .where(Lead.status.notin_(list(TERMINAL_STATUSES)))
            .group_by(Lead.priority)
        )
        return {p.value: int(n) for p, n in (await self.session.execute(q)).all()}

    async def list_open(self) -> Sequence[Lead]:
        q = select(Lead).where(Lead.status.notin_(list(TERMINAL_STATUSES))).order_by(Lead.id.asc())
        return (await self.session.execute(q)).scalars().all()

    async def facts_for_properties(self, property_ids: Sequence[int]) -> list[LeadFacts]:
        if not property_ids:
            return []
        q = select(Lead).where(Lead.property_id.in_(list(property_ids)))
        return [lead_facts(l) for l in (await self.session.execute(q)).scalars().all()]

    async def closed_deals_for_market(self, *, city: str, area: str, unit_type: str) -> list[ClosedDeal]:
        q = (
            select(Lead.final_rent, Lead.deposit, Lead.days_to_close, Lead.updated_at)
            .join(Property, Property.id == Lead.property_id)
            .where(Lead.status == LeadStatus.closed)
            .where(Lead.final_rent.isnot(None))
            .where(Property.city == city)
            .where(Property.area == area)
            .where(Property.unit_type == unit_type)
            .order_by(Lead.id.asc())
        )
        rows = (await self.session.execute(q)).all()
        return [
            ClosedDeal(final_rent=float(rent), deposit=deposit, days_to_close=days, closed_at=closed_at)
            for rent, deposit, days, closed_at in rows
        ]

    async def analytics(
        self,
        owner_id: int,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        def _scoped(q):
            q = q.where(Lead.owner_id == owner_id)
            if start is not None and end is not None:
                q = q.where(Lead.created_at >= start).where(Lead.created_at <= end)
            return q

        total = (await self.session.execute(_scoped(select(func.count()).select_from(Lead)))).scalar_one()
        closed = (
            await self.session.execute(
                _scoped(select(func.count()).select_from(Lead).where(Lead.status == LeadStatus.closed))
            )
        ).scalar_one()

        deal_row = (
            await self.session.execute(
                _scoped(
                    select(
                        func.avg(Lead.final_rent),
                        func.avg(Lead.deposit),
                        func.avg(Lead.days_to_close),
                    )
                    .where(Lead.status == LeadStatus.closed)
                    .where(Lead.final_rent.isnot(None))
                )
            )
        ).one()

        dist_rows = (
            await self.session.execute(_scoped(select(Lead.priority, func.count()).group_by(Lead.priority)))
        ).all()

        return {
            "total_leads": int(total),
            "closed_leads": int(closed),
            "avg_rent": float(deal_row[0]) if deal_row[0] is not None else None,
            "avg_deposit": float(deal_row[1]) if deal_row[1] is not None else None,
            "avg_days_to_close": float(deal_row[2]) if deal_row[2] is not None else None,
            "priority_distribution": {p.value: int(n) for p, n in dist_rows},
        }
