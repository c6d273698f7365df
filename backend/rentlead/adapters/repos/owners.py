# rentlead/adapters/repos/owners.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import OwnerStats, TenantContact
from ...models import User


class OwnerRepository:
    """
    Users as seen by the lead pipeline: contact details for the unlock gate
    and the versioned response-stats aggregate on owners.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def contact(self, user_id: int) -> TenantContact | None:
        row = (
            await self.session.execute(select(User.name, User.phone_number).where(User.id == user_id))
        ).first()
        if row is None:
            return None
        return TenantContact(name=row[0] or "", phone_number=row[1])

    async def load_stats(self, owner_id: int) -> OwnerStats | None:
        # Column select so we always see the committed row, not the identity map
        row = (
            await self.session.execute(
                select(
                    User.avg_response_time_minutes,
                    User.total_responses,
                    User.fast_response_count,
                    User.last_response_time,
                    User.stats_version,
                ).where(User.id == owner_id)
            )
        ).first()
        if row is None:
            return None
        return OwnerStats(
            avg_response_time_minutes=int(row[0] or 0),
            total_responses=int(row[1] or 0),
            fast_response_count=int(row[2] or 0),
            last_response_time=row[3],
            version=int(row[4] or 0),
        )

    async def compare_and_swap(self, owner_id: int, expected_version: int, stats: OwnerStats) -> bool:
        res = await self.session.execute(
            update(User)
            .where(User.id == owner_id)
            .where(User.stats_version == expected_version)
            .values(
                avg_response_time_minutes=stats.avg_response_time_minutes,
                total_responses=stats.total_responses,
                fast_response_count=stats.fast_response_count,
                last_response_time=stats.last_response_time,
                stats_version=expected_version + 1,
            )
        )
        return res.rowcount == 1

    async def save_trust_score(self, owner_id: int, score: int, now: datetime) -> None:
        # Single-column write; never touches the stats columns or their version
        await self.session.execute(
            update(User)
            .where(User.id == owner_id)
            .values(trust_score=score, trust_score_updated_at=now)
        )

    async def trust_snapshot(self, owner_id: int) -> tuple[int, datetime | None] | None:
        # save_trust_score is a Core update; the ORM User may still hold the old values
        row = (
            await self.session.execute(
                select(User.trust_score, User.trust_score_updated_at).where(User.id == owner_id)
            )
        ).first()
        if row is None:
            return None
        return int(row[0] or 0), row[1]
