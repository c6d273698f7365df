from dataclasses import replace
from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from rentlead.domain.errors import NotFound, OwnerStatsConflict
from rentlead.domain.types import OwnerStats
from rentlead.models import User
from rentlead.service_layer.owner_stats import apply_first_response, get_owner_stats

T0 = datetime(2024, 1, 1, 12, 0)


class RacyStore:
    """In-memory store where another writer sneaks in before the first `losses` swaps."""

    def __init__(self, losses: int) -> None:
        self.stats = OwnerStats()
        self.losses = losses
        self.swaps = 0

    async def load_stats(self, owner_id):
        return self.stats

    async def compare_and_swap(self, owner_id, expected_version, stats):
        self.swaps += 1
        if self.losses > 0:
            self.losses -= 1
            # concurrent first response on another lead: 20 minutes
            self.stats = OwnerStats(
                avg_response_time_minutes=20,
                total_responses=1,
                fast_response_count=0,
                last_response_time=T0,
                version=self.stats.version + 1,
            )
            return False
        if expected_version != self.stats.version:
            return False
        self.stats = replace(stats, version=expected_version + 1)
        return True


@pytest.mark.asyncio
async def test_lost_race_is_retried_and_folded_in():
    store = RacyStore(losses=1)
    out = await apply_first_response(store, 1, T0, T0 + timedelta(minutes=8), max_retries=3)

    assert store.swaps == 2
    assert out.total_responses == 2
    assert out.avg_response_time_minutes == 14
    assert out.fast_response_count == 1
    assert out.version == 2
    assert store.stats == out


@pytest.mark.asyncio
async def test_exhausted_retries_raise_conflict():
    store = RacyStore(losses=10)
    with pytest.raises(OwnerStatsConflict):
        await apply_first_response(store, 1, T0, T0 + timedelta(minutes=8), max_retries=2)
    assert store.swaps == 3


@pytest.mark.asyncio
async def test_unknown_owner():
    class Empty:
        async def load_stats(self, owner_id):
            return None

    with pytest.raises(NotFound):
        await apply_first_response(Empty(), 42, T0, T0)


@pytest.mark.asyncio
async def test_sql_compare_and_swap_checks_version(repos, owner):
    stats = await repos.owners.load_stats(owner.id)
    assert stats.version == 0

    # someone else bumps the version
    await repos.session.execute(update(User).where(User.id == owner.id).values(stats_version=1))

    assert await repos.owners.compare_and_swap(owner.id, 0, replace(stats, total_responses=1)) is False
    assert await repos.owners.compare_and_swap(owner.id, 1, replace(stats, total_responses=1)) is True

    fresh = await repos.owners.load_stats(owner.id)
    assert fresh.total_responses == 1
    assert fresh.version == 2


@pytest.mark.asyncio
async def test_repository_backed_update(repos, owner):
    out = await apply_first_response(repos.owners, owner.id, T0, T0 + timedelta(minutes=8))
    await repos.session.commit()

    assert out.version == 1
    res = await get_owner_stats(repos, owner.id)
    assert res["avg_response_time_minutes"] == 8
    assert res["total_responses"] == 1
    assert res["fast_response_count"] == 1
