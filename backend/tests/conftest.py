# tests/conftest.py
import json
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rentlead.adapters.sqlalchemy_repos import SqlAlchemyRepos
from rentlead.db import enable_sqlite_savepoints
from rentlead.domain.types import FamilyType, JobType, Qualification, UserRole
from rentlead.models import Base, Property, User

NOW = datetime(2024, 1, 1, 12, 0, 0)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def notify(self, recipient_id, type, title, body, data=None) -> None:
        self.sent.append(
            {"recipient_id": recipient_id, "type": type, "title": title, "body": body, "data": data or {}}
        )

    def types(self) -> list[str]:
        return [s["type"] for s in self.sent]


class FailingNotifier:
    def __init__(self) -> None:
        self.calls = 0

    async def notify(self, recipient_id, type, title, body, data=None) -> None:
        self.calls += 1
        raise RuntimeError("gateway down")


def qualification(move_in="2024-01-05", budget=25000.0, notes="") -> Qualification:
    return Qualification(
        budget=budget,
        move_in_date=datetime.strptime(move_in, "%Y-%m-%d").date(),
        family_type=FamilyType.family,
        job_type=JobType.working,
        tenant_notes=notes,
    )


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
async def session(async_session_maker):
    async with async_session_maker() as s:
        yield s


@pytest.fixture
def repos(session):
    return SqlAlchemyRepos(session)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def owner(session):
    u = User(name="Asha Owner", phone_number="+911000000001", role=UserRole.owner)
    session.add(u)
    await session.commit()
    return u


@pytest.fixture
async def tenant(session):
    u = User(name="Ravi Tenant", phone_number="+911000000002", role=UserRole.tenant)
    session.add(u)
    await session.commit()
    return u


@pytest.fixture
async def other_user(session):
    u = User(name="Someone Else", phone_number="+911000000009", role=UserRole.owner)
    session.add(u)
    await session.commit()
    return u


@pytest.fixture
async def seeded_property(session, owner):
    p = Property(
        owner_id=owner.id,
        title="Sunny 2BHK near metro",
        description="Corner flat on the 4th floor with balcony, covered parking and 24x7 water.",
        images_json=json.dumps(["a.jpg"]),
        amenities_json=json.dumps(["parking"]),
        city="Pune",
        area="Baner",
        unit_type="2BHK",
        price=28000.0,
        is_available=True,
        is_expired=False,
    )
    session.add(p)
    await session.commit()
    return p
