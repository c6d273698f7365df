import pytest
from sqlalchemy import func, select

from rentlead.models import Property, User
from rentlead.service_layer.demo_seed import seed_demo


@pytest.mark.asyncio
async def test_seed_demo_is_idempotent(session):
    first = await seed_demo(session)
    await session.commit()
    second = await seed_demo(session)
    await session.commit()

    assert first["created_users"] == 3
    assert second["created_users"] == 0
    assert second["created_properties"] == 0
    assert first["owner_id"] == second["owner_id"]

    users = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    props = (await session.execute(select(func.count()).select_from(Property))).scalar_one()
    assert (users, props) == (3, 2)
