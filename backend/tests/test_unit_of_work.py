import pytest
from sqlalchemy import func, select

from rentlead.models import User
from rentlead.service_layer.unit_of_work import SqlAlchemyUnitOfWork


async def _count(async_session_maker) -> int:
    async with async_session_maker() as s:
        return (await s.execute(select(func.count()).select_from(User))).scalar_one()


@pytest.mark.asyncio
async def test_commits_on_clean_exit(async_session_maker):
    async with SqlAlchemyUnitOfWork(async_session_maker) as uow:
        uow.session.add(User(name="A", phone_number="+1"))

    assert await _count(async_session_maker) == 1


@pytest.mark.asyncio
async def test_rolls_back_on_error(async_session_maker):
    with pytest.raises(RuntimeError):
        async with SqlAlchemyUnitOfWork(async_session_maker) as uow:
            uow.session.add(User(name="A", phone_number="+1"))
            await uow.session.flush()
            raise RuntimeError("boom")

    assert await _count(async_session_maker) == 0
