from __future__ import annotations

import asyncio

from rentlead.db import async_session, engine
from rentlead.models import Base
from rentlead.service_layer.demo_seed import seed_demo


async def _ensure_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    await _ensure_schema()

    async with async_session() as session:
        res = await seed_demo(session)
        await session.commit()

    print(f"Seeded demo data: {res}")


if __name__ == "__main__":
    asyncio.run(main())
