# rentlead/adapters/repos/properties.py
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import PropertyFacts
from ...models import Property


def property_facts(p: Property) -> PropertyFacts:
    return PropertyFacts(
        property_id=p.id,
        owner_id=p.owner_id,
        city=p.city,
        area=p.area,
        unit_type=p.unit_type,
        title=p.title or "",
        image_count=len(p.images),
        description=p.description or "",
        amenity_count=len(p.amenities),
        is_available=bool(p.is_available),
        is_expired=bool(p.is_expired),
    )


class PropertyRepository:
    """
    Read side of the property catalog. Listing, upload and search are owned
    by other services; this subsystem only looks properties up.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, property_id: int) -> Property | None:
        return await self.session.get(Property, property_id)

    async def get_facts(self, property_id: int) -> PropertyFacts | None:
        prop = await self.get(property_id)
        return property_facts(prop) if prop else None

    async def list_for_owner(self, owner_id: int) -> list[PropertyFacts]:
        q = select(Property).where(Property.owner_id == owner_id).order_by(Property.id.asc())
        return [property_facts(p) for p in (await self.session.execute(q)).scalars().all()]

    async def count_listings(self, *, city: str, area: str, unit_type: str) -> tuple[int, int]:
        base = (
            select(func.count())
            .select_from(Property)
            .where(Property.city == city)
            .where(Property.area == area)
            .where(Property.unit_type == unit_type)
        )
        total = (await self.session.execute(base)).scalar_one()
        active = (
            await self.session.execute(
                base.where(Property.is_expired == False).where(Property.is_available == True)  # noqa: E712
            )
        ).scalar_one()
        return int(total), int(active)

    async def catalog_prices(self, *, city: str, area: str) -> tuple[int, list[float]]:
        """Live (non-expired) listings in an area and the asking prices that are set."""
        q = (
            select(Property.price)
            .where(func.lower(Property.city) == city.lower())
            .where(func.lower(Property.area) == area.lower())
            .where(Property.is_expired == False)  # noqa: E712
        )
        prices = list((await self.session.execute(q)).scalars().all())
        return len(prices), [float(p) for p in prices if p is not None]
