# rentlead/service_layer/demo_seed.py
from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.types import UserRole
from ..models import Property, User

_USERS = [
    ("Asha Owner", "+911000000001", UserRole.owner),
    ("Ravi Tenant", "+911000000002", UserRole.tenant),
    ("Meera Tenant", "+911000000003", UserRole.tenant),
]

_PROPERTIES = [
    {
        "title": "Sunny 2BHK near metro",
        "description": "Corner flat on the 4th floor with balcony, covered parking and 24x7 water supply.",
        "city": "Pune",
        "area": "Baner",
        "unit_type": "2BHK",
        "price": 28000.0,
        "images": ["baner-1.jpg", "baner-2.jpg"],
        "amenities": ["parking", "lift", "power backup"],
    },
    {
        "title": "Studio for students",
        "description": "Compact studio",
        "city": "Pune",
        "area": "Kothrud",
        "unit_type": "Studio",
        "price": 12000.0,
        "images": [],
        "amenities": ["wifi"],
    },
]


async def seed_demo(session: AsyncSession) -> dict[str, Any]:
    """
    Idempotent demo seed:
    - one owner, two tenants (keyed by phone number)
    - two properties for the owner (keyed by owner + title)
    - safe to run multiple times
    """
    users: dict[str, User] = {}
    created_users = 0
    for name, phone, role in _USERS:
        row = (await session.execute(select(User).where(User.phone_number == phone))).scalars().first()
        if row:
            row.name = name
            row.role = role
        else:
            row = User(name=name, phone_number=phone, role=role)
            session.add(row)
            created_users += 1
        await session.flush()
        users[phone] = row

    owner = users[_USERS[0][1]]
    created_props = 0
    for item in _PROPERTIES:
        row = (
            await session.execute(
                select(Property).where(Property.owner_id == owner.id).where(Property.title == item["title"])
            )
        ).scalars().first()
        if row is None:
            row = Property(owner_id=owner.id, title=item["title"])
            session.add(row)
            created_props += 1
        row.description = item["description"]
        row.city = item["city"]
        row.area = item["area"]
        row.unit_type = item["unit_type"]
        row.price = item["price"]
        row.images_json = json.dumps(item["images"])
        row.amenities_json = json.dumps(item["amenities"])
        row.is_available = True
        row.is_expired = False
        await session.flush()

    return {
        "users": len(_USERS),
        "properties": len(_PROPERTIES),
        "created_users": created_users,
        "created_properties": created_props,
        "owner_id": owner.id,
    }
