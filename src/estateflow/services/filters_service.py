"""Filter option lookups over active listings.

Each function returns ``None`` when there is nothing to offer.
"""

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.domain.enums import PropertyStatus
from estateflow.domain.models import Property

_ACTIVE = Property.status == PropertyStatus.ACTIVE.value


async def get_price_range(db: AsyncSession) -> dict | None:
    result = await db.execute(
        select(func.min(Property.price), func.max(Property.price)).where(_ACTIVE)
    )
    low, high = result.one()
    if low is None:
        return None
    return {"minPrice": low, "maxPrice": high}


async def get_area_range(db: AsyncSession) -> dict | None:
    result = await db.execute(
        select(func.min(func.coalesce(Property.size, 0)), func.max(func.coalesce(Property.size, 0)))
        .where(_ACTIVE)
    )
    low, high = result.one()
    if low is None:
        return None
    return {"minArea": low, "maxArea": high}


async def get_rooms(db: AsyncSession) -> dict | None:
    result = await db.execute(select(distinct(Property.rooms)).where(_ACTIVE))
    rooms = sorted({r if r else 1 for r in result.scalars().all()})
    return {"rooms": rooms} if rooms else None


async def get_transaction_types(db: AsyncSession) -> dict | None:
    result = await db.execute(
        select(distinct(Property.transaction_type))
        .where(_ACTIVE, Property.transaction_type.is_not(None))
        .order_by(Property.transaction_type)
    )
    types = list(result.scalars().all())
    return {"transactionTypes": types} if types else None


async def get_property_types(db: AsyncSession) -> dict | None:
    result = await db.execute(
        select(distinct(Property.property_type))
        .where(_ACTIVE, Property.property_type.is_not(None))
        .order_by(Property.property_type)
    )
    types = list(result.scalars().all())
    return {"propertyTypes": types} if types else None
