"""Wishlist service."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.domain.errors import ConflictError, NotFoundError
from estateflow.domain.models import Property, WishlistItem

logger = logging.getLogger(__name__)


async def get_wishlist(db: AsyncSession, user_id: str) -> list[WishlistItem]:
    result = await db.execute(
        select(WishlistItem)
        .where(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.created_at.desc())
    )
    return list(result.scalars().all())


async def is_in_wishlist(db: AsyncSession, user_id: str, property_id: str) -> bool:
    result = await db.execute(
        select(WishlistItem.id).where(
            WishlistItem.user_id == user_id,
            WishlistItem.property_id == property_id,
        )
    )
    return result.first() is not None


async def add_to_wishlist(db: AsyncSession, user_id: str, property_id: str) -> WishlistItem:
    """Add a property to the user's wishlist.

    Raises:
        NotFoundError: unknown property.
        ConflictError: already wished.
    """
    exists = await db.execute(select(Property.id).where(Property.id == property_id))
    if exists.first() is None:
        raise NotFoundError("Property not found")

    item = WishlistItem(user_id=user_id, property_id=property_id)
    db.add(item)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Property is already in the wishlist")
    logger.info("User %s wished property %s", user_id, property_id)
    return item


async def remove_from_wishlist(db: AsyncSession, user_id: str, property_id: str) -> bool:
    """Remove the pair; returns False when nothing was there."""
    result = await db.execute(
        delete(WishlistItem).where(
            WishlistItem.user_id == user_id,
            WishlistItem.property_id == property_id,
        )
    )
    await db.commit()
    return result.rowcount > 0
