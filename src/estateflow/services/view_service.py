"""Property view tracking: one row per (user, property), bumped on every view."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.domain.errors import NotFoundError
from estateflow.domain.models import Property, PropertyView, utcnow

logger = logging.getLogger(__name__)


async def record_view(db: AsyncSession, user_id: str, property_id: str) -> PropertyView:
    exists = await db.execute(select(Property.id).where(Property.id == property_id))
    if exists.first() is None:
        raise NotFoundError("Property not found")

    result = await db.execute(
        select(PropertyView).where(
            PropertyView.user_id == user_id,
            PropertyView.property_id == property_id,
        )
    )
    view = result.scalar_one_or_none()
    if view is None:
        view = PropertyView(user_id=user_id, property_id=property_id, viewed_at=utcnow())
        db.add(view)
    else:
        view.viewed_at = utcnow()
    await db.commit()
    logger.debug("View of %s by %s recorded", property_id, user_id)
    return view
