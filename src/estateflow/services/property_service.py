"""Property listing service: CRUD, verification and serialization."""

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from estateflow.domain.enums import UserRole
from estateflow.domain.errors import ForbiddenError, NotFoundError
from estateflow.domain.models import (
    PricingHistory,
    Property,
    PropertyImage,
    User,
    WishlistItem,
    utcnow,
)
from estateflow.domain.schemas import PropertyCreate, PropertyResponse, PropertyUpdate
from estateflow.services.auth_service import UNLIMITED_LISTINGS

logger = logging.getLogger(__name__)

STAFF_ROLES = (UserRole.MODERATOR.value, UserRole.ADMIN.value)


@dataclass
class PropertyFilters:
    """Optional listing filters; ``None`` means not filtered."""

    property_type: str | None = None
    transaction_type: str | None = None
    status: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_size: float | None = None
    max_size: float | None = None
    rooms: int | None = None
    owner_id: str | None = None
    is_verified: bool | None = None
    search: str | None = None


def _with_relations(stmt):
    return stmt.options(
        selectinload(Property.images),
        selectinload(Property.views),
        selectinload(Property.pricing_history),
        selectinload(Property.owner),
    )


async def _wished_ids(db: AsyncSession, viewer_id: str | None) -> set[str]:
    if not viewer_id:
        return set()
    result = await db.execute(
        select(WishlistItem.property_id).where(WishlistItem.user_id == viewer_id)
    )
    return set(result.scalars().all())


def serialize_property(prop: Property, wished_ids: set[str] | None = None) -> PropertyResponse:
    data = PropertyResponse.model_validate(prop)
    data.is_wished = prop.id in (wished_ids or set())
    return data


async def _load(db: AsyncSession, property_id: str) -> Property:
    result = await db.execute(
        _with_relations(select(Property).where(Property.id == property_id))
        .execution_options(populate_existing=True)
    )
    prop = result.scalar_one_or_none()
    if prop is None:
        raise NotFoundError(f"Property with ID {property_id} not found")
    return prop


def _ensure_can_edit(user: User, prop: Property) -> None:
    if prop.owner_id != user.id and user.role not in STAFF_ROLES:
        raise ForbiddenError("You can only modify your own properties")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_properties(
    db: AsyncSession,
    filters: PropertyFilters | None = None,
    viewer_id: str | None = None,
) -> list[PropertyResponse]:
    filters = filters or PropertyFilters()
    stmt = select(Property)
    if filters.property_type:
        stmt = stmt.where(Property.property_type == filters.property_type)
    if filters.transaction_type:
        stmt = stmt.where(Property.transaction_type == filters.transaction_type)
    if filters.status:
        stmt = stmt.where(Property.status == filters.status)
    if filters.min_price is not None:
        stmt = stmt.where(Property.price >= filters.min_price)
    if filters.max_price is not None:
        stmt = stmt.where(Property.price <= filters.max_price)
    if filters.min_size is not None:
        stmt = stmt.where(Property.size >= filters.min_size)
    if filters.max_size is not None:
        stmt = stmt.where(Property.size <= filters.max_size)
    if filters.rooms is not None:
        stmt = stmt.where(Property.rooms == filters.rooms)
    if filters.owner_id:
        stmt = stmt.where(Property.owner_id == filters.owner_id)
    if filters.is_verified is not None:
        stmt = stmt.where(Property.is_verified.is_(filters.is_verified))
    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(Property.title.ilike(pattern) | Property.address.ilike(pattern))

    result = await db.execute(_with_relations(stmt.order_by(Property.created_at.desc())))
    wished = await _wished_ids(db, viewer_id)
    return [serialize_property(p, wished) for p in result.scalars().all()]


async def get_property(
    db: AsyncSession,
    property_id: str,
    viewer_id: str | None = None,
) -> PropertyResponse:
    prop = await _load(db, property_id)
    return serialize_property(prop, await _wished_ids(db, viewer_id))


async def count_listings(db: AsyncSession, owner_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Property).where(Property.owner_id == owner_id)
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_property(db: AsyncSession, owner: User, data: PropertyCreate) -> PropertyResponse:
    """Create a listing owned by *owner*.

    Raises:
        ForbiddenError: the owner has reached their listing limit.
    """
    limit = owner.listing_limit
    if limit is not None and limit != UNLIMITED_LISTINGS:
        if await count_listings(db, owner.id) >= limit:
            raise ForbiddenError("Listing limit reached", listing_limit=limit)

    prop = Property(
        owner_id=owner.id,
        title=data.title,
        description=data.description,
        facilities=data.facilities,
        property_type=data.property_type.value,
        transaction_type=data.transaction_type.value,
        price=data.price,
        currency=data.currency,
        size=data.size,
        rooms=data.rooms,
        address=data.address,
        status=data.status.value,
        document_url=data.document_url,
        verification_comments=data.verification_comments,
    )
    prop.images = [
        PropertyImage(image_url=img.image_url, is_primary=img.is_primary)
        for img in data.images
    ]
    prop.pricing_history = [
        PricingHistory(price=data.price, currency=data.currency, effective_date=utcnow())
    ]
    db.add(prop)
    await db.commit()

    logger.info("Property %s created by %s", prop.id, owner.id)
    return serialize_property(await _load(db, prop.id))


async def update_property(
    db: AsyncSession,
    user: User,
    property_id: str,
    data: PropertyUpdate,
) -> PropertyResponse:
    """Apply a partial update. Supplied ``images`` replace the current set."""
    prop = await _load(db, property_id)
    _ensure_can_edit(user, prop)

    changes = data.model_dump(exclude_unset=True, exclude={"images"})
    old_price, old_currency = prop.price, prop.currency
    for field, value in changes.items():
        if value is None and field in ("title", "property_type", "transaction_type", "price", "address"):
            continue
        setattr(prop, field, getattr(value, "value", value))

    if data.images is not None:
        prop.images = [
            PropertyImage(image_url=img.image_url, is_primary=img.is_primary)
            for img in data.images
        ]

    if prop.price != old_price or prop.currency != old_currency:
        prop.pricing_history.append(
            PricingHistory(price=prop.price, currency=prop.currency or "USD", effective_date=utcnow())
        )

    prop.updated_at = utcnow()
    await db.commit()

    logger.info("Property %s updated by %s", property_id, user.id)
    return serialize_property(await _load(db, property_id), await _wished_ids(db, user.id))


async def delete_property(db: AsyncSession, user: User, property_id: str) -> None:
    prop = await _load(db, property_id)
    _ensure_can_edit(user, prop)
    await db.delete(prop)
    await db.commit()
    logger.info("Property %s deleted by %s", property_id, user.id)


async def verify_property(
    db: AsyncSession,
    user: User,
    property_id: str,
    is_verified: bool = True,
    comments: str | None = None,
) -> PropertyResponse:
    """Set the verification flag. Moderators and admins only."""
    if user.role not in STAFF_ROLES:
        raise ForbiddenError("Only moderators and admins can verify properties")
    prop = await _load(db, property_id)
    prop.is_verified = is_verified
    if comments is not None:
        prop.verification_comments = comments
    prop.updated_at = utcnow()
    await db.commit()
    logger.info("Property %s verification set to %s by %s", property_id, is_verified, user.id)
    return serialize_property(await _load(db, property_id))
