"""Tests for property listing CRUD, pricing history and verification."""

import pytest
from sqlalchemy import select

from estateflow.domain.enums import PropertyType, TransactionType, UserRole
from estateflow.domain.errors import ForbiddenError, NotFoundError
from estateflow.domain.models import PricingHistory, Property, WishlistItem
from estateflow.domain.schemas import PropertyCreate, PropertyImageIn, PropertyUpdate
from estateflow.services import property_service
from estateflow.services.property_service import PropertyFilters


def _listing(**overrides) -> PropertyCreate:
    data = {
        "title": "Two-room flat",
        "property_type": PropertyType.APARTMENT,
        "transaction_type": TransactionType.RENT,
        "price": 500.0,
        "currency": "USD",
        "size": 48.0,
        "rooms": 2,
        "address": "Львівська обл., Львів, вул. Городоцька 10",
        "images": [PropertyImageIn(image_url="https://img.test/a.jpg", is_primary=True)],
    }
    data.update(overrides)
    return PropertyCreate(**data)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_property_writes_images_and_first_price(db_session, make_user):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)

    created = await property_service.create_property(db_session, owner, _listing())

    assert created.owner_id == owner.id
    assert created.owner.username == owner.username
    assert [img.image_url for img in created.images] == ["https://img.test/a.jpg"]
    assert [(p.price, p.currency) for p in created.pricing_history] == [(500.0, "USD")]
    assert created.is_wished is False


@pytest.mark.asyncio
async def test_listing_limit_is_enforced(db_session, make_user):
    buyer = await make_user(role=UserRole.RENTER_BUYER)
    for i in range(5):
        await property_service.create_property(db_session, buyer, _listing(title=f"Flat {i}"))

    with pytest.raises(ForbiddenError):
        await property_service.create_property(db_session, buyer, _listing(title="One too many"))
    assert await property_service.count_listings(db_session, buyer.id) == 5


@pytest.mark.asyncio
async def test_unlimited_listing_limit(db_session, make_user):
    seller = await make_user(role=UserRole.PRIVATE_SELLER)
    assert seller.listing_limit == -1
    for i in range(6):
        await property_service.create_property(db_session, seller, _listing(title=f"Flat {i}"))
    assert await property_service.count_listings(db_session, seller.id) == 6


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_price_change_appends_pricing_history(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    prop = await make_property(owner, price=1000.0)

    await property_service.update_property(db_session, owner, prop.id, PropertyUpdate(title="Renamed"))
    updated = await property_service.update_property(
        db_session, owner, prop.id, PropertyUpdate(price=900.0)
    )

    assert updated.title == "Renamed"
    assert updated.price == 900.0
    assert [p.price for p in updated.pricing_history] == [1000.0, 900.0]


@pytest.mark.asyncio
async def test_currency_change_appends_pricing_history(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    prop = await make_property(owner, price=1000.0, currency="USD")

    updated = await property_service.update_property(
        db_session, owner, prop.id, PropertyUpdate(currency="UAH")
    )
    assert [(p.price, p.currency) for p in updated.pricing_history] == [(1000.0, "USD"), (1000.0, "UAH")]


@pytest.mark.asyncio
async def test_images_are_replaced_when_supplied(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    prop = await make_property(owner)

    updated = await property_service.update_property(
        db_session,
        owner,
        prop.id,
        PropertyUpdate(images=[
            PropertyImageIn(image_url="https://img.test/new-1.jpg", is_primary=True),
            PropertyImageIn(image_url="https://img.test/new-2.jpg"),
        ]),
    )
    assert sorted(img.image_url for img in updated.images) == [
        "https://img.test/new-1.jpg",
        "https://img.test/new-2.jpg",
    ]


@pytest.mark.asyncio
async def test_only_owner_or_staff_can_edit(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    stranger = await make_user()
    moderator = await make_user(role=UserRole.MODERATOR)
    prop = await make_property(owner)

    with pytest.raises(ForbiddenError):
        await property_service.update_property(db_session, stranger, prop.id, PropertyUpdate(title="Mine now"))
    with pytest.raises(ForbiddenError):
        await property_service.delete_property(db_session, stranger, prop.id)

    updated = await property_service.update_property(
        db_session, moderator, prop.id, PropertyUpdate(status="inactive")
    )
    assert updated.status.value == "inactive"


@pytest.mark.asyncio
async def test_delete_property_cascades(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    fan = await make_user()
    prop = await make_property(owner)
    db_session.add(WishlistItem(user_id=fan.id, property_id=prop.id))
    await db_session.commit()

    await property_service.delete_property(db_session, owner, prop.id)

    assert (await db_session.execute(select(Property))).first() is None
    assert (await db_session.execute(select(PricingHistory))).first() is None
    assert (await db_session.execute(select(WishlistItem))).first() is None
    with pytest.raises(NotFoundError):
        await property_service.get_property(db_session, prop.id)


# ---------------------------------------------------------------------------
# Queries / verification
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_properties_filters_and_marks_wished(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    viewer = await make_user()
    cheap = await make_property(owner, title="Cheap studio", price=300.0, transaction_type="rent")
    await make_property(owner, title="Country house", price=250000.0, property_type="house")
    db_session.add(WishlistItem(user_id=viewer.id, property_id=cheap.id))
    await db_session.commit()

    rentals = await property_service.list_properties(
        db_session, PropertyFilters(transaction_type="rent"), viewer.id
    )
    assert [p.id for p in rentals] == [cheap.id]
    assert rentals[0].is_wished is True

    houses = await property_service.list_properties(
        db_session, PropertyFilters(property_type="house", min_price=100000), viewer.id
    )
    assert [p.title for p in houses] == ["Country house"]
    assert houses[0].is_wished is False

    searched = await property_service.list_properties(db_session, PropertyFilters(search="studio"))
    assert [p.title for p in searched] == ["Cheap studio"]


@pytest.mark.asyncio
async def test_get_property_unknown(db_session):
    with pytest.raises(NotFoundError):
        await property_service.get_property(db_session, "missing")


@pytest.mark.asyncio
async def test_verify_property_staff_only(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    admin = await make_user(role=UserRole.ADMIN)
    prop = await make_property(owner)

    with pytest.raises(ForbiddenError):
        await property_service.verify_property(db_session, owner, prop.id)

    verified = await property_service.verify_property(
        db_session, admin, prop.id, True, "Documents checked"
    )
    assert verified.is_verified is True
    assert verified.verification_comments == "Documents checked"
