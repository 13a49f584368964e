"""Tests for filter option lookups and marketplace statistics."""

from datetime import date, datetime, timezone

import pytest

from estateflow.domain.enums import UserRole
from estateflow.domain.models import PropertyView
from estateflow.services import filters_service, statistics_service
from estateflow.services.statistics_service import UKRAINE_REGIONS, day_bounds


def _at(day: int, month: int = 3) -> datetime:
    return datetime(2026, month, day, 12, 0, tzinfo=timezone.utc)


KYIV = "Київська обл., Київ, вул. Хрещатик 1"
LVIV = "Львівська обл., Львів, пл. Ринок 5"
ODESA = "Одеська обл., Одеса, вул. Дерибасівська 3"


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_filters_empty_market(db_session):
    assert await filters_service.get_price_range(db_session) is None
    assert await filters_service.get_area_range(db_session) is None
    assert await filters_service.get_rooms(db_session) is None
    assert await filters_service.get_transaction_types(db_session) is None
    assert await filters_service.get_property_types(db_session) is None


@pytest.mark.asyncio
async def test_filters_cover_active_listings_only(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    await make_property(owner, price=400.0, size=30.0, rooms=1, transaction_type="rent")
    await make_property(owner, price=90000.0, size=120.0, rooms=4, property_type="house")
    await make_property(owner, price=1.0, size=None, rooms=None)
    await make_property(owner, price=999999.0, rooms=9, status="sold")

    assert await filters_service.get_price_range(db_session) == {"minPrice": 1.0, "maxPrice": 90000.0}
    assert await filters_service.get_area_range(db_session) == {"minArea": 0, "maxArea": 120.0}
    assert await filters_service.get_rooms(db_session) == {"rooms": [1, 4]}
    assert await filters_service.get_transaction_types(db_session) == {"transactionTypes": ["rent", "sale"]}
    assert await filters_service.get_property_types(db_session) == {"propertyTypes": ["apartment", "house"]}


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def test_day_bounds_cover_whole_end_day():
    lower, upper = day_bounds(date(2026, 3, 1), date(2026, 3, 31))
    assert lower == datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
    assert upper.date() == date(2026, 3, 31)
    assert (upper.hour, upper.minute, upper.second) == (23, 59, 59)


def test_all_oblasts_listed():
    assert len(UKRAINE_REGIONS) == 24
    assert "Київська" in UKRAINE_REGIONS


@pytest.mark.asyncio
async def test_property_count_and_price_stats_by_region(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.AGENCY)
    await make_property(owner, address=KYIV, price=100.0, created_at=_at(1))
    await make_property(owner, address=KYIV, price=300.0, created_at=_at(31))
    await make_property(owner, address=LVIV, price=50.0, created_at=_at(15))
    await make_property(owner, address=KYIV, price=1000.0, created_at=_at(1, month=4))

    counts = await statistics_service.property_count_by_region(db_session, date(2026, 3, 1), date(2026, 3, 31))
    by_region = {item["region"]: item["total"] for item in counts}
    assert len(counts) == 24
    assert by_region["Київська"] == 2
    assert by_region["Львівська"] == 1
    assert by_region["Одеська"] == 0

    stats = await statistics_service.price_stats_by_region(db_session, date(2026, 3, 1), date(2026, 3, 31))
    kyiv = next(item for item in stats if item["region"] == "Київська")
    assert (kyiv["min"], kyiv["max"], kyiv["avg"]) == (100.0, 300.0, 200.0)
    odesa = next(item for item in stats if item["region"] == "Одеська")
    assert odesa["avg"] is None

    top = await statistics_service.top_regions(db_session, date(2026, 3, 1), date(2026, 3, 31), limit=2)
    assert [item["region"] for item in top] == ["Київська", "Львівська"]


@pytest.mark.asyncio
async def test_average_price_growth(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.AGENCY)
    await make_property(owner, address=ODESA, price=100.0, created_at=_at(5, month=1))
    await make_property(owner, address=ODESA, price=150.0, created_at=_at(5, month=2))

    growth = await statistics_service.average_price_growth(
        db_session,
        date(2026, 1, 1), date(2026, 1, 31),
        date(2026, 2, 1), date(2026, 2, 28),
    )
    odesa = next(item for item in growth if item["region"] == "Одеська")
    assert odesa["previousAvg"] == 100.0
    assert odesa["currentAvg"] == 150.0
    assert odesa["growthPercent"] == pytest.approx(50.0)

    kyiv = next(item for item in growth if item["region"] == "Київська")
    assert kyiv["growthPercent"] is None


@pytest.mark.asyncio
async def test_views_and_top_viewed(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    viewers = [await make_user() for _ in range(3)]
    popular = await make_property(owner, title="Popular")
    quiet = await make_property(owner, title="Quiet")

    for viewer in viewers:
        db_session.add(PropertyView(user_id=viewer.id, property_id=popular.id, viewed_at=_at(10)))
    db_session.add(PropertyView(user_id=viewers[0].id, property_id=quiet.id, viewed_at=_at(10)))
    db_session.add(PropertyView(user_id=viewers[1].id, property_id=quiet.id, viewed_at=_at(10, month=5)))
    await db_session.commit()

    march = (date(2026, 3, 1), date(2026, 3, 31))
    assert await statistics_service.property_view_count(db_session, popular.id, *march) == 3
    assert await statistics_service.property_view_count(db_session, quiet.id, *march) == 1

    top = await statistics_service.top_viewed_properties(db_session, *march)
    assert [(item["title"], item["viewCount"]) for item in top] == [("Popular", 3), ("Quiet", 1)]


@pytest.mark.asyncio
async def test_total_sales_counts_sold_and_rented(db_session, make_user, make_property):
    owner = await make_user(role=UserRole.AGENCY)
    await make_property(owner, price=1000.0, status="sold", updated_at=_at(3))
    await make_property(owner, price=200.0, status="rented", updated_at=_at(31))
    await make_property(owner, price=5000.0, status="active", updated_at=_at(3))
    await make_property(owner, price=7000.0, status="sold", updated_at=_at(3, month=4))

    totals = await statistics_service.total_sales(db_session, date(2026, 3, 1), date(2026, 3, 31))
    assert totals == {"totalSales": 2, "totalAmount": 1200.0}


@pytest.mark.asyncio
async def test_new_users_stats(db_session, make_user):
    await make_user(role=UserRole.RENTER_BUYER)
    await make_user(role=UserRole.RENTER_BUYER)
    await make_user(role=UserRole.PRIVATE_SELLER)
    await make_user(role=UserRole.ADMIN)

    today = datetime.now(timezone.utc).date()
    stats = await statistics_service.new_users_stats(db_session, today, today)
    assert stats == {"newBuyers": 2, "newSellers": 1, "newAgencies": 0}
