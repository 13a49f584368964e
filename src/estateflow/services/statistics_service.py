"""Marketplace statistics for moderators and admins.

Region statistics match each Ukrainian oblast name against the listing
address. Date ranges are inclusive: the end date covers its whole day.
"""

from datetime import date, datetime, time, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.domain.enums import PropertyStatus, UserRole
from estateflow.domain.models import Property, PropertyView, User

UKRAINE_REGIONS = [
    "Вінницька",
    "Волинська",
    "Дніпропетровська",
    "Донецька",
    "Житомирська",
    "Закарпатська",
    "Запорізька",
    "Івано-Франківська",
    "Київська",
    "Кіровоградська",
    "Луганська",
    "Львівська",
    "Миколаївська",
    "Одеська",
    "Полтавська",
    "Рівненська",
    "Сумська",
    "Тернопільська",
    "Харківська",
    "Херсонська",
    "Хмельницька",
    "Черкаська",
    "Чернівецька",
    "Чернігівська",
]


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Return [start 00:00, end 23:59:59.999999] in UTC."""
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time.max, tzinfo=timezone.utc),
    )


def _in_region(region: str):
    return Property.address.ilike(f"%{region}%")


def _created_between(start: date, end: date):
    lower, upper = day_bounds(start, end)
    return Property.created_at.between(lower, upper)


async def property_count_by_region(db: AsyncSession, start: date, end: date) -> list[dict]:
    results = []
    for region in UKRAINE_REGIONS:
        total = await db.scalar(
            select(func.count(Property.id)).where(_created_between(start, end), _in_region(region))
        )
        results.append({"region": region, "total": total or 0})
    return results


async def price_stats_by_region(db: AsyncSession, start: date, end: date) -> list[dict]:
    results = []
    for region in UKRAINE_REGIONS:
        row = (
            await db.execute(
                select(func.min(Property.price), func.max(Property.price), func.avg(Property.price))
                .where(_created_between(start, end), _in_region(region))
            )
        ).one()
        results.append({"region": region, "min": row[0], "max": row[1], "avg": row[2]})
    return results


async def top_regions(db: AsyncSession, start: date, end: date, limit: int = 5) -> list[dict]:
    counts = await property_count_by_region(db, start, end)
    counts.sort(key=lambda item: item["total"], reverse=True)
    return counts[:limit]


async def _average_price(db: AsyncSession, region: str, start: date, end: date) -> float | None:
    return await db.scalar(
        select(func.avg(Property.price)).where(_created_between(start, end), _in_region(region))
    )


async def average_price_growth(
    db: AsyncSession,
    previous_start: date,
    previous_end: date,
    current_start: date,
    current_end: date,
) -> list[dict]:
    """Average listing price per region in two periods and the growth in percent."""
    results = []
    for region in UKRAINE_REGIONS:
        previous_avg = await _average_price(db, region, previous_start, previous_end)
        current_avg = await _average_price(db, region, current_start, current_end)
        growth = None
        if previous_avg and current_avg is not None:
            growth = (current_avg - previous_avg) / previous_avg * 100
        results.append({
            "region": region,
            "previousAvg": previous_avg,
            "currentAvg": current_avg,
            "growthPercent": growth,
        })
    return results


async def property_view_count(db: AsyncSession, property_id: str, start: date, end: date) -> int:
    lower, upper = day_bounds(start, end)
    count = await db.scalar(
        select(func.count(PropertyView.id)).where(
            PropertyView.property_id == property_id,
            PropertyView.viewed_at.between(lower, upper),
        )
    )
    return count or 0


async def total_sales(db: AsyncSession, start: date, end: date) -> dict:
    """Listings marked sold or rented within the range and their summed price."""
    lower, upper = day_bounds(start, end)
    row = (
        await db.execute(
            select(func.count(Property.id), func.coalesce(func.sum(Property.price), 0)).where(
                Property.updated_at.between(lower, upper),
                Property.status.in_([PropertyStatus.SOLD.value, PropertyStatus.RENTED.value]),
            )
        )
    ).one()
    return {"totalSales": row[0] or 0, "totalAmount": float(row[1] or 0)}


async def top_viewed_properties(db: AsyncSession, start: date, end: date, limit: int = 10) -> list[dict]:
    lower, upper = day_bounds(start, end)
    view_count = func.count(PropertyView.id).label("view_count")
    stmt = (
        select(Property.id, Property.title, Property.price, Property.address, view_count)
        .outerjoin(
            PropertyView,
            (PropertyView.property_id == Property.id) & PropertyView.viewed_at.between(lower, upper),
        )
        .group_by(Property.id, Property.title, Property.price, Property.address)
        .order_by(view_count.desc(), Property.created_at)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    return [
        {"id": r.id, "title": r.title, "price": r.price, "address": r.address, "viewCount": r.view_count}
        for r in rows
    ]


async def new_users_stats(db: AsyncSession, start: date, end: date) -> dict:
    lower, upper = day_bounds(start, end)

    def by_role(role: UserRole):
        return func.count(case((User.role == role.value, 1)))

    row = (
        await db.execute(
            select(
                by_role(UserRole.RENTER_BUYER),
                by_role(UserRole.PRIVATE_SELLER),
                by_role(UserRole.AGENCY),
            ).where(User.created_at.between(lower, upper))
        )
    ).one()
    return {"newBuyers": row[0], "newSellers": row[1], "newAgencies": row[2]}
