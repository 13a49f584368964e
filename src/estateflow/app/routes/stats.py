"""Statistics routes for moderators and admins.

Dates are ISO ``YYYY-MM-DD``; FastAPI rejects malformed values with 422.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import require_role
from estateflow.domain.enums import UserRole
from estateflow.domain.errors import ValidationError
from estateflow.infra.database import get_db
from estateflow.services import statistics_service

router = APIRouter(
    prefix="/api/stats",
    tags=["stats"],
    dependencies=[Depends(require_role(UserRole.MODERATOR.value, UserRole.ADMIN.value))],
)


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationError("startDate must not be after endDate")


@router.get("/listings-by-region")
async def listings_by_region(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    return await statistics_service.property_count_by_region(db, start_date, end_date)


@router.get("/price-stats-by-region")
async def price_stats_by_region(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    return await statistics_service.price_stats_by_region(db, start_date, end_date)


@router.get("/top-regions")
async def top_regions(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    limit: int = Query(5, ge=1, le=24),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    return await statistics_service.top_regions(db, start_date, end_date, limit)


@router.get("/average-price-growth")
async def average_price_growth(
    previous_start: date = Query(alias="previousStart"),
    previous_end: date = Query(alias="previousEnd"),
    current_start: date = Query(alias="currentStart"),
    current_end: date = Query(alias="currentEnd"),
    db: AsyncSession = Depends(get_db),
):
    _check_range(previous_start, previous_end)
    _check_range(current_start, current_end)
    return await statistics_service.average_price_growth(
        db, previous_start, previous_end, current_start, current_end
    )


@router.get("/property-views/{property_id}")
async def property_views(
    property_id: str,
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    views = await statistics_service.property_view_count(db, property_id, start_date, end_date)
    return {"propertyId": property_id, "views": views}


@router.get("/total-sales")
async def total_sales(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    return await statistics_service.total_sales(db, start_date, end_date)


@router.get("/top-viewed")
async def top_viewed(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    return await statistics_service.top_viewed_properties(db, start_date, end_date, limit)


@router.get("/new-users")
async def new_users(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    _check_range(start_date, end_date)
    return await statistics_service.new_users_stats(db, start_date, end_date)
