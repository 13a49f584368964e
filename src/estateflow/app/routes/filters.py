"""Filter option routes. Empty results answer 404 with ``success: false``."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.infra.database import get_db
from estateflow.services import filters_service

router = APIRouter(prefix="/api/filters", tags=["filters"])


def _respond(data: dict | None, empty_message: str):
    if data is None:
        return JSONResponse(status_code=404, content={"success": False, "message": empty_message})
    return {"success": True, "data": data}


@router.get("/price-range")
async def price_range(db: AsyncSession = Depends(get_db)):
    return _respond(await filters_service.get_price_range(db), "No prices available")


@router.get("/area-range")
async def area_range(db: AsyncSession = Depends(get_db)):
    return _respond(await filters_service.get_area_range(db), "No areas available")


@router.get("/rooms")
async def rooms(db: AsyncSession = Depends(get_db)):
    return _respond(await filters_service.get_rooms(db), "No rooms available")


@router.get("/transaction-types")
async def transaction_types(db: AsyncSession = Depends(get_db)):
    return _respond(await filters_service.get_transaction_types(db), "No transaction types available")


@router.get("/property-types")
async def property_types(db: AsyncSession = Depends(get_db)):
    return _respond(await filters_service.get_property_types(db), "No property types available")
