"""Property listing routes."""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import get_current_user_dep, get_optional_user_dep, require_role
from estateflow.domain.enums import PropertyStatus, PropertyType, TransactionType, UserRole
from estateflow.domain.models import User
from estateflow.domain.schemas import PropertyCreate, PropertyResponse, PropertyUpdate, PropertyVerify
from estateflow.infra.database import get_db
from estateflow.services import property_service
from estateflow.services.property_service import PropertyFilters

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.get("", response_model=list[PropertyResponse])
async def list_properties(
    property_type: PropertyType | None = Query(None, alias="propertyType"),
    transaction_type: TransactionType | None = Query(None, alias="transactionType"),
    status: PropertyStatus | None = None,
    min_price: float | None = Query(None, alias="minPrice"),
    max_price: float | None = Query(None, alias="maxPrice"),
    min_size: float | None = Query(None, alias="minSize"),
    max_size: float | None = Query(None, alias="maxSize"),
    rooms: int | None = None,
    owner_id: str | None = Query(None, alias="ownerId"),
    is_verified: bool | None = Query(None, alias="isVerified"),
    search: str | None = None,
    viewer: User | None = Depends(get_optional_user_dep),
    db: AsyncSession = Depends(get_db),
):
    filters = PropertyFilters(
        property_type=property_type.value if property_type else None,
        transaction_type=transaction_type.value if transaction_type else None,
        status=status.value if status else None,
        min_price=min_price,
        max_price=max_price,
        min_size=min_size,
        max_size=max_size,
        rooms=rooms,
        owner_id=owner_id,
        is_verified=is_verified,
        search=search,
    )
    return await property_service.list_properties(db, filters, viewer.id if viewer else None)


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: str,
    viewer: User | None = Depends(get_optional_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await property_service.get_property(db, property_id, viewer.id if viewer else None)


@router.post("", response_model=PropertyResponse, status_code=201)
async def create_property(
    data: PropertyCreate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await property_service.create_property(db, user, data)


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: str,
    data: PropertyUpdate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await property_service.update_property(db, user, property_id, data)


@router.delete("/{property_id}", status_code=204)
async def delete_property(
    property_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    await property_service.delete_property(db, user, property_id)
    return Response(status_code=204)


@router.patch("/{property_id}/verify", response_model=PropertyResponse)
async def verify_property(
    property_id: str,
    data: PropertyVerify,
    user: User = Depends(require_role(UserRole.MODERATOR.value, UserRole.ADMIN.value)),
    db: AsyncSession = Depends(get_db),
):
    return await property_service.verify_property(
        db, user, property_id, data.is_verified, data.verification_comments
    )
