"""Wishlist routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import get_current_user_dep
from estateflow.domain.errors import NotFoundError
from estateflow.domain.models import User
from estateflow.domain.schemas import StatusMessage, WishlistAdd, WishlistItemResponse
from estateflow.infra.database import get_db
from estateflow.services import wishlist_service

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


@router.get("", response_model=list[WishlistItemResponse])
async def get_wishlist(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await wishlist_service.get_wishlist(db, user.id)


@router.post("", response_model=WishlistItemResponse, status_code=201)
async def add_to_wishlist(
    data: WishlistAdd,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await wishlist_service.add_to_wishlist(db, user.id, data.property_id)


@router.delete("/{property_id}", response_model=StatusMessage)
async def remove_from_wishlist(
    property_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    if not await wishlist_service.remove_from_wishlist(db, user.id, property_id):
        raise NotFoundError("Property is not in the wishlist")
    return StatusMessage(message="Property removed from wishlist")
