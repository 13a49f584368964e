"""Property view tracking route."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import get_current_user_dep
from estateflow.domain.models import User
from estateflow.domain.schemas import StatusMessage, ViewCreate
from estateflow.infra.database import get_db
from estateflow.services import view_service

router = APIRouter(prefix="/api/views", tags=["views"])


@router.post("", response_model=StatusMessage)
async def view_property(
    data: ViewCreate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    await view_service.record_view(db, user.id, data.property_id)
    return StatusMessage(message="View recorded")
