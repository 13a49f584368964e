"""User routes: own profile, public profiles, admin management, account changes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import get_current_user_dep, require_role
from estateflow.domain.enums import UserRole
from estateflow.domain.models import User
from estateflow.domain.schemas import (
    AdminUserCreate,
    AdminUserUpdate,
    ChangeEmailRequest,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    PublicProfile,
    ResetPasswordRequest,
    StatusMessage,
    UserResponse,
    UserUpdate,
)
from estateflow.infra.database import get_db
from estateflow.services import user_service
from estateflow.services.change_request_service import ChangeRequestService

router = APIRouter(prefix="/api/user", tags=["user"])

_admin = require_role(UserRole.ADMIN.value)


@router.get("", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user_dep)):
    return user


@router.patch("", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_own_profile(db, user.id, data)


@router.get("/all", response_model=list[UserResponse])
async def list_users(
    admin: User = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db, admin.id)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: AdminUserCreate,
    _user: User = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.admin_create_user(db, data)


# ---------------------------------------------------------------------------
# Email / password changes
# ---------------------------------------------------------------------------


@router.post("/change-email", response_model=StatusMessage)
async def change_email(
    data: ChangeEmailRequest,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    await ChangeRequestService(db).request_email_change(user.id, data.new_email)
    return StatusMessage(message="Confirmation email sent to the new address")


@router.post("/change-password", response_model=StatusMessage)
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    await ChangeRequestService(db).request_password_change(user.id, data.new_password)
    return StatusMessage(message="Confirmation email sent")


@router.get("/confirm-change/{token}", response_model=StatusMessage)
async def confirm_change(token: str, db: AsyncSession = Depends(get_db)):
    change_type = await ChangeRequestService(db).confirm_change(token)
    return StatusMessage(message=f"{change_type.value.capitalize()} updated successfully")


@router.post("/forgot-password", response_model=StatusMessage)
async def forgot_password(data: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    await ChangeRequestService(db).request_password_reset(data.email)
    return StatusMessage(message="If an account exists for this email, a reset link has been sent")


@router.post("/reset-password", response_model=StatusMessage)
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await ChangeRequestService(db).reset_password(data.token, data.new_password)
    return StatusMessage(message="Password has been reset")


# ---------------------------------------------------------------------------
# By id (declared last so the static paths above win)
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_model=PublicProfile)
async def get_public_profile(
    user_id: str,
    _user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_public_profile(db, user_id)


@router.patch("/{user_id}/admin", response_model=UserResponse)
async def admin_update_user(
    user_id: str,
    data: AdminUserUpdate,
    _user: User = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.admin_update_user(db, user_id, data)


@router.delete("/{user_id}/admin", response_model=StatusMessage)
async def admin_delete_user(
    user_id: str,
    _user: User = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, user_id)
    return StatusMessage(message="User deleted")
