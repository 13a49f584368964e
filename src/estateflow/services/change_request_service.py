"""Change-request service: email change, password change and password reset.

Each request is a single-use token row with a hard expiry. Consuming a
token deletes its row by id and applies the change only if that delete
removed exactly one row, so concurrent confirmations apply it at most once.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.config import get_settings
from estateflow.domain.enums import ChangeType
from estateflow.domain.errors import ConflictError, InvalidOrExpiredTokenError, NotFoundError
from estateflow.domain.models import ChangeRequest, User, as_utc
from estateflow.services import email_service
from estateflow.services.auth_service import hash_password

logger = logging.getLogger(__name__)

CONFIRMABLE_TYPES = (ChangeType.EMAIL.value, ChangeType.PASSWORD.value)


def is_expired(request: ChangeRequest, now: datetime | None = None) -> bool:
    """Expiry is inclusive: a request expiring exactly now is already dead."""
    now = now or datetime.now(timezone.utc)
    return as_utc(request.expires_at) <= now


class ChangeRequestService:
    """Creates and consumes change-request tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ttl = timedelta(hours=get_settings().change_request_ttl_hours)

    async def _get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _email_taken(self, email: str, exclude_user_id: str) -> bool:
        result = await self.db.execute(
            select(User.id).where(User.email == email, User.id != exclude_user_id)
        )
        return result.first() is not None

    async def _create(self, user_id: str, change_type: ChangeType, new_value: str) -> ChangeRequest:
        request = ChangeRequest(
            user_id=user_id,
            type=change_type.value,
            new_value=new_value,
            token=secrets.token_urlsafe(48),
            expires_at=datetime.now(timezone.utc) + self.ttl,
        )
        self.db.add(request)
        await self.db.commit()
        logger.info(
            "Created %s change request %s... for user %s",
            change_type.value, request.token[:8], user_id,
        )
        return request

    async def _find(self, token: str) -> ChangeRequest | None:
        result = await self.db.execute(select(ChangeRequest).where(ChangeRequest.token == token))
        return result.scalar_one_or_none()

    async def _consume(self, request: ChangeRequest) -> None:
        """Delete the row; fail if another caller consumed it first. Caller commits."""
        result = await self.db.execute(
            delete(ChangeRequest).where(ChangeRequest.id == request.id)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidOrExpiredTokenError()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request_email_change(self, user_id: str, new_email: str) -> ChangeRequest:
        """Mail a confirmation link to *new_email*.

        Raises:
            ConflictError: another account already uses the address.
        """
        await self._get_user(user_id)
        if await self._email_taken(new_email, user_id):
            raise ConflictError("Email is already in use")
        request = await self._create(user_id, ChangeType.EMAIL, new_email)
        await email_service.send_change_confirmation_email(new_email, request.token, ChangeType.EMAIL.value)
        return request

    async def request_password_change(self, user_id: str, new_password: str) -> ChangeRequest:
        """Store the hash of *new_password* and mail a confirmation link to the current address."""
        user = await self._get_user(user_id)
        request = await self._create(user_id, ChangeType.PASSWORD, hash_password(new_password))
        await email_service.send_change_confirmation_email(user.email, request.token, ChangeType.PASSWORD.value)
        return request

    async def request_password_reset(self, email: str) -> ChangeRequest | None:
        """Mail a reset link. Unknown addresses are ignored without error."""
        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None
        request = await self._create(user.id, ChangeType.PASSWORD_RESET, "")
        await email_service.send_password_reset_email(user.email, request.token)
        return request

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def confirm_change(self, token: str) -> ChangeType:
        """Apply a pending email or password change exactly once.

        Raises:
            InvalidOrExpiredTokenError: unknown, consumed, expired or reset token.
            ConflictError: the new email was taken after the request was made.
        """
        request = await self._find(token)
        if request is None or request.type not in CONFIRMABLE_TYPES or is_expired(request):
            raise InvalidOrExpiredTokenError()

        user = await self._get_user(request.user_id)
        change_type = ChangeType(request.type)
        if change_type == ChangeType.EMAIL and await self._email_taken(request.new_value, user.id):
            raise ConflictError("Email is already in use")

        await self._consume(request)
        if change_type == ChangeType.EMAIL:
            user.email = request.new_value
        else:
            user.password_hash = request.new_value
        await self.db.commit()

        logger.info("Applied %s change for user %s", change_type.value, user.id)
        return change_type

    async def reset_password(self, token: str, new_password: str) -> None:
        request = await self._find(token)
        if request is None or request.type != ChangeType.PASSWORD_RESET.value or is_expired(request):
            raise InvalidOrExpiredTokenError()

        user = await self._get_user(request.user_id)
        await self._consume(request)
        user.password_hash = hash_password(new_password)
        await self.db.commit()
        logger.info("Password reset for user %s", user.id)
