"""System prompt registry.

One default prompt exists per audience. The audience is picked from the
user's role through ``ROLE_PROMPTS``; content is edited in place by admins.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.config import get_settings
from estateflow.domain.enums import PromptName, UserRole
from estateflow.domain.errors import ForbiddenError, NotFoundError, ValidationError
from estateflow.domain.models import SystemPrompt, User, utcnow
from estateflow.services.assistant_prompts import default_prompt_text

logger = logging.getLogger(__name__)

ROLE_PROMPTS: dict[UserRole, PromptName] = {
    UserRole.RENTER_BUYER: PromptName.RENTER_BUYER,
    UserRole.MODERATOR: PromptName.RENTER_BUYER,
    UserRole.ADMIN: PromptName.RENTER_BUYER,
    UserRole.PRIVATE_SELLER: PromptName.SELLER_AGENCY,
    UserRole.AGENCY: PromptName.SELLER_AGENCY,
}


def prompt_name_for_role(role: UserRole | str) -> PromptName:
    return ROLE_PROMPTS[UserRole(role)]


async def _load_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_prompt_by_name(db: AsyncSession, name: PromptName | str) -> SystemPrompt | None:
    """Return the default prompt called *name*, or None."""
    if isinstance(name, PromptName):
        name = name.value
    result = await db.execute(
        select(SystemPrompt)
        .where(SystemPrompt.name == name, SystemPrompt.is_default.is_(True))
        .order_by(SystemPrompt.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_default_system_prompt(db: AsyncSession, user_id: str) -> SystemPrompt:
    """Return the default prompt for the user's audience.

    Raises:
        NotFoundError: unknown user, or the audience's prompt is missing.
    """
    user = await _load_user(db, user_id)
    name = prompt_name_for_role(user.role)
    prompt = await get_prompt_by_name(db, name)
    if prompt is None:
        raise NotFoundError("Default system prompt not found", prompt_name=name.value)
    return prompt


async def list_system_prompts(db: AsyncSession) -> list[SystemPrompt]:
    result = await db.execute(select(SystemPrompt).order_by(SystemPrompt.name))
    return list(result.scalars().all())


async def update_system_prompt(
    db: AsyncSession,
    user_id: str,
    name: str,
    new_content: str,
) -> SystemPrompt:
    """Replace the content of the prompt called *name*. Admin only."""
    if not name or not new_content or not new_content.strip():
        raise ValidationError("Missing required parameters: name or newContent")

    user = await _load_user(db, user_id)
    if user.role != UserRole.ADMIN.value:
        raise ForbiddenError("Only admins can update system prompts")

    result = await db.execute(select(SystemPrompt).where(SystemPrompt.name == name))
    prompts = list(result.scalars().all())
    if not prompts:
        raise NotFoundError("System prompt not found", prompt_name=name)

    now = utcnow()
    for prompt in prompts:
        prompt.content = new_content
        prompt.updated_at = now
    await db.commit()

    logger.info("System prompt %s updated by %s", name, user_id)
    return prompts[0]


async def seed_default_prompts(db: AsyncSession) -> int:
    """Insert any missing default prompts. Returns the number created."""
    frontend_url = get_settings().frontend_url
    created = 0
    for name in PromptName:
        if await get_prompt_by_name(db, name) is not None:
            continue
        db.add(
            SystemPrompt(
                name=name.value,
                content=default_prompt_text(name, frontend_url),
                is_default=True,
            )
        )
        created += 1
    if created:
        await db.commit()
        logger.info("Seeded %d default system prompt(s)", created)
    return created
