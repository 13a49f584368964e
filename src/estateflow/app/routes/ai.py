"""AI assistant routes: system prompts and the user's conversation."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import get_current_user_dep, require_role
from estateflow.domain.enums import UserRole
from estateflow.domain.models import User
from estateflow.domain.schemas import (
    ChatMessageResponse,
    ConversationCreate,
    ConversationResponse,
    CreateConversationResponse,
    HistoryResponse,
    SendMessageRequest,
    SendMessageResponse,
    SystemPromptResponse,
    SystemPromptUpdate,
)
from estateflow.infra.database import get_db
from estateflow.services import system_prompt_service
from estateflow.services.conversation_service import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.get("/system-prompt", response_model=SystemPromptResponse)
async def get_system_prompt(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await system_prompt_service.get_default_system_prompt(db, user.id)


@router.get("/system-prompts", response_model=list[SystemPromptResponse])
async def list_system_prompts(
    _admin: User = Depends(require_role(UserRole.ADMIN.value)),
    db: AsyncSession = Depends(get_db),
):
    return await system_prompt_service.list_system_prompts(db)


@router.put("/system-prompt", response_model=SystemPromptResponse)
async def update_system_prompt(
    data: SystemPromptUpdate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await system_prompt_service.update_system_prompt(db, user.id, data.name, data.new_content)


@router.post("/conversations", response_model=CreateConversationResponse, status_code=201)
async def create_conversation(
    data: ConversationCreate | None = None,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    created = await ConversationService(db).create_conversation(
        user.id, data.title if data else None
    )
    return CreateConversationResponse(
        message="Conversation created successfully",
        conversation=ConversationResponse.model_validate(created.conversation),
        initial_message=ChatMessageResponse.model_validate(created.initial_message),
        welcome_message=ChatMessageResponse.model_validate(created.welcome_message),
    )


@router.get("/conversations/history", response_model=HistoryResponse)
async def conversation_history(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    messages = await ConversationService(db).get_conversation_history(user.id)
    return HistoryResponse(messages=[ChatMessageResponse.model_validate(m) for m in messages])


@router.get("/conversations/visible-history", response_model=HistoryResponse)
async def visible_conversation_history(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    messages = await ConversationService(db).get_visible_conversation_history(user.id)
    return HistoryResponse(messages=[ChatMessageResponse.model_validate(m) for m in messages])


@router.post("/conversations/{conversation_id}/messages", response_model=SendMessageResponse)
async def send_message(
    conversation_id: str,
    data: SendMessageRequest,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    exchange = await ConversationService(db).send_message(user.id, data.message, conversation_id)
    return SendMessageResponse(
        message="Message sent successfully",
        user_message=ChatMessageResponse.model_validate(exchange.user_message),
        ai_response=ChatMessageResponse.model_validate(exchange.ai_message),
    )
