"""AI assistant conversation management.

A user has at most one active conversation. It is seeded with a hidden
system message (role prompt plus a snapshot of active listings) and a
visible welcome message, and both form the opening exchange of a Gemini
chat session. Sessions live in ``ChatSessionCache``; when one is missing
it is rebuilt from the persisted messages.

Message indexes are never stored: every read numbers messages by their
position in creation order.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from estateflow.domain.enums import MessageSender, ModelRole, PromptName, PropertyStatus
from estateflow.domain.errors import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from estateflow.domain.models import Conversation, Message, Property, User, utcnow
from estateflow.infra import gemini_client
from estateflow.services.assistant_prompts import WELCOME_MESSAGES
from estateflow.services.chat_sessions import ChatSessionCache, chat_sessions
from estateflow.services.system_prompt_service import get_default_system_prompt

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Property Analysis Chat"
NO_PROPERTIES_NOTE = "No active properties are currently listed."

# Stored sender -> Gemini history role
SENDER_ROLES: dict[str, ModelRole] = {
    MessageSender.SYSTEM.value: ModelRole.USER,
    MessageSender.USER.value: ModelRole.USER,
    MessageSender.AI.value: ModelRole.MODEL,
}


@dataclass(frozen=True)
class IndexedMessage:
    """A message annotated with its position in the conversation."""

    id: str
    conversation_id: str
    sender: str
    content: str
    is_visible: bool
    property_id: str | None
    token_count: int | None
    created_at: datetime
    index: int

    @classmethod
    def from_row(cls, message: Message, index: int) -> "IndexedMessage":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            sender=message.sender,
            content=message.content,
            is_visible=message.is_visible,
            property_id=message.property_id,
            token_count=message.token_count,
            created_at=message.created_at,
            index=index,
        )


@dataclass(frozen=True)
class CreatedConversation:
    conversation: Conversation
    initial_message: IndexedMessage
    welcome_message: IndexedMessage


@dataclass(frozen=True)
class MessageExchange:
    user_message: IndexedMessage
    ai_message: IndexedMessage


def _fmt(value, suffix: str = "") -> str:
    if value is None or value == "":
        return "Unknown"
    return f"{value}{suffix}"


def format_property_summary(prop: Property) -> str:
    """Render one listing as the plain-text block fed to the model."""
    if prop.pricing_history:
        history = ", ".join(
            f"{entry.price} {entry.currency} on {entry.effective_date.isoformat()}"
            for entry in prop.pricing_history
        )
    else:
        history = "None"
    price = f"{prop.price} {prop.currency}" if prop.price is not None else "Unknown"
    return "\n".join([
        f"- ID: {prop.id}",
        f"  Title: {_fmt(prop.title)}",
        f"  Type: {_fmt(prop.property_type)}",
        f"  Transaction: {_fmt(prop.transaction_type)}",
        f"  Price: {price}",
        f"  Size: {_fmt(prop.size, ' sqm')}",
        f"  Rooms: {_fmt(prop.rooms)}",
        f"  Address: {_fmt(prop.address)}",
        f"  Status: {_fmt(prop.status)}",
        f"  Is Verified: {'Yes' if prop.is_verified else 'No'}",
        f"  Images: {len(prop.images)} images",
        f"  Pricing History: {history}",
    ])


def build_seed_message(prompt_content: str, properties: list[Property]) -> str:
    if properties:
        summary = "\n\n".join(format_property_summary(p) for p in properties)
    else:
        summary = NO_PROPERTIES_NOTE
    return f"{prompt_content.strip()}\n\n### Available Properties:\n{summary}"


def _history_from_messages(messages: list[Message]) -> list[dict]:
    return [
        gemini_client.to_history_entry(SENDER_ROLES[m.sender].value, m.content)
        for m in messages
    ]


def _token_count(response) -> int | None:
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return None
    count = getattr(usage, "candidates_token_count", None)
    return count if isinstance(count, int) else None


class ConversationService:
    """Conversation lifecycle for the AI assistant."""

    def __init__(self, db: AsyncSession, sessions: ChatSessionCache | None = None):
        self.db = db
        self.sessions = sessions if sessions is not None else chat_sessions

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_active_conversation(self, user_id: str) -> Conversation | None:
        result = await self.db.execute(
            select(Conversation).where(
                Conversation.user_id == user_id,
                Conversation.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def _require_active_conversation(self, user_id: str) -> Conversation:
        conversation = await self.get_active_conversation(user_id)
        if conversation is None:
            raise NotFoundError("No active conversation found")
        return conversation

    async def _ordered_messages(
        self,
        conversation_id: str,
        visible_only: bool = False,
    ) -> list[Message]:
        stmt = select(Message).where(Message.conversation_id == conversation_id)
        if visible_only:
            stmt = stmt.where(Message.is_visible.is_(True))
        stmt = stmt.order_by(Message.created_at, Message.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _active_properties(self) -> list[Property]:
        result = await self.db.execute(
            select(Property)
            .where(Property.status == PropertyStatus.ACTIVE.value)
            .options(selectinload(Property.images), selectinload(Property.pricing_history))
            .order_by(Property.created_at)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_conversation(
        self,
        user_id: str,
        title: str | None = None,
    ) -> CreatedConversation:
        """Open the user's conversation and start its chat session.

        Raises:
            NotFoundError: unknown user or missing default prompt.
            ConflictError: the user already has an active conversation.
        """
        await self._get_user(user_id)
        if await self.get_active_conversation(user_id) is not None:
            raise ConflictError("User already has an active conversation")

        prompt = await get_default_system_prompt(self.db, user_id)
        properties = await self._active_properties()
        seed_text = build_seed_message(prompt.content, properties)
        welcome_text = WELCOME_MESSAGES[PromptName(prompt.name)]

        now = utcnow()
        conversation = Conversation(
            user_id=user_id,
            system_prompt_id=prompt.id,
            title=title or DEFAULT_TITLE,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(conversation)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already has an active conversation")

        seed = Message(
            conversation_id=conversation.id,
            sender=MessageSender.SYSTEM.value,
            content=seed_text,
            is_visible=False,
            created_at=now,
        )
        welcome = Message(
            conversation_id=conversation.id,
            sender=MessageSender.AI.value,
            content=welcome_text,
            is_visible=True,
            created_at=now + timedelta(microseconds=1),
        )
        self.db.add_all([seed, welcome])
        await self.db.commit()

        session = gemini_client.get_model().start_chat(history=[
            gemini_client.to_history_entry(ModelRole.USER.value, seed_text),
            gemini_client.to_history_entry(ModelRole.MODEL.value, welcome_text),
        ])
        self.sessions.put(conversation.id, session)

        logger.info(
            "Created conversation %s for user %s (%d active properties)",
            conversation.id, user_id, len(properties),
        )
        return CreatedConversation(
            conversation=conversation,
            initial_message=IndexedMessage.from_row(seed, 0),
            welcome_message=IndexedMessage.from_row(welcome, 1),
        )

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    async def _get_or_rebuild_session(self, conversation_id: str, exclude_id: str):
        session = self.sessions.get(conversation_id)
        if session is not None:
            return session

        prior = [
            m for m in await self._ordered_messages(conversation_id)
            if m.id != exclude_id
        ]
        session = gemini_client.get_model().start_chat(history=_history_from_messages(prior))
        self.sessions.put(conversation_id, session)
        logger.info(
            "Rebuilt chat session for conversation %s from %d messages",
            conversation_id, len(prior),
        )
        return session

    async def send_message(
        self,
        user_id: str,
        text: str,
        conversation_id: str | None = None,
    ) -> MessageExchange:
        """Send *text* to the assistant within the user's active conversation.

        Raises:
            ValidationError: blank text.
            NotFoundError: no active conversation, or *conversation_id* is not it.
            ExternalServiceError: the model call failed. The user message stays stored.
        """
        if not text or not text.strip():
            raise ValidationError("Message text is required")

        conversation = await self._require_active_conversation(user_id)
        if conversation_id is not None and conversation_id != conversation.id:
            raise NotFoundError("Conversation not found")

        async with self.sessions.lock(conversation.id):
            user_message = Message(
                conversation_id=conversation.id,
                sender=MessageSender.USER.value,
                content=text,
                is_visible=True,
                created_at=utcnow(),
            )
            self.db.add(user_message)
            await self.db.commit()

            session = await self._get_or_rebuild_session(conversation.id, user_message.id)
            try:
                response = await session.send_message_async(text)
                reply = response.text
            except Exception as exc:
                self.sessions.evict(conversation.id)
                logger.exception("Gemini call failed for conversation %s", conversation.id)
                raise ExternalServiceError("AI service failed to respond") from exc

            now = max(utcnow(), user_message.created_at + timedelta(microseconds=1))
            ai_message = Message(
                conversation_id=conversation.id,
                sender=MessageSender.AI.value,
                content=reply,
                is_visible=True,
                token_count=_token_count(response),
                created_at=now,
            )
            self.db.add(ai_message)
            conversation.updated_at = now
            await self.db.commit()

        ordered_ids = [m.id for m in await self._ordered_messages(conversation.id)]
        return MessageExchange(
            user_message=IndexedMessage.from_row(user_message, ordered_ids.index(user_message.id)),
            ai_message=IndexedMessage.from_row(ai_message, ordered_ids.index(ai_message.id)),
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_conversation_history(self, user_id: str) -> list[IndexedMessage]:
        conversation = await self._require_active_conversation(user_id)
        messages = await self._ordered_messages(conversation.id)
        return [IndexedMessage.from_row(m, i) for i, m in enumerate(messages)]

    async def get_visible_conversation_history(self, user_id: str) -> list[IndexedMessage]:
        """Messages shown to the user; hidden seed messages are left out."""
        conversation = await self._require_active_conversation(user_id)
        messages = await self._ordered_messages(conversation.id, visible_only=True)
        return [IndexedMessage.from_row(m, i) for i, m in enumerate(messages)]
