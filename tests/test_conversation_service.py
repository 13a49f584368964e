"""Tests for the AI assistant conversation lifecycle.

Covers:
- Conversation creation: hidden seed message, welcome message, session start
- One active conversation per user, enforced by a partial unique index
- Sending messages: persistence, read-time indexes, session rebuild
- Model failures: session eviction, user message kept
- History and visible history ordering
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import select

from estateflow.domain.enums import MessageSender, PromptName, UserRole
from estateflow.domain.errors import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from estateflow.domain.models import Conversation
from estateflow.services.assistant_prompts import WELCOME_MESSAGES
from estateflow.services.conversation_service import (
    DEFAULT_TITLE,
    NO_PROPERTIES_NOTE,
    ConversationService,
    build_seed_message,
)
from estateflow.services.system_prompt_service import get_prompt_by_name


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_conversation_seeds_prompt_and_welcome(
    db_session, make_user, make_property, seeded_prompts, fake_gemini, chat_cache,
):
    owner = await make_user(role=UserRole.PRIVATE_SELLER)
    prop = await make_property(owner, title="Loft near the river")
    await make_property(owner, title="Old house", status="sold")
    user = await make_user()

    created = await ConversationService(db_session, chat_cache).create_conversation(user.id)

    assert created.conversation.title == DEFAULT_TITLE
    assert created.conversation.is_active is True

    seed = created.initial_message
    assert seed.sender == MessageSender.SYSTEM.value
    assert seed.is_visible is False
    assert seed.index == 0
    assert "### Available Properties:" in seed.content
    assert prop.id in seed.content
    assert "Loft near the river" in seed.content
    assert "Old house" not in seed.content

    welcome = created.welcome_message
    assert welcome.sender == MessageSender.AI.value
    assert welcome.is_visible is True
    assert welcome.index == 1
    assert welcome.content == WELCOME_MESSAGES[PromptName.RENTER_BUYER]

    assert created.conversation.id in chat_cache
    session = fake_gemini.sessions[0]
    assert session.history == [
        {"role": "user", "parts": [seed.content]},
        {"role": "model", "parts": [welcome.content]},
    ]


@pytest.mark.asyncio
async def test_create_conversation_uses_custom_title(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    created = await ConversationService(db_session, chat_cache).create_conversation(
        user.id, title="Flat hunting"
    )
    assert created.conversation.title == "Flat hunting"


@pytest.mark.asyncio
async def test_create_conversation_without_properties_notes_empty_market(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    created = await ConversationService(db_session, chat_cache).create_conversation(user.id)
    assert created.initial_message.content.endswith(NO_PROPERTIES_NOTE)


@pytest.mark.asyncio
async def test_seller_roles_get_seller_prompt(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    agency = await make_user(role=UserRole.AGENCY)
    created = await ConversationService(db_session, chat_cache).create_conversation(agency.id)

    prompt = await get_prompt_by_name(db_session, PromptName.SELLER_AGENCY)
    assert created.conversation.system_prompt_id == prompt.id
    assert created.welcome_message.content == WELCOME_MESSAGES[PromptName.SELLER_AGENCY]
    assert created.initial_message.content.startswith(prompt.content.strip())


@pytest.mark.asyncio
async def test_second_active_conversation_conflicts(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    await service.create_conversation(user.id)

    with pytest.raises(ConflictError):
        await service.create_conversation(user.id)

    assert len(fake_gemini.sessions) == 1


@pytest.mark.asyncio
async def test_racing_create_hits_unique_index(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    """A second insert that slips past the active-conversation check still conflicts."""
    user = await make_user()
    user_id = user.id
    service = ConversationService(db_session, chat_cache)
    first = await service.create_conversation(user_id)
    first_id = first.conversation.id

    with patch.object(service, "get_active_conversation", AsyncMock(return_value=None)):
        with pytest.raises(ConflictError):
            await service.create_conversation(user_id)

    result = await db_session.execute(
        select(Conversation.id).where(Conversation.user_id == user_id)
    )
    assert result.scalars().all() == [first_id]
    assert len(fake_gemini.sessions) == 1
    assert len(chat_cache) == 1


@pytest.mark.asyncio
async def test_create_conversation_unknown_user(db_session, seeded_prompts, fake_gemini, chat_cache):
    with pytest.raises(NotFoundError):
        await ConversationService(db_session, chat_cache).create_conversation("missing-user")


@pytest.mark.asyncio
async def test_create_conversation_without_default_prompt(
    db_session, make_user, fake_gemini, chat_cache,
):
    user = await make_user()
    with pytest.raises(NotFoundError):
        await ConversationService(db_session, chat_cache).create_conversation(user.id)


def test_build_seed_message_joins_prompt_and_summary():
    text = build_seed_message("  You are helpful.  \n", [])
    assert text == f"You are helpful.\n\n### Available Properties:\n{NO_PROPERTIES_NOTE}"


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_message_persists_exchange_with_indexes(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    created = await service.create_conversation(user.id)
    fake_gemini.replies.append("I found two flats for you.")

    exchange = await service.send_message(user.id, "Any flats in Kyiv?", created.conversation.id)

    assert exchange.user_message.sender == MessageSender.USER.value
    assert exchange.user_message.content == "Any flats in Kyiv?"
    assert exchange.user_message.index == 2
    assert exchange.ai_message.sender == MessageSender.AI.value
    assert exchange.ai_message.content == "I found two flats for you."
    assert exchange.ai_message.index == 3
    assert fake_gemini.sessions[0].sent == ["Any flats in Kyiv?"]
    assert len(fake_gemini.sessions) == 1


@pytest.mark.asyncio
async def test_send_message_without_conversation_id_uses_active(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    await service.create_conversation(user.id)

    exchange = await service.send_message(user.id, "Hello")
    assert exchange.ai_message.content == "echo: Hello"


@pytest.mark.asyncio
async def test_send_message_records_token_count(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    created = await service.create_conversation(user.id)

    usage = MagicMock(candidates_token_count=7)
    session = MagicMock()
    session.send_message_async = AsyncMock(return_value=MagicMock(text="Short answer", usage_metadata=usage))
    chat_cache.put(created.conversation.id, session)

    exchange = await service.send_message(user.id, "Quick question")

    assert exchange.ai_message.token_count == 7
    session.send_message_async.assert_awaited_once_with("Quick question")


@pytest.mark.asyncio
async def test_send_message_rejects_blank_text(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    await service.create_conversation(user.id)

    with pytest.raises(ValidationError):
        await service.send_message(user.id, "   ")


@pytest.mark.asyncio
async def test_send_message_without_active_conversation(
    db_session, make_user, fake_gemini, chat_cache,
):
    user = await make_user()
    with pytest.raises(NotFoundError):
        await ConversationService(db_session, chat_cache).send_message(user.id, "Hi")


@pytest.mark.asyncio
async def test_send_message_to_other_conversation_id_not_found(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    await service.create_conversation(user.id)

    with pytest.raises(NotFoundError):
        await service.send_message(user.id, "Hi", conversation_id="not-my-conversation")

    history = await service.get_conversation_history(user.id)
    assert len(history) == 2


@pytest.mark.asyncio
async def test_send_message_rebuilds_evicted_session_from_history(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    created = await service.create_conversation(user.id)
    await service.send_message(user.id, "First question")

    chat_cache.evict(created.conversation.id)
    await service.send_message(user.id, "Second question")

    rebuilt = fake_gemini.sessions[1]
    prior = rebuilt.history[:4]
    assert [entry["role"] for entry in prior] == ["user", "model", "user", "model"]
    assert prior[0]["parts"] == [created.initial_message.content]
    assert prior[2]["parts"] == ["First question"]
    assert rebuilt.sent == ["Second question"]
    assert created.conversation.id in chat_cache


@pytest.mark.asyncio
async def test_model_failure_evicts_session_and_keeps_user_message(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    created = await service.create_conversation(user.id)
    fake_gemini.sessions[0].fail = True

    with pytest.raises(ExternalServiceError):
        await service.send_message(user.id, "Will this fail?")

    assert created.conversation.id not in chat_cache
    history = await service.get_conversation_history(user.id)
    assert [m.sender for m in history] == ["system", "ai", "user"]
    assert history[-1].content == "Will this fail?"

    # The next send rebuilds from the database, including the unanswered message
    exchange = await service.send_message(user.id, "Try again")
    rebuilt = fake_gemini.sessions[1]
    assert [entry["parts"][0] for entry in rebuilt.history[:3]][2] == "Will this fail?"
    assert exchange.user_message.index == 3
    assert exchange.ai_message.index == 4


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_history_is_ordered_and_indexed(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    await service.create_conversation(user.id)
    await service.send_message(user.id, "one")
    await service.send_message(user.id, "two")

    history = await service.get_conversation_history(user.id)

    assert [m.index for m in history] == list(range(6))
    assert [m.sender for m in history] == ["system", "ai", "user", "ai", "user", "ai"]
    assert [m.content for m in history][2:] == ["one", "echo: one", "two", "echo: two"]


@pytest.mark.asyncio
async def test_visible_history_hides_seed_message(
    db_session, make_user, seeded_prompts, fake_gemini, chat_cache,
):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    await service.create_conversation(user.id)
    await service.send_message(user.id, "one")

    visible = await service.get_visible_conversation_history(user.id)

    assert all(m.is_visible for m in visible)
    assert [m.sender for m in visible] == ["ai", "user", "ai"]
    assert [m.index for m in visible] == [0, 1, 2]


@pytest.mark.asyncio
async def test_history_without_active_conversation(db_session, make_user, chat_cache):
    user = await make_user()
    service = ConversationService(db_session, chat_cache)
    with pytest.raises(NotFoundError):
        await service.get_conversation_history(user.id)
    with pytest.raises(NotFoundError):
        await service.get_visible_conversation_history(user.id)
