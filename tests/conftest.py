"""Shared test infrastructure for the EstateFlow test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_user / make_property: row factories
- seeded_prompts: the default system prompts
- fake_gemini: patched Gemini model recording chat history and replies
- chat_cache: a fresh ChatSessionCache per test
- make_client: HTTPX client on a small app with get_db overridden
"""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from estateflow.infra.database import Base, enable_sqlite_foreign_keys, get_db

import estateflow.domain.models  # noqa: F401

from estateflow.app.main import install_error_handlers
from estateflow.domain.enums import UserRole
from estateflow.domain.models import Property, PropertyImage, PricingHistory, User
from estateflow.services.auth_service import create_access_token, hash_password, listing_limit_for
from estateflow.services.chat_sessions import ChatSessionCache
from estateflow.services.system_prompt_service import seed_default_prompts


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine.sync_engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

_counter = {"n": 0}


def _next() -> int:
    _counter["n"] += 1
    return _counter["n"]


@pytest.fixture
def make_user(db_session):
    """Factory that creates a verified User row.

    Usage:
        user = await make_user(role=UserRole.ADMIN)
    """
    async def _factory(
        role: UserRole = UserRole.RENTER_BUYER,
        email: str | None = None,
        username: str | None = None,
        password: str = "secret123",
        verified: bool = True,
    ) -> User:
        n = _next()
        user = User(
            username=username or f"user{n}",
            email=email or f"user{n}@test.com",
            password_hash=hash_password(password),
            role=role.value,
            is_email_verified=verified,
            listing_limit=listing_limit_for(role),
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _factory


@pytest.fixture
def make_property(db_session):
    """Factory that creates a Property with one image and one pricing row.

    Usage:
        prop = await make_property(owner, address="Київська обл., Бровари")
    """
    async def _factory(
        owner: User,
        title: str = "Sunny apartment",
        property_type: str = "apartment",
        transaction_type: str = "sale",
        price: float = 100000.0,
        currency: str = "USD",
        size: float | None = 55.0,
        rooms: int | None = 2,
        address: str = "Київська обл., Київ, вул. Хрещатик 1",
        status: str = "active",
        is_verified: bool = False,
        **extra,
    ) -> Property:
        prop = Property(
            owner_id=owner.id,
            title=title,
            property_type=property_type,
            transaction_type=transaction_type,
            price=price,
            currency=currency,
            size=size,
            rooms=rooms,
            address=address,
            status=status,
            is_verified=is_verified,
            **extra,
        )
        prop.images = [PropertyImage(image_url="https://img.test/1.jpg", is_primary=True)]
        prop.pricing_history = [PricingHistory(price=price, currency=currency)]
        db_session.add(prop)
        await db_session.commit()
        return prop

    return _factory


@pytest.fixture
async def seeded_prompts(db_session):
    await seed_default_prompts(db_session)


# ---------------------------------------------------------------------------
# Gemini fake
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, text: str):
        self.text = text
        self.usage_metadata = None


class FakeChatSession:
    """Stands in for google.generativeai ChatSession."""

    def __init__(self, history, replies, fail: bool = False):
        self.history = list(history or [])
        self._replies = replies
        self.fail = fail
        self.sent: list[str] = []

    async def send_message_async(self, text):
        if self.fail:
            raise RuntimeError("model unavailable")
        self.sent.append(text)
        reply = self._replies.pop(0) if self._replies else f"echo: {text}"
        self.history.append({"role": "user", "parts": [text]})
        self.history.append({"role": "model", "parts": [reply]})
        return FakeResponse(reply)


class FakeModel:
    def __init__(self):
        self.replies: list[str] = []
        self.sessions: list[FakeChatSession] = []
        self.fail_next_session = False

    def start_chat(self, history=None):
        session = FakeChatSession(history, self.replies, fail=self.fail_next_session)
        self.fail_next_session = False
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_gemini():
    """Patch the Gemini model factory; yields the FakeModel."""
    model = FakeModel()
    with patch("estateflow.infra.gemini_client.get_model", return_value=model):
        yield model


@pytest.fixture
def chat_cache():
    return ChatSessionCache(max_entries=8)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_headers():
    """Bearer header for *user*, signed like a real login."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}

    return _headers


@pytest.fixture
def make_client(db_session):
    """Factory for an HTTPX AsyncClient wired to a test app with the given routers."""

    def _factory(*routers, overrides: dict | None = None) -> AsyncClient:
        test_app = FastAPI()
        install_error_handlers(test_app)
        for router in routers:
            test_app.include_router(router)

        async def _override_get_db():
            yield db_session

        test_app.dependency_overrides[get_db] = _override_get_db
        for dep, override in (overrides or {}).items():
            test_app.dependency_overrides[dep] = override

        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
        )

    return _factory
