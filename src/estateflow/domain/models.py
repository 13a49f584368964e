"""SQLAlchemy ORM models for EstateFlow.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- Float for money and areas (no NUMERIC arithmetic in SQLite)
- DateTime(timezone=True), written as UTC from Python
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from estateflow.domain.enums import (
    PropertyStatus,
    SubscriptionStatus,
)
from estateflow.infra.database import Base

DEFAULT_AVATAR_URL = (
    "https://t4.ftcdn.net/jpg/02/15/84/43/"
    "360_F_215844325_ttX9YiIIyeaR7Ne6EaLLjMAmy4GvPC69.jpg"
)
DEFAULT_BIO = "This section is yet empty."


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class User(Base):
    """Marketplace account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)  # NULL for OAuth-only accounts
    role = Column(String(20), nullable=False)  # renter_buyer, private_seller, agency, moderator, admin
    is_email_verified = Column(Boolean, default=False, nullable=False)
    paypal_credentials = Column(Text, nullable=True)
    listing_limit = Column(Integer, nullable=True)  # -1 = unlimited
    avatar_url = Column(String(500), default=DEFAULT_AVATAR_URL)
    bio = Column(Text, default=DEFAULT_BIO)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    properties = relationship("Property", back_populates="owner", passive_deletes=True)
    conversations = relationship("Conversation", back_populates="user", passive_deletes=True)
    subscription = relationship("Subscription", back_populates="user", uselist=False, passive_deletes=True)


class EmailVerificationToken(Base):
    """One-time token mailed at registration."""

    __tablename__ = "email_verification_tokens"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class RefreshToken(Base):
    """Issued refresh token, stored as a SHA-256 digest."""

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class GoogleOAuthCredential(Base):
    __tablename__ = "google_oauth_credentials"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    google_id = Column(String(255), nullable=False, index=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class FacebookOAuthCredential(Base):
    __tablename__ = "facebook_oauth_credentials"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    facebook_id = Column(String(255), nullable=False, index=True)
    access_token = Column(Text, nullable=False)
    token_expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ChangeRequest(Base):
    """Pending email/password change or password reset, consumed exactly once."""

    __tablename__ = "change_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # email, password, password_reset
    new_value = Column(Text, nullable=False, default="")
    token = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class Property(Base):
    """A listing for sale or rent."""

    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=_uuid)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_verified = Column(Boolean, default=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    facilities = Column(Text, nullable=True)
    property_type = Column(String(20), nullable=False)  # house, apartment
    transaction_type = Column(String(20), nullable=False)  # sale, rent
    price = Column(Float, nullable=False)
    currency = Column(String(3), default="USD")
    size = Column(Float, nullable=True)  # sqm
    rooms = Column(Integer, nullable=True)
    address = Column(Text, nullable=False)
    status = Column(String(20), default=PropertyStatus.ACTIVE.value, index=True)
    document_url = Column(Text, nullable=True)
    verification_comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="properties")
    images = relationship(
        "PropertyImage",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PropertyImage.created_at",
    )
    pricing_history = relationship(
        "PricingHistory",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PricingHistory.effective_date",
    )
    views = relationship("PropertyView", back_populates="property", cascade="all, delete-orphan", passive_deletes=True)


class PropertyImage(Base):
    __tablename__ = "property_images"

    id = Column(String(36), primary_key=True, default=_uuid)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    property = relationship("Property", back_populates="images")


class PricingHistory(Base):
    """Append-only price log; one row per price or currency change."""

    __tablename__ = "pricing_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    effective_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    property = relationship("Property", back_populates="pricing_history")


class PropertyView(Base):
    """Most recent view of a property by a user (one row per pair)."""

    __tablename__ = "property_views"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_property_views_user_property"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    viewed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    property = relationship("Property", back_populates="views")


class WishlistItem(Base):
    __tablename__ = "wishlist"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_wishlist_user_property"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# AI assistant
# ---------------------------------------------------------------------------


class SystemPrompt(Base):
    """Named prompt template; content is overwritten in place by admins."""

    __tablename__ = "system_prompts"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Conversation(Base):
    """AI chat conversation. At most one active conversation per user."""

    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_one_active_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    system_prompt_id = Column(String(36), ForeignKey("system_prompts.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="conversations")
    system_prompt = relationship("SystemPrompt")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )


class Message(Base):
    """One chat turn. Its index is derived from creation order, never stored."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender = Column(String(10), nullable=False)  # user, ai, system
    content = Column(Text, nullable=False)
    token_count = Column(Integer, nullable=True)
    is_visible = Column(Boolean, default=True, nullable=False)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    duration_days = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Subscription(Base):
    """A user's paid plan; one row per user, replaced on renewal."""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    subscription_plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=True)
    paypal_order_id = Column(String(255), unique=True, nullable=True)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.PENDING.value)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="subscription")
    plan = relationship("SubscriptionPlan")
