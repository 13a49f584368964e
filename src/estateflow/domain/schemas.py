"""Pydantic v2 schemas for API request/response validation.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from estateflow.domain.enums import (
    MessageSender,
    PropertyStatus,
    PropertyType,
    TransactionType,
    UserRole,
)


class ApiModel(BaseModel):
    """Base for every request/response body."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StatusMessage(ApiModel):
    message: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(ApiModel):
    """Schema for password registration."""

    username: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole


class LoginRequest(ApiModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(ApiModel):
    refresh_token: str


class OAuthRequest(ApiModel):
    """Authorization code returned to the frontend by Google or Facebook."""

    code: str = Field(min_length=1)
    role: UserRole | None = None


class TokenPair(ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class OAuthResponse(TokenPair):
    is_new_user: bool
    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(ApiModel):
    """Schema for the authenticated user's own account."""

    id: str
    email: str
    username: str
    role: UserRole
    avatar_url: str | None = None
    bio: str | None = None
    is_email_verified: bool
    listing_limit: int | None = None
    paypal_credentials: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserUpdate(ApiModel):
    """Fields a user may change on their own profile."""

    username: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    paypal_credentials: str | None = None


class AdminUserUpdate(ApiModel):
    username: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    email: EmailStr | None = None
    role: UserRole | None = None
    listing_limit: int | None = None


class AdminUserCreate(ApiModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole
    avatar_url: str | None = None
    bio: str | None = None


class ChangeEmailRequest(ApiModel):
    new_email: EmailStr


class ChangePasswordRequest(ApiModel):
    new_password: str = Field(min_length=6)


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(ApiModel):
    token: str
    new_password: str = Field(min_length=6)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class PropertyImageIn(ApiModel):
    image_url: str
    is_primary: bool = False


class PropertyImageResponse(ApiModel):
    id: str
    image_url: str
    is_primary: bool
    created_at: datetime | None = None


class PricingHistoryResponse(ApiModel):
    id: str
    price: float
    currency: str
    effective_date: datetime


class PropertyViewResponse(ApiModel):
    id: str
    user_id: str | None = None
    viewed_at: datetime


class OwnerSummary(ApiModel):
    id: str
    username: str
    email: str
    role: UserRole


class PropertyCreate(ApiModel):
    """Schema for creating a listing. The owner is the authenticated user."""

    title: str = Field(min_length=1)
    description: str | None = None
    facilities: str | None = None
    property_type: PropertyType
    transaction_type: TransactionType
    price: float = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    size: float | None = Field(default=None, gt=0)
    rooms: int | None = Field(default=None, ge=0)
    address: str = Field(min_length=1)
    status: PropertyStatus = PropertyStatus.ACTIVE
    document_url: str | None = None
    verification_comments: str | None = None
    images: list[PropertyImageIn] = []


class PropertyUpdate(ApiModel):
    """Partial update; ``images`` replaces the whole image set when present."""

    title: str | None = None
    description: str | None = None
    facilities: str | None = None
    property_type: PropertyType | None = None
    transaction_type: TransactionType | None = None
    price: float | None = Field(default=None, gt=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    size: float | None = Field(default=None, gt=0)
    rooms: int | None = Field(default=None, ge=0)
    address: str | None = None
    status: PropertyStatus | None = None
    document_url: str | None = None
    images: list[PropertyImageIn] | None = None


class PropertyVerify(ApiModel):
    is_verified: bool = True
    verification_comments: str | None = None


class PropertyResponse(ApiModel):
    id: str
    owner_id: str
    is_verified: bool | None = False
    title: str
    description: str | None = None
    facilities: str | None = None
    property_type: PropertyType
    transaction_type: TransactionType
    price: float
    currency: str | None = None
    size: float | None = None
    rooms: int | None = None
    address: str
    status: PropertyStatus | None = None
    document_url: str | None = None
    verification_comments: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    images: list[PropertyImageResponse] = []
    views: list[PropertyViewResponse] = []
    pricing_history: list[PricingHistoryResponse] = []
    owner: OwnerSummary | None = None
    is_wished: bool = False


class PropertySummary(ApiModel):
    """Listing as shown on a public profile."""

    id: str
    title: str
    description: str | None = None
    property_type: PropertyType
    transaction_type: TransactionType
    price: float
    currency: str | None = None
    size: float | None = None
    rooms: int | None = None
    address: str
    status: PropertyStatus | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    images: list[PropertyImageResponse] = []


class SubscriptionSummary(ApiModel):
    status: str
    start_date: datetime
    end_date: datetime
    plan_name: str | None = None
    plan_price: float | None = None
    plan_currency: str | None = None


class PublicProfile(ApiModel):
    id: str
    email: str
    username: str
    role: UserRole
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    properties: list[PropertySummary] = []
    subscription: SubscriptionSummary | None = None


# ---------------------------------------------------------------------------
# Wishlist / views
# ---------------------------------------------------------------------------


class WishlistAdd(ApiModel):
    property_id: str


class WishlistItemResponse(ApiModel):
    id: str
    user_id: str
    property_id: str
    created_at: datetime


class ViewCreate(ApiModel):
    property_id: str


# ---------------------------------------------------------------------------
# AI assistant
# ---------------------------------------------------------------------------


class SystemPromptResponse(ApiModel):
    id: str
    name: str
    content: str
    is_default: bool
    created_at: datetime
    updated_at: datetime


class SystemPromptUpdate(ApiModel):
    name: str = Field(min_length=1)
    new_content: str = Field(min_length=1)


class ConversationCreate(ApiModel):
    title: str | None = Field(default=None, max_length=255)


class ConversationResponse(ApiModel):
    id: str
    user_id: str
    system_prompt_id: str | None = None
    title: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ChatMessageResponse(ApiModel):
    """A conversation message with its read-time position."""

    id: str
    conversation_id: str
    sender: MessageSender
    content: str
    is_visible: bool
    property_id: str | None = None
    token_count: int | None = None
    created_at: datetime
    index: int


class SendMessageRequest(ApiModel):
    message: str = Field(min_length=1)


class CreateConversationResponse(ApiModel):
    message: str
    conversation: ConversationResponse
    initial_message: ChatMessageResponse
    welcome_message: ChatMessageResponse


class SendMessageResponse(ApiModel):
    message: str
    user_message: ChatMessageResponse
    ai_response: ChatMessageResponse


class HistoryResponse(ApiModel):
    messages: list[ChatMessageResponse]


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

_AMOUNT_PATTERN = r"^\d+(\.\d{1,2})?$"


class OrderItem(ApiModel):
    name: str
    description: str | None = None
    category: str = "DIGITAL_GOODS"


class CreateOrderRequest(ApiModel):
    amount: str = Field(pattern=_AMOUNT_PATTERN)
    currency: str = Field(default="USD", min_length=3, max_length=3)


class CaptureOrderRequest(ApiModel):
    order_id: str = Field(min_length=1)


class CreateSubscriptionOrderRequest(ApiModel):
    amount: str = Field(pattern=_AMOUNT_PATTERN)
    item: OrderItem
    currency: str = Field(default="USD", min_length=3, max_length=3)


class CaptureSubscriptionOrderRequest(ApiModel):
    order_id: str = Field(min_length=1)
    subscription_plan_id: str
    email: EmailStr | None = None


class OrderResponse(ApiModel):
    id: str


class CaptureResponse(ApiModel):
    id: str
    status: str


class SubscriptionPlanResponse(ApiModel):
    id: str
    name: str
    description: str | None = None
    price: float
    currency: str
    duration_days: int
    is_active: bool | None = True


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
