"""Domain enumerations for EstateFlow.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account role; gates prompts, listing limits and admin routes."""

    RENTER_BUYER = "renter_buyer"
    PRIVATE_SELLER = "private_seller"
    AGENCY = "agency"
    MODERATOR = "moderator"
    ADMIN = "admin"


class PropertyType(str, Enum):
    HOUSE = "house"
    APARTMENT = "apartment"


class TransactionType(str, Enum):
    SALE = "sale"
    RENT = "rent"


class PropertyStatus(str, Enum):
    """Listing lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD = "sold"
    RENTED = "rented"


class MessageSender(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    AI = "ai"
    SYSTEM = "system"


class ModelRole(str, Enum):
    """Roles understood by the Gemini chat history."""

    USER = "user"
    MODEL = "model"


class PromptName(str, Enum):
    """Names of the default system prompts, one per audience."""

    RENTER_BUYER = "default-renter-buyer"
    SELLER_AGENCY = "default-seller-agency"


class ChangeType(str, Enum):
    """Kind of pending account change held in the change_requests table."""

    EMAIL = "email"
    PASSWORD = "password"
    PASSWORD_RESET = "password_reset"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PENDING = "pending"


class ErrorKind(str, Enum):
    """Closed taxonomy of service failures, mapped to HTTP status at the boundary."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    EXTERNAL = "external"
