"""Service-layer exceptions.

Every failure a service reports to its caller is a ``ServiceError`` tagged
with an ``ErrorKind``. The HTTP boundary picks the status code from the
kind; the message is for humans only.
"""

from estateflow.domain.enums import ErrorKind


class ServiceError(Exception):
    """Base class for expected, user-facing service failures."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **details):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class ForbiddenError(ServiceError):
    kind = ErrorKind.FORBIDDEN


class UnauthorizedError(ServiceError):
    kind = ErrorKind.UNAUTHORIZED


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION


class InvalidOrExpiredTokenError(ServiceError):
    """Raised when a one-time token is unknown, already consumed, or past expiry."""

    kind = ErrorKind.INVALID_OR_EXPIRED

    def __init__(self, message: str = "Invalid or expired token", **details):
        super().__init__(message, **details)


class ExternalServiceError(ServiceError):
    """An upstream API (Gemini, PayPal, OAuth provider) failed."""

    kind = ErrorKind.EXTERNAL


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_OR_EXPIRED: 400,
    ErrorKind.EXTERNAL: 502,
}
