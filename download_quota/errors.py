"""Error types raised by the account store and the quota ledger."""

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
)


class QuotaServiceError(Exception):
    """
    Base class for errors that map to a client-facing HTTP response.

    Anything that is not a subclass of this is treated as an internal
    failure by the request layer.
    """

    status_code: int = HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(QuotaServiceError):
    """A required field is missing or out of range."""

    default_message = "Invalid input"


class UnauthorizedError(QuotaServiceError):
    status_code = HTTP_401_UNAUTHORIZED
    default_message = "Invalid username or password"


class UserNotFoundError(QuotaServiceError):
    """No account exists for the username."""

    status_code = HTTP_404_NOT_FOUND
    default_message = "User not found"


class QuotaNotFoundError(QuotaServiceError):
    """The account exists but no quota record was ever provisioned."""

    status_code = HTTP_404_NOT_FOUND
    default_message = "Quota not initialized for user"


# Conflict and Forbidden answer 400 to stay wire-compatible with existing clients.
class ConflictError(QuotaServiceError):
    default_message = "User already exists"


class ForbiddenError(QuotaServiceError):
    default_message = "Operation not allowed"
