"""Domain errors raised by the marketplace adapter and fulfillment service.

Callers never see httpx exceptions: the adapter classifies every vendor
failure into one of the errors below.
"""

from enum import Enum

from app.schemas.marketplace import OperationStatus


class MarketplaceAction(str, Enum):
    """Fulfillment API action being attempted when an error occurred."""

    GET_ALL_SUBSCRIPTIONS = "GET_ALL_SUBSCRIPTIONS"
    GET_SUBSCRIPTION = "GET_SUBSCRIPTION"
    RESOLVE = "RESOLVE"
    GET_ALL_PLANS = "GET_ALL_PLANS"
    ACTIVATE = "ACTIVATE"
    CHANGE_PLAN = "CHANGE_PLAN"
    CHANGE_QUANTITY = "CHANGE_QUANTITY"
    DELETE = "DELETE"
    OPERATION_STATUS = "OPERATION_STATUS"
    UPDATE_OPERATION_STATUS = "UPDATE_OPERATION_STATUS"


class MarketplaceErrorCode(str, Enum):
    """Internal error codes carried by every MarketplaceError."""

    INVALID_ARGUMENT = "InvalidArgument"
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    BAD_REQUEST = "BadRequest"
    UNKNOWN = "Unknown"
    OPERATION_FAILED = "OperationFailed"


class MarketplaceError(Exception):
    """Base class for all marketplace domain errors."""

    error_code: MarketplaceErrorCode = MarketplaceErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        action: MarketplaceAction | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.action = action
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(error_code={self.error_code.value}, "
            f"action={self.action.value if self.action else None}, status_code={self.status_code})>"
        )


class InvalidArgumentError(MarketplaceError):
    """A malformed or default-valued identifier was supplied."""

    error_code = MarketplaceErrorCode.INVALID_ARGUMENT


class UnauthorizedError(MarketplaceError):
    """The marketplace rejected our credentials (401/403)."""

    error_code = MarketplaceErrorCode.UNAUTHORIZED


class NotFoundError(MarketplaceError):
    """The requested subscription or operation does not exist (404)."""

    error_code = MarketplaceErrorCode.NOT_FOUND


class ConflictError(MarketplaceError):
    """The subscription was modified concurrently (409)."""

    error_code = MarketplaceErrorCode.CONFLICT


class BadRequestError(MarketplaceError):
    """The marketplace rejected the request payload (400)."""

    error_code = MarketplaceErrorCode.BAD_REQUEST


class UnknownMarketplaceError(MarketplaceError):
    """Timeouts, 5xx, transport and payload failures."""

    error_code = MarketplaceErrorCode.UNKNOWN


class OperationFailedError(MarketplaceError):
    """A polled operation ended in (or was abandoned at) a non-Succeeded status."""

    error_code = MarketplaceErrorCode.OPERATION_FAILED

    def __init__(self, operation_id: str, status: OperationStatus, attempts: int) -> None:
        super().__init__(
            f"Operation {operation_id} did not succeed: last status {status.value} "
            f"after {attempts} status read(s). Check that subscription updates are accepted "
            f"by the publisher app."
        )
        self.operation_id = operation_id
        self.status = status
        self.attempts = attempts
