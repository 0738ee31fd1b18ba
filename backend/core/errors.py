"""
Application errors.

Every error carries an HTTP status, a machine-readable code and a list of
human-readable details. Routers and services raise them; `main.py` renders
them as `{"error": {"code", "message", "details"}}`.
"""

from typing import List, Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "Unexpected server error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.details = list(details or [])
        super().__init__(self.message)

    def to_body(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid request payload"


class InvalidIdError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_ID"
    default_message = "Invalid id"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class InactiveResourceError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "INACTIVE_RESOURCE"
    default_message = "Resource is inactive"


class ConfigurationError(AppError):
    """Recipe/ingredient data is inconsistent; retrying the same call cannot help."""

    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_RECIPE_CONFIGURATION"
    default_message = "Recipe cannot be cooked due to ingredient configuration issues"


class InsufficientStockError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock to cook the requested servings"


class StockRaceError(InsufficientStockError):
    """A guarded decrement matched no row: stock moved under us."""

    default_message = "Stock changed while cooking. Please try again."


class StorageCapabilityError(Exception):
    """The storage backend cannot run multi-statement atomic units. Never reaches HTTP."""


TRANSACTION_UNSUPPORTED_SIGNATURES = (
    "transaction numbers are only allowed on a replica set member or mongos",
    "transaction support is not available",
    "does not support transactions",
    "transaction blocks not allowed in statement pooling mode",
)


def is_transaction_unsupported_error(error: BaseException) -> bool:
    if isinstance(error, StorageCapabilityError):
        return True
    message = str(error or "").lower()
    return any(signature in message for signature in TRANSACTION_UNSUPPORTED_SIGNATURES)
