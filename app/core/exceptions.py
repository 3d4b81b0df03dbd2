"""
Base exception classes for application-wide error handling.

Exceptions signal precondition violations: a bad reference, a tampered
request, a concurrent modification. Expected business outcomes (a promo code
that has expired, a refund larger than what is left) are NOT exceptions;
those are returned as ServiceResult failures (see core.services).

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Referenced record does not exist
    ├── PermissionDeniedError - Caller may not act on the record
    └── ConflictError - State conflicts (duplicates, concurrent modifications)

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError(
        f"Booking {booking_id} not found",
        error_code="BOOKING_NOT_FOUND",
        details={"booking_id": str(booking_id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, etc.)

    Example:
        try:
            PaymentRecorder.record_payment(...)
        except BaseApplicationError as e:
            logger.warning("Payment rejected", extra=e.to_dict())
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to a serializable dictionary.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input to an operation is malformed.

    Example:
        if discount_value > 100:
            raise ValidationError(
                "Percent discount must be between 0 and 100",
                error_code="INVALID_DISCOUNT_VALUE",
                details={"discount_value": discount_value},
            )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced record does not exist.

    Use for single-record lookups where existence is a precondition of
    the operation (a booking id supplied by the caller, for instance).
    """

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller may not act on the referenced record.

    Example:
        if booking.client_id != client_id:
            raise PermissionDeniedError(
                "Client does not own this booking",
                error_code="CLIENT_MISMATCH",
            )
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current record state.

    Use for:
    - Duplicate entries (unique constraint violations)
    - Concurrent modification conflicts
    - Invalid state transitions
    """

    default_error_code: str = "CONFLICT"
