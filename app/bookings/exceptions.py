"""
Booking-specific exceptions.

Both are precondition violations: the caller referenced a booking that does
not exist, or one that belongs to a different client. They are raised, never
returned as a ServiceResult.
"""

from __future__ import annotations

from core.exceptions import NotFoundError, PermissionDeniedError


class BookingNotFoundError(NotFoundError):
    """Raised when a referenced booking does not exist."""

    default_error_code: str = "BOOKING_NOT_FOUND"


class ClientMismatchError(PermissionDeniedError):
    """
    Raised when the supplied client does not own the booking.

    Example:
        if booking.client_id != client_id:
            raise ClientMismatchError(
                "Client does not match booking",
                details={"booking_id": str(booking.id)},
            )
    """

    default_error_code: str = "CLIENT_MISMATCH"
