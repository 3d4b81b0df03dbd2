"""
Booking domain models.

- Service: Bookable studio service (name, category, list price)
- Booking: Scheduled service instance with totals and applied discounts
"""

from bookings.models.booking import (
    PAYABLE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    Service,
)

__all__ = [
    "PAYABLE_BOOKING_STATUSES",
    "Booking",
    "BookingStatus",
    "Service",
]
