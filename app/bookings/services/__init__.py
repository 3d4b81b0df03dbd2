"""
Booking services.

- BalanceService: Outstanding balances and payment-eligible bookings
"""

from bookings.services.balance_service import BalanceService, BookingBalance

__all__ = [
    "BalanceService",
    "BookingBalance",
]
