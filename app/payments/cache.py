"""
Cache keys and invalidation for booking financials.

Balances are cached by BalanceService; anything that changes what a booking
has collected (a payment, a refund, a discount) must drop those keys once
its transaction commits.

Usage:
    from django.db import transaction
    from payments.cache import invalidate_booking_financials

    transaction.on_commit(lambda: invalidate_booking_financials(booking.id))
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.cache import cache

logger = logging.getLogger(__name__)

FINANCIAL_SUMMARY_KEY = "financial:summary"


def booking_balance_key(booking_id: Any) -> str:
    return f"booking:{booking_id}:balance"


def invalidate_booking_financials(booking_id: Any) -> None:
    """Drop the cached balance for a booking and the studio summary."""
    cache.delete_many([booking_balance_key(booking_id), FINANCIAL_SUMMARY_KEY])
    logger.debug(
        "Invalidated booking financials",
        extra={"booking_id": str(booking_id)},
    )
