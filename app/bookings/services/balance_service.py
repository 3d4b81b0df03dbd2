"""
Booking balance calculation.

The outstanding balance of a booking is its effective total (total minus
discount) minus what has been collected by counted payments. A payment
counts while it is PAID or PARTIALLY_REFUNDED, at its full original amount;
a fully refunded payment stops counting.

Usage:
    from bookings.services import BalanceService

    balance = BalanceService.get_balance(booking.id)
    if balance.remaining.is_positive:
        PaymentLinkService.create_payment_link(booking.id, balance.remaining.cents)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import cache
from django.db.models import (
    BigIntegerField,
    F,
    Q,
    Sum,
    Value,
)
from django.db.models.functions import Coalesce, Greatest

from core.money import Money
from core.services import BaseService

from bookings.exceptions import BookingNotFoundError
from bookings.models import PAYABLE_BOOKING_STATUSES, Booking
from payments.cache import booking_balance_key
from payments.state_machines import COUNTED_PAYMENT_STATUSES

if TYPE_CHECKING:
    from django.db.models import QuerySet


@dataclass(frozen=True)
class BookingBalance:
    """
    Financial position of a booking.

    Attributes:
        total: Gross total
        discount: Gift card or promotion discount applied
        effective_total: total - discount
        paid: Sum of counted payment amounts
        remaining: max(0, effective_total - paid)
    """

    total: Money
    discount: Money
    effective_total: Money
    paid: Money
    remaining: Money

    @property
    def is_settled(self) -> bool:
        return self.remaining.is_zero


class BalanceService(BaseService):
    """
    Derives outstanding balances from bookings and their payments.
    """

    @classmethod
    def calculate(cls, booking: Booking) -> BookingBalance:
        """Compute the balance of ``booking`` from the database."""
        paid_cents = booking.payments.filter(
            status__in=COUNTED_PAYMENT_STATUSES,
        ).aggregate(total=Sum("amount_cents"))["total"] or 0

        effective_total = booking.effective_total
        paid = Money(paid_cents)

        return BookingBalance(
            total=booking.total,
            discount=booking.discount,
            effective_total=effective_total,
            paid=paid,
            remaining=effective_total.subtract_clamped(paid),
        )

    @classmethod
    def get_balance(cls, booking_id: uuid.UUID | str) -> BookingBalance:
        """
        Cached balance for a booking.

        Raises:
            BookingNotFoundError: If the booking does not exist
        """

        def compute() -> BookingBalance:
            booking = Booking.objects.filter(id=booking_id).first()
            if booking is None:
                raise BookingNotFoundError(
                    "Booking not found",
                    details={"booking_id": str(booking_id)},
                )
            return cls.calculate(booking)

        return cache.get_or_set(
            booking_balance_key(booking_id),
            compute,
            timeout=settings.BOOKING_BALANCE_CACHE_SECONDS,
        )

    @classmethod
    def bookings_for_payment(
        cls,
        client_id: uuid.UUID | str | None = None,
    ) -> QuerySet[Booking]:
        """
        Bookings that can still take a payment.

        A booking qualifies when its status is payable and something is
        still owed. Each row is annotated with ``paid_cents`` and
        ``remaining_cents``.
        """
        queryset = Booking.objects.filter(status__in=PAYABLE_BOOKING_STATUSES)
        if client_id is not None:
            queryset = queryset.filter(client_id=client_id)

        return (
            queryset.annotate(
                paid_cents=Coalesce(
                    Sum(
                        "payments__amount_cents",
                        filter=Q(payments__status__in=COUNTED_PAYMENT_STATUSES),
                    ),
                    Value(0),
                    output_field=BigIntegerField(),
                ),
            )
            .annotate(
                remaining_cents=Greatest(
                    F("total_cents") - F("discount_cents") - F("paid_cents"),
                    Value(0),
                    output_field=BigIntegerField(),
                ),
            )
            .filter(remaining_cents__gt=0)
            .select_related("service")
            .order_by("scheduled_at")
        )
