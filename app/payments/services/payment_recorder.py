"""
Payment recording against bookings.

PaymentRecorder persists one settlement event (cash at the desk, a card
through the processor, a completed hosted checkout) against a booking.

Failures here are precondition violations, so they raise instead of
returning a ServiceResult:
    - BookingNotFoundError: the booking id does not exist
    - ClientMismatchError: the client does not own the booking
    - PaymentValidationError: malformed amount, tip, or method
    - DuplicatePaymentError: the processor payment id is already recorded

Usage:
    from payments.services import PaymentRecorder

    payment = PaymentRecorder.record_payment(
        booking_id=booking.id,
        client_id=booking.client_id,
        amount_cents=18000,
        tip_cents=2000,
        method="processor_card",
        processor_payment_id="pi_123",
        actor=actor,
    )
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.actors import Actor
from core.money import is_cents
from core.services import BaseService

from bookings.exceptions import BookingNotFoundError, ClientMismatchError
from bookings.models import Booking
from payments.adapters import StripeAdapter
from payments.cache import invalidate_booking_financials
from payments.exceptions import (
    DuplicatePaymentError,
    PaymentProcessingError,
    PaymentValidationError,
)
from payments.models import Payment
from payments.state_machines import PaymentMethod, PaymentStatus

if TYPE_CHECKING:
    from payments.adapters import PaymentProcessor


class PaymentRecorder(BaseService):
    """
    Validates and persists payments against bookings.

    Enrichment:
        When a processor payment id is supplied and the processor is
        configured, the receipt URL and order reference are fetched from
        the processor. That lookup is best-effort: any processor failure is
        logged and the payment is recorded with what the caller supplied.
    """

    # Processor adapter - can be injected for testing
    _processor: PaymentProcessor | None = None

    @classmethod
    def get_processor(cls) -> PaymentProcessor:
        """Get the payment processor adapter."""
        return cls._processor or StripeAdapter

    @classmethod
    def set_processor(cls, processor: PaymentProcessor | None) -> None:
        """Set the payment processor adapter (for testing)."""
        cls._processor = processor

    @classmethod
    def record_payment(
        cls,
        booking_id: uuid.UUID | str,
        client_id: uuid.UUID | str,
        amount_cents: int,
        tip_cents: int = 0,
        method: str = PaymentMethod.CASH,
        processor_payment_id: str | None = None,
        notes: str | None = None,
        actor: Actor | None = None,
    ) -> Payment:
        """
        Record a payment against a booking.

        Args:
            booking_id: Booking being paid
            client_id: Client making the payment (must own the booking)
            amount_cents: Amount collected (> 0)
            tip_cents: Tip collected (>= 0)
            method: PaymentMethod value
            processor_payment_id: Processor payment id for card payments
            notes: Free-text notes
            actor: Who recorded the payment

        Returns:
            The created Payment with status PAID

        Raises:
            PaymentValidationError, BookingNotFoundError,
            ClientMismatchError, DuplicatePaymentError
        """
        actor = actor or Actor.system()
        logger = cls.get_logger()

        cls._validate_input(amount_cents, tip_cents, method)

        booking = Booking.objects.filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFoundError(
                "Booking not found",
                details={"booking_id": str(booking_id)},
            )

        if str(booking.client_id) != str(client_id):
            raise ClientMismatchError(
                "Client does not match booking",
                details={"booking_id": str(booking_id)},
            )

        receipt_url = None
        processor_order_id = None
        if processor_payment_id:
            if Payment.objects.filter(
                processor_payment_id=processor_payment_id
            ).exists():
                raise DuplicatePaymentError(
                    "Processor payment already recorded",
                    details={"processor_payment_id": processor_payment_id},
                )
            receipt_url, processor_order_id = cls._enrich(processor_payment_id)

        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    booking=booking,
                    client_id=booking.client_id,
                    amount_cents=amount_cents,
                    tip_cents=tip_cents,
                    method=method,
                    status=PaymentStatus.PAID,
                    processor_payment_id=processor_payment_id or None,
                    processor_order_id=processor_order_id,
                    receipt_url=receipt_url,
                    notes=notes or "",
                    paid_at=timezone.now(),
                )
                transaction.on_commit(
                    lambda: invalidate_booking_financials(booking.id)
                )
        except IntegrityError as e:
            # Concurrent webhook and desk recording of the same processor payment
            if processor_payment_id and Payment.objects.filter(
                processor_payment_id=processor_payment_id
            ).exists():
                raise DuplicatePaymentError(
                    "Processor payment already recorded",
                    details={"processor_payment_id": processor_payment_id},
                ) from e
            raise

        logger.info(
            "Payment recorded",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "amount_cents": amount_cents,
                "tip_cents": tip_cents,
                "method": method,
                "processor_payment_id": processor_payment_id,
                **actor.log_context(),
            },
        )

        return payment

    @classmethod
    def _validate_input(cls, amount_cents: int, tip_cents: int, method: str) -> None:
        if not is_cents(amount_cents):
            raise PaymentValidationError(
                "Amount must be an integer number of cents",
                details={"amount_cents": repr(amount_cents)},
            )
        if amount_cents <= 0:
            raise PaymentValidationError(
                "Amount must be positive",
                details={"amount_cents": amount_cents},
            )
        if not is_cents(tip_cents) or tip_cents < 0:
            raise PaymentValidationError(
                "Tip cannot be negative",
                details={"tip_cents": repr(tip_cents)},
            )
        if method not in PaymentMethod.values:
            raise PaymentValidationError(
                f"Unknown payment method: {method}",
                details={"method": method},
            )

    @classmethod
    def _enrich(cls, processor_payment_id: str) -> tuple[str | None, str | None]:
        """Return (receipt_url, order_id) from the processor, or (None, None)."""
        processor = cls.get_processor()
        if not processor.is_configured():
            return None, None

        try:
            result = processor.get_payment(processor_payment_id)
        except PaymentProcessingError as e:
            cls.get_logger().info(
                "Payment enrichment unavailable, recording without it",
                extra={
                    "processor_payment_id": processor_payment_id,
                    "error_code": e.error_code,
                },
            )
            return None, None

        return result.receipt_url, result.order_id
