"""
Hosted checkout links for deposits and balances.

Usage:
    from payments.services import PaymentLinkService

    result = PaymentLinkService.create_payment_link(
        booking_id=booking.id,
        amount_cents=5000,
        link_type="deposit",
        actor=actor,
    )
    if result.success:
        send_sms(client, result.data.url)
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.actors import Actor
from core.money import is_cents
from core.services import BaseService, ServiceResult

from bookings.models import Booking
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import PaymentProcessingError, ProcessorNotConfiguredError
from payments.services.sync_log_service import SyncLogService
from payments.state_machines import PaymentLinkType
from payments.sync_events import PaymentLinkCreated, PaymentLinkFailed

if TYPE_CHECKING:
    from payments.adapters import PaymentProcessor


@dataclass
class PaymentLink:
    url: str
    order_id: str


class PaymentLinkService(BaseService):
    """
    Issues hosted checkout links through the payment processor.

    The processor's order reference is stored on the booking only if the
    booking has none yet. A reference created by another channel (the
    point-of-sale terminal, an earlier link) is never overwritten.
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
    def create_payment_link(
        cls,
        booking_id: uuid.UUID | str,
        amount_cents: int,
        link_type: str = PaymentLinkType.BALANCE,
        actor: Actor | None = None,
    ) -> ServiceResult[PaymentLink]:
        """
        Create a checkout link for a booking.

        Args:
            booking_id: Booking the link pays for
            amount_cents: Amount the link collects
            link_type: "deposit" or "balance"
            actor: Who requested the link

        Returns:
            ServiceResult containing PaymentLink on success
        """
        actor = actor or Actor.system()
        logger = cls.get_logger()
        processor = cls.get_processor()

        if not processor.is_configured():
            return ServiceResult.from_exception(
                ProcessorNotConfiguredError("Payment processor is not configured")
            )

        booking = Booking.objects.select_related("service").filter(id=booking_id).first()
        if booking is None:
            return ServiceResult.failure(
                "Booking not found",
                error_code="BOOKING_NOT_FOUND",
            )

        if link_type not in PaymentLinkType.values:
            return ServiceResult.failure(
                f"Unknown payment link type: {link_type}",
                error_code="INVALID_LINK_TYPE",
            )

        if not is_cents(amount_cents) or amount_cents <= 0:
            return ServiceResult.failure(
                "Amount must be positive",
                error_code="INVALID_AMOUNT",
            )

        currency = settings.PAYMENTS_CURRENCY
        idempotency_key = IdempotencyKeyGenerator.generate(
            operation="payment_link",
            entity_id=booking.id,
            attempt=cls._link_attempt(
                link_type, amount_cents, booking.service_name, currency
            ),
        )

        try:
            link = processor.create_payment_link(
                booking_id=str(booking.id),
                service_name=booking.service_name,
                amount_cents=amount_cents,
                link_type=link_type,
                currency=currency,
                idempotency_key=idempotency_key,
            )
        except PaymentProcessingError as e:
            SyncLogService.record(
                PaymentLinkFailed(
                    amount_cents=amount_cents,
                    link_type=link_type,
                    error=e.message,
                ),
                local_id=booking.id,
                actor=actor,
            )
            return ServiceResult.failure(e.message, error_code=e.error_code)

        stored = Booking.objects.filter(
            id=booking.id,
            processor_order_id__isnull=True,
        ).update(processor_order_id=link.order_id)

        SyncLogService.record(
            PaymentLinkCreated(
                url=link.url,
                order_id=link.order_id,
                amount_cents=amount_cents,
                link_type=link_type,
            ),
            local_id=booking.id,
            remote_id=link.order_id,
            actor=actor,
        )

        logger.info(
            "Payment link created",
            extra={
                "booking_id": str(booking.id),
                "order_id": link.order_id,
                "amount_cents": amount_cents,
                "link_type": link_type,
                "order_reference_stored": bool(stored),
                **actor.log_context(),
            },
        )

        return ServiceResult.success(PaymentLink(url=link.url, order_id=link.order_id))

    @staticmethod
    def _link_attempt(
        link_type: str,
        amount_cents: int,
        service_name: str,
        currency: str,
    ) -> str:
        """
        Attempt discriminator covering every parameter sent to the processor.

        Stripe rejects a reused idempotency key whose parameters differ, so a
        renamed service or a currency change must yield a new key.
        """
        digest = hashlib.sha256(f"{service_name}:{currency}".encode()).hexdigest()[:8]
        return f"{link_type}-{amount_cents}-{digest}"
