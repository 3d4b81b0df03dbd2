"""
Inbound webhook intake.

WebhookService.receive is what an HTTP endpoint calls with the raw request
body and Stripe-Signature header. It verifies the event, stores it once per
Stripe event id, and queues it for processing by Celery.

Usage:
    from payments.services import WebhookService

    result = WebhookService.receive(request.body, request.headers["Stripe-Signature"])
    status = 200 if result.success else 400
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

if TYPE_CHECKING:
    from payments.adapters import PaymentProcessor


class WebhookService(BaseService):
    """
    Verifies, stores and queues processor webhooks.

    Idempotency:
        WebhookEvent.stripe_event_id is unique. A redelivered event that
        was already processed is acknowledged without being queued again.
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
    def receive(cls, payload: bytes, signature: str) -> ServiceResult[WebhookEvent]:
        """
        Verify and enqueue a webhook.

        Returns:
            ServiceResult containing the stored WebhookEvent, or a failure
            with INVALID_SIGNATURE / INVALID_EVENT
        """
        logger = cls.get_logger()

        if not signature:
            logger.warning("Webhook received without Stripe-Signature header")
            return ServiceResult.failure(
                "Missing signature",
                error_code="INVALID_SIGNATURE",
            )

        try:
            event_data = cls.get_processor().verify_webhook(payload, signature)
        except StripeInvalidRequestError as e:
            logger.warning(
                "Webhook signature verification failed",
                extra={"error": str(e)},
            )
            return ServiceResult.failure(
                "Invalid signature",
                error_code="INVALID_SIGNATURE",
            )

        stripe_event_id = event_data.get("id")
        event_type = event_data.get("type")

        if not stripe_event_id or not event_type:
            logger.warning("Webhook missing required fields")
            return ServiceResult.failure(
                "Invalid event",
                error_code="INVALID_EVENT",
            )

        logger.info(
            f"Received Stripe webhook: {event_type}",
            extra={
                "stripe_event_id": stripe_event_id,
                "event_type": event_type,
            },
        )

        webhook_event, created = WebhookEvent.objects.get_or_create(
            stripe_event_id=stripe_event_id,
            defaults={
                "event_type": event_type,
                "payload": event_data,
                "status": WebhookEventStatus.PENDING,
            },
        )

        if not created and webhook_event.is_processed:
            logger.info(
                "Webhook already processed",
                extra={"stripe_event_id": stripe_event_id},
            )
            return ServiceResult.success(webhook_event)

        from payments.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={
                "stripe_event_id": stripe_event_id,
                "webhook_event_id": str(webhook_event.id),
                "created": created,
            },
        )

        return ServiceResult.success(webhook_event)
