"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing Stripe webhook events
- Retrying failed webhook events
- Resetting webhook events stuck in processing
- Retrying refunds that hit a transient processor failure

Usage:
    from payments.tasks import process_webhook_event, refund_payment_task

    # Queue a webhook for async processing
    process_webhook_event.delay(str(webhook_event.id))

    # Refund in the background; retries reuse the same idempotency key
    refund_payment_task.delay(str(payment.id), 5000, reason="No-show")
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.utils import timezone

from core.actors import Actor

from payments.models import WebhookEvent
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

STUCK_PROCESSING_THRESHOLD_MINUTES = 30
MAX_REFUND_RETRIES = 5


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a Stripe webhook event asynchronously.

    This task:
    1. Loads the WebhookEvent by ID
    2. Checks if already processed (idempotency)
    3. Marks as processing
    4. Dispatches to appropriate handler
    5. Marks as processed or failed

    Handlers manage their own transactions so processor lookups made
    while recording a payment never run inside one.

    Args:
        webhook_event_id: UUID of the WebhookEvent to process

    Returns:
        Dict with processing result status

    Raises:
        Exception: Re-raised to trigger Celery retry mechanism
    """
    # Import here to avoid circular imports
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    logger.info(
        "Processing webhook event",
        extra={"webhook_event_id": str(webhook_event_id)},
    )

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return {
            "status": "already_processed",
            "webhook_event_id": str(webhook_event_id),
        }

    webhook_event.mark_processing()
    webhook_event.save()

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()

        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "error": error_msg,
            },
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info(
            "Webhook processed successfully",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return {
            "status": "processed",
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
        }

    error_msg = result.error or "Handler returned failure"
    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
            "error_code": result.error_code,
        },
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to retry failed webhook events.

    Finds failed webhooks that haven't exceeded max retries and
    re-queues them for processing.

    Returns:
        Dict with count of webhooks queued for retry
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:100]

    queued_count = 0
    for webhook in failed_webhooks:
        process_webhook_event.delay(str(webhook.id))
        queued_count += 1
        logger.info(
            "Queued failed webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "retry_count": webhook.retry_count,
            },
        )

    logger.info(
        f"Queued {queued_count} failed webhooks for retry",
        extra={"queued_count": queued_count},
    )

    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Periodic task to reset stuck webhooks.

    Webhooks left in PROCESSING by a crashed worker are marked FAILED so
    retry_failed_webhooks picks them up.

    Returns:
        Dict with count of webhooks reset
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
            },
        )

    return {"reset_count": reset_count}


# =============================================================================
# Refund Tasks
# =============================================================================


@shared_task(bind=True, max_retries=MAX_REFUND_RETRIES, acks_late=True)
def refund_payment_task(
    self,
    payment_id: str,
    amount_cents: int,
    reason: str | None = None,
    actor_id: str | None = None,
) -> dict:
    """
    Refund a payment in the background.

    Transient failures (rate limits, timeouts, a held lock) are retried
    with exponential backoff. The refund idempotency key depends only on
    the payment's refunded total and the amount, so a retry after a timeout
    that actually succeeded remotely is deduplicated by the processor.

    Returns:
        Dict with the refund outcome
    """
    from payments.services import RETRYABLE_ERROR_CODES, RefundService

    actor = Actor(id=actor_id, kind="staff") if actor_id else Actor.system()

    result = RefundService.process_refund(
        payment_id=payment_id,
        amount_cents=amount_cents,
        reason=reason,
        actor=actor,
    )

    if result.success:
        return {
            "status": "refunded",
            "payment_id": str(payment_id),
            "refund_id": result.data.processor_refund_id,
        }

    if result.error_code in RETRYABLE_ERROR_CODES:
        countdown = min(5 * 2**self.request.retries, 300)
        logger.warning(
            "Refund hit a transient failure, retrying",
            extra={
                "payment_id": str(payment_id),
                "error_code": result.error_code,
                "retry": self.request.retries,
                "countdown": countdown,
            },
        )
        raise self.retry(countdown=countdown)

    logger.warning(
        "Background refund failed",
        extra={
            "payment_id": str(payment_id),
            "error_code": result.error_code,
            "error": result.error,
        },
    )
    return {
        "status": "failed",
        "payment_id": str(payment_id),
        "error": result.error,
        "error_code": result.error_code,
    }
