"""
Webhook event handlers for Stripe events.

This module provides a handler registry and implementations for the
processor events that change the local ledger:

- checkout.session.completed: a hosted payment link was paid
- charge.refunded: money was refunded, possibly from the Stripe dashboard

Handlers return a ServiceResult. An event with no matching local record is
logged to the reconciliation log as skipped and treated as success, so the
processor does not keep redelivering it.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

from core.actors import Actor
from core.money import is_cents
from core.services import ServiceResult

from bookings.models import Booking
from payments.exceptions import DuplicatePaymentError, LockAcquisitionError
from payments.locks import refund_lock
from payments.models import Payment, WebhookEvent
from payments.services import PaymentRecorder, RefundService, SyncLogService
from payments.state_machines import PaymentLinkType, PaymentMethod
from payments.sync_events import (
    RefundSucceeded,
    WebhookPaymentLinked,
    WebhookRefundApplied,
    WebhookUnmatched,
)

logger = logging.getLogger(__name__)

WEBHOOK_ACTOR = Actor.webhook("stripe")

EXTERNAL_REFUND_NOTE = "Refund: External refund"


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "charge.refunded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are acknowledged with success.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event)


def _record_unmatched(
    webhook_event: WebhookEvent,
    object_id: str,
    reason: str,
) -> ServiceResult:
    SyncLogService.record(
        WebhookUnmatched(
            stripe_event_id=webhook_event.stripe_event_id,
            event_type=webhook_event.event_type,
            object_id=object_id or "",
            reason=reason,
        ),
        local_id=webhook_event.id,
        remote_id=object_id or None,
        actor=WEBHOOK_ACTOR,
    )
    return ServiceResult.success(None)


# =============================================================================
# Checkout Handlers
# =============================================================================


def _find_booking_for_session(session: dict[str, Any]) -> Booking | None:
    """Match by stored order reference, then by client_reference_id."""
    booking = Booking.objects.filter(processor_order_id=session.get("id")).first()
    if booking is not None:
        return booking

    reference = session.get("client_reference_id") or (
        session.get("metadata") or {}
    ).get("booking_id")
    if not reference:
        return None
    try:
        booking_id = uuid.UUID(str(reference))
    except ValueError:
        return None
    return Booking.objects.filter(id=booking_id).first()


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Record the payment for a completed hosted checkout.

    This handler:
    1. Finds the booking for the session
    2. Stores the session id as the booking's order reference if it has none
    3. Records a processor card payment (skipping already-recorded intents)
    4. Writes a webhook_payment_linked reconciliation entry
    """
    session = webhook_event.get_object()
    session_id = session.get("id")
    payment_intent_id = session.get("payment_intent")
    amount_cents = session.get("amount_total")
    link_type = (session.get("metadata") or {}).get("link_type")

    if not session_id:
        logger.error(
            "checkout.session.completed: Could not extract session id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract session id from checkout.session.completed",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    booking = _find_booking_for_session(session)
    if booking is None:
        logger.warning(
            "No booking found for checkout session",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "checkout_session_id": session_id,
            },
        )
        return _record_unmatched(webhook_event, session_id, "No booking for session")

    Booking.objects.filter(
        id=booking.id,
        processor_order_id__isnull=True,
    ).update(processor_order_id=session_id)

    if payment_intent_id and Payment.objects.filter(
        processor_payment_id=payment_intent_id
    ).exists():
        logger.info(
            "Checkout payment already recorded, skipping",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return ServiceResult.success(None)

    if not is_cents(amount_cents) or amount_cents <= 0:
        return ServiceResult.failure(
            "Checkout session has no positive amount_total",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    notes = "Deposit via online checkout" if link_type == PaymentLinkType.DEPOSIT else None

    try:
        payment = PaymentRecorder.record_payment(
            booking_id=booking.id,
            client_id=booking.client_id,
            amount_cents=amount_cents,
            method=PaymentMethod.PROCESSOR_CARD,
            processor_payment_id=payment_intent_id,
            notes=notes,
            actor=WEBHOOK_ACTOR,
        )
    except DuplicatePaymentError:
        logger.info(
            "Checkout payment recorded concurrently, skipping",
            extra={"payment_intent_id": payment_intent_id},
        )
        return ServiceResult.success(None)

    SyncLogService.record(
        WebhookPaymentLinked(
            stripe_event_id=webhook_event.stripe_event_id,
            order_id=session_id,
            payment_id=str(payment.id),
            amount_cents=amount_cents,
        ),
        local_id=booking.id,
        remote_id=payment_intent_id,
        actor=WEBHOOK_ACTOR,
    )

    return ServiceResult.success(payment)


# =============================================================================
# Refund Handlers
# =============================================================================


def _already_applied(refund_id: str) -> bool:
    return SyncLogService.has_remote_id(
        RefundSucceeded.kind, refund_id
    ) or SyncLogService.has_remote_id(WebhookRefundApplied.kind, refund_id)


def _external_refunds(charge: dict[str, Any], payment: Payment) -> list[tuple[str, int]]:
    """
    (refund id, amount) pairs described by a charge.

    Newer API versions omit the embedded refund list; the difference between
    amount_refunded and what is already applied locally is then treated as
    a single refund keyed by charge id and cumulative total.
    """
    refunds = (charge.get("refunds") or {}).get("data")
    if refunds:
        return [
            (refund["id"], refund.get("amount", 0))
            for refund in refunds
            if refund.get("id") and refund.get("status", "succeeded") == "succeeded"
        ]

    amount_refunded = charge.get("amount_refunded") or 0
    delta = amount_refunded - payment.refunded_cents
    if delta <= 0:
        return []
    return [(f"{charge.get('id')}:{amount_refunded}", delta)]


@register_handler("charge.refunded")
def handle_charge_refunded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply refunds made outside this system.

    Refunds issued by RefundService are already in the reconciliation log
    under their refund id and are skipped. Anything else (a refund from
    the Stripe dashboard) is applied through the same conditional update
    RefundService uses, under the same per-payment lock. If a refund holds
    the lock, the event fails and is retried by retry_failed_webhooks.
    """
    charge = webhook_event.get_object()
    payment_intent_id = charge.get("payment_intent")

    if not payment_intent_id:
        logger.error(
            "charge.refunded: Could not extract payment_intent",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "charge_id": charge.get("id"),
            },
        )
        return ServiceResult.failure(
            "Could not extract payment_intent from charge.refunded",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payment = Payment.objects.filter(processor_payment_id=payment_intent_id).first()
    if payment is None:
        logger.warning(
            "Payment not found for charge.refunded",
            extra={
                "payment_intent_id": payment_intent_id,
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return _record_unmatched(webhook_event, payment_intent_id, "No payment for intent")

    # Serialize with RefundService so a refund whose processor call has
    # returned but whose local update is pending is never applied twice
    try:
        with refund_lock(payment.id):
            applied = _apply_external_refunds(webhook_event, charge, payment.id)
    except LockAcquisitionError as e:
        logger.warning(
            "Refund in progress, deferring charge.refunded",
            extra={
                "payment_id": str(payment.id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return ServiceResult.failure(
            "A refund is already in progress for this payment",
            error_code=e.error_code,
        )

    logger.info(
        "Processed charge.refunded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_id": str(payment.id),
            "refunds_applied": applied,
        },
    )

    return ServiceResult.success(Payment.objects.get(id=payment.id))


def _apply_external_refunds(
    webhook_event: WebhookEvent,
    charge: dict[str, Any],
    payment_id: uuid.UUID,
) -> int:
    """Apply a charge's unapplied refunds. Must run under the refund lock."""
    payment = Payment.objects.get(id=payment_id)

    applied = 0
    for refund_id, amount_cents in _external_refunds(charge, payment):
        if amount_cents <= 0 or _already_applied(refund_id):
            continue

        updated = RefundService.apply_refund_locally(
            payment.id,
            amount_cents,
            note=EXTERNAL_REFUND_NOTE,
        )
        if updated is None:
            logger.error(
                "External refund exceeds local refundable amount",
                extra={
                    "payment_id": str(payment.id),
                    "refund_id": refund_id,
                    "amount_cents": amount_cents,
                },
            )
            _record_unmatched(
                webhook_event,
                refund_id,
                "Refund exceeds local refundable amount",
            )
            continue

        SyncLogService.record(
            WebhookRefundApplied(
                stripe_event_id=webhook_event.stripe_event_id,
                refund_id=refund_id,
                amount_cents=amount_cents,
            ),
            local_id=payment.id,
            remote_id=refund_id,
            actor=WEBHOOK_ACTOR,
        )
        applied += 1

    return applied
