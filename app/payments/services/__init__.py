"""
Payment services for coordinating payment operations.

This module provides:
- PaymentRecorder: Records payments against bookings
- RefundService: Full and partial refunds through the processor
- PaymentLinkService: Hosted checkout links for deposits and balances
- SyncLogService: Append-only reconciliation log
- WebhookService: Verifies and queues inbound processor events

Usage:
    from payments.services import RefundService

    result = RefundService.process_refund(
        payment_id=payment.id,
        amount_cents=2500,
        reason="Client request",
    )
"""

from payments.services.payment_link_service import PaymentLink, PaymentLinkService
from payments.services.payment_recorder import PaymentRecorder
from payments.services.refund_service import (
    RETRYABLE_ERROR_CODES,
    RefundOutcome,
    RefundService,
)
from payments.services.sync_log_service import SyncLogService
from payments.services.webhook_service import WebhookService

__all__ = [
    "RETRYABLE_ERROR_CODES",
    "PaymentLink",
    "PaymentLinkService",
    "PaymentRecorder",
    "RefundOutcome",
    "RefundService",
    "SyncLogService",
    "WebhookService",
]
