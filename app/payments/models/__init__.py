"""
Payment domain models.

- Payment: A settlement event against a booking (FSM-managed status)
- SyncLogEntry: Append-only trail of processor interactions
- WebhookEvent: Inbound Stripe webhook events for idempotent processing
"""

from payments.models.payment import Payment
from payments.models.sync_log import SyncLogEntry
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "SyncLogEntry",
    "WebhookEvent",
]
