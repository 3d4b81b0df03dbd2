"""
State machine enums and helpers for payment models.
"""

from payments.state_machines.states import (
    COUNTED_PAYMENT_STATUSES,
    REFUNDABLE_PAYMENT_STATUSES,
    PaymentLinkType,
    PaymentMethod,
    PaymentStatus,
    SyncDirection,
    SyncEntityType,
    SyncStatus,
    WebhookEventStatus,
)

__all__ = [
    "COUNTED_PAYMENT_STATUSES",
    "REFUNDABLE_PAYMENT_STATUSES",
    "PaymentLinkType",
    "PaymentMethod",
    "PaymentStatus",
    "SyncDirection",
    "SyncEntityType",
    "SyncStatus",
    "WebhookEventStatus",
]
