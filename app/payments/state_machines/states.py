"""
State enums for payment models.

These are Django TextChoices for database storage. Payment.status is managed
by django-fsm; the remaining enums are plain choice sets.

State Machines Overview:

Payment Status:
    paid → partially_refunded → refunded
    paid → refunded
    (failed is terminal and never reached from paid)

WebhookEvent Status:
    pending → processing → processed
    pending → processing → failed (can retry)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Lifecycle status of a Payment.

    Transitions are monotonic: a refunded payment never becomes
    partially refunded or paid again.

    State Flow:
        PAID → PARTIALLY_REFUNDED → REFUNDED
        PAID → REFUNDED
    """

    PAID = "paid", "Paid"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially Refunded"
    REFUNDED = "refunded", "Refunded"
    FAILED = "failed", "Failed"


# Payments whose amount counts toward what a booking has collected
COUNTED_PAYMENT_STATUSES = frozenset(
    [
        PaymentStatus.PAID,
        PaymentStatus.PARTIALLY_REFUNDED,
    ]
)

# Payments that may still be refunded
REFUNDABLE_PAYMENT_STATUSES = COUNTED_PAYMENT_STATUSES


class PaymentMethod(models.TextChoices):
    """How a payment was settled."""

    CASH = "cash", "Cash"
    PROCESSOR_CARD = "processor_card", "Card (processor)"
    PROCESSOR_OTHER = "processor_other", "Other (processor)"


class PaymentLinkType(models.TextChoices):
    """What a hosted checkout link collects."""

    DEPOSIT = "deposit", "Deposit"
    BALANCE = "balance", "Balance"


class SyncDirection(models.TextChoices):
    """Direction of a processor interaction recorded in the sync log."""

    OUTBOUND = "outbound", "Outbound"
    INBOUND = "inbound", "Inbound"


class SyncStatus(models.TextChoices):
    """Outcome of a processor interaction recorded in the sync log."""

    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class SyncEntityType(models.TextChoices):
    """Local entity a sync log entry refers to."""

    REFUND = "refund", "Refund"
    PAYMENT_LINK = "payment_link", "Payment Link"
    PAYMENT = "payment", "Payment"
    WEBHOOK = "webhook", "Webhook"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
