"""
Typed reconciliation events.

Every SyncLogEntry is built from one of these frozen dataclasses. The class
fixes the entry's kind, status, direction and entity type; the instance
fields become the stored payload. ``parse_event`` turns a stored row back
into its typed event.

Usage:
    from payments.sync_events import RefundFailed, parse_event

    event = RefundFailed(
        amount_cents=5000,
        currency="usd",
        idempotency_key=key,
        error="Card was declined",
    )
    SyncLogService.record(event, local_id=payment.id)

    entry = SyncLogEntry.objects.latest("created_at")
    parse_event(entry.event_kind, entry.payload)  # RefundFailed(...)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, ClassVar

from core.money import Money

from payments.state_machines import SyncDirection, SyncEntityType, SyncStatus


@dataclass(frozen=True)
class SyncEvent:
    """Base for all reconciliation events."""

    kind: ClassVar[str]
    status: ClassVar[str]
    entity_type: ClassVar[str]
    direction: ClassVar[str] = SyncDirection.OUTBOUND

    def message(self, local_id: str) -> str:
        raise NotImplementedError

    @property
    def error_message(self) -> str | None:
        return None

    def to_payload(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


# =============================================================================
# Refunds (outbound)
# =============================================================================


@dataclass(frozen=True)
class RefundSucceeded(SyncEvent):
    kind: ClassVar[str] = "refund_succeeded"
    status: ClassVar[str] = SyncStatus.SUCCESS
    entity_type: ClassVar[str] = SyncEntityType.REFUND

    amount_cents: int
    currency: str
    idempotency_key: str
    refund_id: str
    reason: str | None = None

    def message(self, local_id: str) -> str:
        return f"Refunded {Money(self.amount_cents).format()}"


@dataclass(frozen=True)
class RefundFailed(SyncEvent):
    kind: ClassVar[str] = "refund_failed"
    status: ClassVar[str] = SyncStatus.FAILED
    entity_type: ClassVar[str] = SyncEntityType.REFUND

    amount_cents: int
    currency: str
    idempotency_key: str
    error: str
    error_code: str | None = None
    reason: str | None = None

    def message(self, local_id: str) -> str:
        return f"Refund of {Money(self.amount_cents).format()} failed"

    @property
    def error_message(self) -> str | None:
        return self.error


@dataclass(frozen=True)
class RefundConflict(SyncEvent):
    """
    The processor refunded money but the local update lost a race.

    The remote refund exists and must be reconciled by hand.
    """

    kind: ClassVar[str] = "refund_conflict"
    status: ClassVar[str] = SyncStatus.FAILED
    entity_type: ClassVar[str] = SyncEntityType.REFUND

    amount_cents: int
    refund_id: str
    refundable_cents: int

    def message(self, local_id: str) -> str:
        return (
            f"Refund of {Money(self.amount_cents).format()} succeeded remotely "
            "but was rejected locally"
        )

    @property
    def error_message(self) -> str | None:
        return (
            f"Only {Money(self.refundable_cents).format()} was refundable "
            "when the local update ran"
        )


# =============================================================================
# Payment links (outbound)
# =============================================================================


@dataclass(frozen=True)
class PaymentLinkCreated(SyncEvent):
    kind: ClassVar[str] = "payment_link_created"
    status: ClassVar[str] = SyncStatus.SUCCESS
    entity_type: ClassVar[str] = SyncEntityType.PAYMENT_LINK

    url: str
    order_id: str
    amount_cents: int
    link_type: str

    def message(self, local_id: str) -> str:
        return f"Created {self.link_type} payment link for booking #{local_id}"


@dataclass(frozen=True)
class PaymentLinkFailed(SyncEvent):
    kind: ClassVar[str] = "payment_link_failed"
    status: ClassVar[str] = SyncStatus.FAILED
    entity_type: ClassVar[str] = SyncEntityType.PAYMENT_LINK

    amount_cents: int
    link_type: str
    error: str

    def message(self, local_id: str) -> str:
        return "Failed to create payment link"

    @property
    def error_message(self) -> str | None:
        return self.error


# =============================================================================
# Webhooks (inbound)
# =============================================================================


@dataclass(frozen=True)
class WebhookPaymentLinked(SyncEvent):
    kind: ClassVar[str] = "webhook_payment_linked"
    status: ClassVar[str] = SyncStatus.SUCCESS
    entity_type: ClassVar[str] = SyncEntityType.PAYMENT
    direction: ClassVar[str] = SyncDirection.INBOUND

    stripe_event_id: str
    order_id: str
    payment_id: str
    amount_cents: int

    def message(self, local_id: str) -> str:
        return f"Recorded online payment of {Money(self.amount_cents).format()}"


@dataclass(frozen=True)
class WebhookRefundApplied(SyncEvent):
    kind: ClassVar[str] = "webhook_refund_applied"
    status: ClassVar[str] = SyncStatus.SUCCESS
    entity_type: ClassVar[str] = SyncEntityType.REFUND
    direction: ClassVar[str] = SyncDirection.INBOUND

    stripe_event_id: str
    refund_id: str
    amount_cents: int

    def message(self, local_id: str) -> str:
        return f"Applied external refund of {Money(self.amount_cents).format()}"


@dataclass(frozen=True)
class WebhookUnmatched(SyncEvent):
    kind: ClassVar[str] = "webhook_unmatched"
    status: ClassVar[str] = SyncStatus.SKIPPED
    entity_type: ClassVar[str] = SyncEntityType.WEBHOOK
    direction: ClassVar[str] = SyncDirection.INBOUND

    stripe_event_id: str
    event_type: str
    object_id: str
    reason: str = ""

    def message(self, local_id: str) -> str:
        return f"No local record for {self.event_type} {self.object_id}"


EVENT_TYPES: dict[str, type[SyncEvent]] = {
    cls.kind: cls
    for cls in (
        RefundSucceeded,
        RefundFailed,
        RefundConflict,
        PaymentLinkCreated,
        PaymentLinkFailed,
        WebhookPaymentLinked,
        WebhookRefundApplied,
        WebhookUnmatched,
    )
}


def parse_event(kind: str, payload: dict[str, Any]) -> SyncEvent:
    """
    Rebuild a typed event from a stored kind and payload.

    Unknown payload keys are ignored so older rows still parse after a
    field is removed.

    Raises:
        KeyError: If ``kind`` is not a known event kind
    """
    event_cls = EVENT_TYPES[kind]
    names = {f.name for f in dataclasses.fields(event_cls)}
    return event_cls(**{k: v for k, v in payload.items() if k in names})
