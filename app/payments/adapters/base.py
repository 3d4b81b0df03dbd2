"""
Processor capability surface and result types.

Services depend on this narrow Protocol rather than on Stripe directly, so
the concrete processor is pluggable and tests can pass a MagicMock.

Capabilities:
    - get_payment: read-only enrichment (receipt URL, order reference)
    - refund_payment: idempotent refund of a processor payment
    - create_payment_link: hosted checkout URL plus order reference
    - verify_webhook: signature check and parse of an inbound event

Usage:
    from payments.adapters import PaymentProcessor

    def refund(processor: PaymentProcessor, ...):
        result = processor.refund_payment(
            idempotency_key=key,
            payment_id="pi_123",
            amount_cents=5000,
            currency="usd",
        )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class ProcessorPayment:
    """
    Enrichment data for a processor payment.

    Attributes:
        id: Processor payment id (pi_xxx)
        receipt_url: Hosted receipt, if the charge has one
        order_id: Checkout session/order reference, if any
    """

    id: str
    receipt_url: str | None = None
    order_id: str | None = None


@dataclass(frozen=True)
class ProcessorRefund:
    """
    Result of a processor refund.

    Attributes:
        id: Refund id (re_xxx)
        status: Processor refund status (succeeded, pending, ...)
        amount_cents: Refunded amount in cents
        payment_id: Refunded processor payment id
    """

    id: str
    status: str
    amount_cents: int
    payment_id: str
    raw_response: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ProcessorPaymentLink:
    """
    Hosted checkout link.

    Attributes:
        url: URL to send to the client
        order_id: Processor order reference (checkout session id)
    """

    url: str
    order_id: str


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class PaymentProcessor(Protocol):
    """
    Protocol for external payment processors.

    Every method may raise a payments.exceptions.PaymentProcessingError
    subclass; nothing else is allowed to escape.
    """

    def is_configured(self) -> bool:
        """Return True when credentials for the processor are present."""
        ...

    def get_payment(self, payment_id: str) -> ProcessorPayment:
        """Fetch receipt URL and order reference for a processor payment."""
        ...

    def refund_payment(
        self,
        idempotency_key: str,
        payment_id: str,
        amount_cents: int,
        currency: str,
        reason: str | None = None,
    ) -> ProcessorRefund:
        """Refund ``amount_cents`` of a processor payment."""
        ...

    def create_payment_link(
        self,
        booking_id: str,
        service_name: str,
        amount_cents: int,
        link_type: str,
        currency: str,
        idempotency_key: str,
    ) -> ProcessorPaymentLink:
        """Create a hosted checkout URL for a booking."""
        ...

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook signature and return the parsed event."""
        ...
