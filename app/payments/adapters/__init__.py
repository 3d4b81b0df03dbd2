"""
Payment adapters for external services.

Services talk to the processor through the PaymentProcessor protocol;
StripeAdapter is the production implementation. All processor calls go
through an adapter so error handling, timeouts, idempotency, and logging
stay consistent.

Usage:
    from payments.adapters import IdempotencyKeyGenerator, StripeAdapter

    link = StripeAdapter.create_payment_link(
        booking_id=str(booking.id),
        service_name="Haircut",
        amount_cents=5000,
        link_type="deposit",
        currency="usd",
        idempotency_key=IdempotencyKeyGenerator.generate(
            "payment_link", booking.id, "deposit-5000"
        ),
    )
"""

from payments.adapters.base import (
    PaymentProcessor,
    ProcessorPayment,
    ProcessorPaymentLink,
    ProcessorRefund,
)
from payments.adapters.stripe_adapter import IdempotencyKeyGenerator, StripeAdapter

__all__ = [
    "IdempotencyKeyGenerator",
    "PaymentProcessor",
    "ProcessorPayment",
    "ProcessorPaymentLink",
    "ProcessorRefund",
    "StripeAdapter",
]
