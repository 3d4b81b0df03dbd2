"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import PaymentFactory, WebhookEventFactory

    # Cash payment for a fresh booking
    payment = PaymentFactory()

    # Card payment taken through the processor
    payment = PaymentFactory(processor=True)

    # Payment against an existing booking
    payment = PaymentFactory(booking=booking, amount_cents=5000)
"""

import uuid

import factory
from django.utils import timezone

from bookings.tests.factories import BookingFactory
from payments.models import Payment, WebhookEvent
from payments.state_machines import (
    PaymentMethod,
    PaymentStatus,
    WebhookEventStatus,
)


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Factory for Payment instances.

    Defaults to a $180.00 cash payment with status PAID.

    Traits:
        processor: Card payment with a processor payment id
    """

    class Meta:
        model = Payment

    booking = factory.SubFactory(BookingFactory)
    client_id = factory.SelfAttribute("booking.client_id")
    amount_cents = 18000
    tip_cents = 0
    method = PaymentMethod.CASH
    status = PaymentStatus.PAID
    refunded_cents = 0
    paid_at = factory.LazyFunction(timezone.now)

    class Params:
        processor = factory.Trait(
            method=PaymentMethod.PROCESSOR_CARD,
            processor_payment_id=factory.Sequence(lambda n: f"pi_test_{n:06d}"),
        )


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent instances.

    The payload mirrors Stripe's event envelope; pass ``payload`` to set
    the data object.
    """

    class Meta:
        model = WebhookEvent

    stripe_event_id = factory.LazyFunction(lambda: f"evt_{uuid.uuid4().hex[:24]}")
    event_type = "checkout.session.completed"
    payload = factory.LazyAttribute(
        lambda o: {
            "id": o.stripe_event_id,
            "type": o.event_type,
            "data": {"object": {}},
        }
    )
    status = WebhookEventStatus.PENDING
    retry_count = 0
