"""
Pytest fixtures for payment tests.

Redis is never reached from these tests: ``mock_redis`` replaces the
connection used by DistributedLock for every test in this package.
Processor calls go through ``fake_processor``, injected into each service
with set_processor().

Usage:
    def test_refund(card_payment, fake_processor):
        RefundService.process_refund(card_payment.id, 5000)
        fake_processor.refund_payment.assert_called_once()
"""

import pytest

from bookings.tests.factories import BookingFactory
from payments.adapters import ProcessorPayment, ProcessorPaymentLink, ProcessorRefund
from payments.services import (
    PaymentLinkService,
    PaymentRecorder,
    RefundService,
    WebhookService,
)
from payments.tests.factories import PaymentFactory, WebhookEventFactory


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_redis(mocker):
    """
    Mock Redis client for distributed lock tests.

    Returns a MagicMock configured so every lock is free.
    """
    mock_client = mocker.MagicMock()
    mock_client.set.return_value = True
    mock_client.eval.return_value = 1

    mocker.patch(
        "payments.locks.get_redis_connection",
        return_value=mock_client,
    )
    return mock_client


@pytest.fixture
def redis_locks(mock_redis):
    """
    Make ``mock_redis`` honour SET NX and the token-checked release.

    Returns the dict of held lock keys to tokens.
    """
    held = {}

    def set_lock(key, token, nx=False, ex=None):
        if nx and key in held:
            return None
        held[key] = token
        return True

    def release(script, numkeys, key, token):
        if held.get(key) != token:
            return 0
        del held[key]
        return 1

    mock_redis.set.side_effect = set_lock
    mock_redis.eval.side_effect = release
    return held


@pytest.fixture
def fake_processor(mocker):
    """
    A configured processor whose calls succeed.

    Injected into every service that talks to the processor and removed
    again after the test.
    """
    processor = mocker.MagicMock()
    processor.is_configured.return_value = True
    processor.get_payment.return_value = ProcessorPayment(
        id="pi_test",
        receipt_url="https://pay.stripe.com/receipts/rcpt_test",
        order_id="cs_test_enriched",
    )
    processor.refund_payment.side_effect = lambda **kwargs: ProcessorRefund(
        id=f"re_{kwargs['amount_cents']}",
        status="succeeded",
        amount_cents=kwargs["amount_cents"],
        payment_id=kwargs["payment_id"],
    )
    processor.create_payment_link.return_value = ProcessorPaymentLink(
        url="https://checkout.stripe.com/c/pay/cs_test_link",
        order_id="cs_test_link",
    )

    services = [PaymentLinkService, PaymentRecorder, RefundService, WebhookService]
    for service in services:
        service.set_processor(processor)
    yield processor
    for service in services:
        service.set_processor(None)


@pytest.fixture
def unconfigured_processor(fake_processor):
    """The injected processor reports that it is not configured."""
    fake_processor.is_configured.return_value = False
    return fake_processor


# =============================================================================
# Ledger Fixtures
# =============================================================================


@pytest.fixture
def booking(db):
    """A confirmed $180.00 booking."""
    return BookingFactory(total_cents=18000)


@pytest.fixture
def cash_payment(db, booking):
    """A $180.00 cash payment."""
    return PaymentFactory(booking=booking, amount_cents=18000)


@pytest.fixture
def card_payment(db, booking):
    """A $180.00 card payment taken through the processor."""
    return PaymentFactory(
        booking=booking,
        amount_cents=18000,
        processor=True,
        processor_payment_id="pi_card_test",
    )


@pytest.fixture
def webhook_event(db):
    """A pending checkout.session.completed event with an empty object."""
    return WebhookEventFactory()
