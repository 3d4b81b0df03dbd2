"""
Tests for RefundService.

Tests cover:
- Full and partial refunds of cash and card payments
- Business-rule rejections
- Reconciliation log entries for processor calls
- Distributed lock failures
- Deterministic idempotency keys
- The lost-update race between concurrent refunds
"""

import uuid

import pytest
from django.test import override_settings

from bookings.services import BalanceService
from core.actors import Actor
from payments.exceptions import (
    StripeCardDeclinedError,
    StripeTimeoutError,
)
from payments.models import Payment, SyncLogEntry
from payments.services import RefundService
from payments.services.refund_service import RETRYABLE_ERROR_CODES
from payments.state_machines import PaymentStatus, SyncStatus
from payments.tests.factories import PaymentFactory


def reload(payment):
    return Payment.objects.get(id=payment.id)


# =============================================================================
# Successful Refunds
# =============================================================================


@pytest.mark.django_db
class TestProcessRefund:
    """Tests for the refund happy path."""

    def test_partial_then_full_refund(self, cash_payment, fake_processor):
        """$50 then $130 of an $180 payment ends fully refunded."""
        first = RefundService.process_refund(cash_payment.id, 5000)

        assert first.success
        payment = reload(cash_payment)
        assert payment.refunded_cents == 5000
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED

        second = RefundService.process_refund(cash_payment.id, 13000)

        assert second.success
        payment = reload(cash_payment)
        assert payment.refunded_cents == 18000
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refunded_at is not None

    def test_nothing_left_to_refund(self, cash_payment, fake_processor):
        """A fully refunded payment reports $0.00 refundable."""
        RefundService.process_refund(cash_payment.id, 18000)

        result = RefundService.process_refund(cash_payment.id, 1)

        assert not result.success
        assert result.error == "Maximum refundable amount is $0.00"
        assert result.error_code == "AMOUNT_EXCEEDS_REFUNDABLE"

    def test_cash_refund_never_calls_processor(self, cash_payment, fake_processor):
        result = RefundService.process_refund(cash_payment.id, 5000)

        assert result.success
        assert result.data.processor_refund_id is None
        fake_processor.refund_payment.assert_not_called()
        assert SyncLogEntry.objects.count() == 0

    def test_card_refund_goes_through_processor(self, card_payment, fake_processor):
        actor = Actor(id="staff-1", display_name="Front desk")

        result = RefundService.process_refund(
            card_payment.id,
            5000,
            reason="Client rescheduled",
            actor=actor,
        )

        assert result.success
        assert result.data.processor_refund_id == "re_5000"
        assert result.data.payment.refunded_cents == 5000

        kwargs = fake_processor.refund_payment.call_args.kwargs
        assert kwargs["payment_id"] == "pi_card_test"
        assert kwargs["amount_cents"] == 5000
        assert kwargs["currency"] == "usd"
        assert kwargs["reason"] == "Client rescheduled"

        entry = SyncLogEntry.objects.get()
        assert entry.event_kind == "refund_succeeded"
        assert entry.status == SyncStatus.SUCCESS
        assert entry.local_id == str(card_payment.id)
        assert entry.remote_id == "re_5000"
        assert entry.message == "Refunded $50.00"
        assert entry.actor_id == "staff-1"
        assert entry.payload["idempotency_key"] == kwargs["idempotency_key"]

    def test_reason_appended_to_notes(self, db, fake_processor):
        payment = PaymentFactory(notes="Paid at desk")

        RefundService.process_refund(payment.id, 1000, reason="Touch-up cancelled")

        assert reload(payment).notes == "Paid at desk | Refund: Touch-up cancelled"

    def test_no_reason_leaves_notes(self, cash_payment, fake_processor):
        RefundService.process_refund(cash_payment.id, 1000)

        assert reload(cash_payment).notes == ""

    def test_refund_reopens_balance(
        self, cash_payment, fake_processor, django_capture_on_commit_callbacks
    ):
        """A partial refund keeps the payment counted at its full amount."""
        assert BalanceService.get_balance(cash_payment.booking_id).remaining.cents == 0

        with django_capture_on_commit_callbacks(execute=True):
            RefundService.process_refund(cash_payment.id, 5000)

        assert BalanceService.get_balance(cash_payment.booking_id).remaining.cents == 0

        with django_capture_on_commit_callbacks(execute=True):
            RefundService.process_refund(cash_payment.id, 13000)

        balance = BalanceService.get_balance(cash_payment.booking_id)
        assert balance.paid.cents == 0
        assert balance.remaining.cents == 18000


# =============================================================================
# Rejections
# =============================================================================


@pytest.mark.django_db
class TestProcessRefundRejections:
    """Tests for expected business-rule failures."""

    def test_payment_not_found(self, fake_processor):
        result = RefundService.process_refund(uuid.uuid4(), 5000)

        assert not result.success
        assert result.error == "Payment not found"
        assert result.error_code == "PAYMENT_NOT_FOUND"

    @pytest.mark.parametrize(
        "amount,message",
        [
            (50.0, "Refund amount must be a whole number of cents"),
            (0, "Refund amount must be positive"),
            (-500, "Refund amount must be positive"),
        ],
    )
    def test_invalid_amount(self, cash_payment, fake_processor, amount, message):
        result = RefundService.process_refund(cash_payment.id, amount)

        assert not result.success
        assert result.error == message
        assert result.error_code == "INVALID_AMOUNT"

    def test_failed_payment(self, db, fake_processor):
        payment = PaymentFactory(status=PaymentStatus.FAILED)

        result = RefundService.process_refund(payment.id, 100)

        assert result.error_code == "PAYMENT_NOT_REFUNDABLE"

    def test_exceeds_refundable(self, cash_payment, fake_processor):
        RefundService.process_refund(cash_payment.id, 5000)

        result = RefundService.process_refund(cash_payment.id, 13001)

        assert result.error == "Maximum refundable amount is $130.00"
        assert reload(cash_payment).refunded_cents == 5000

    def test_rejections_are_not_logged(self, card_payment, fake_processor):
        RefundService.process_refund(card_payment.id, 18001)

        fake_processor.refund_payment.assert_not_called()
        assert SyncLogEntry.objects.count() == 0

    def test_unconfigured_processor(self, card_payment, unconfigured_processor):
        result = RefundService.process_refund(card_payment.id, 5000)

        assert not result.success
        assert result.error_code == "PROCESSOR_NOT_CONFIGURED"
        unconfigured_processor.refund_payment.assert_not_called()
        assert SyncLogEntry.objects.count() == 0
        assert reload(card_payment).refunded_cents == 0


# =============================================================================
# Processor Failures
# =============================================================================


@pytest.mark.django_db
class TestProcessRefundProcessorFailure:
    """Tests for processor errors."""

    def test_failure_logged_and_state_untouched(self, card_payment, fake_processor):
        fake_processor.refund_payment.side_effect = StripeCardDeclinedError(
            "Your card was declined."
        )

        result = RefundService.process_refund(card_payment.id, 5000, reason="No-show")

        assert not result.success
        assert result.error == "Your card was declined."
        assert result.error_code == "CARD_DECLINED"

        payment = reload(card_payment)
        assert payment.refunded_cents == 0
        assert payment.status == PaymentStatus.PAID

        entry = SyncLogEntry.objects.get()
        assert entry.event_kind == "refund_failed"
        assert entry.status == SyncStatus.FAILED
        assert entry.message == "Refund of $50.00 failed"
        assert entry.error_message == "Your card was declined."
        assert entry.payload["error_code"] == "CARD_DECLINED"

    def test_one_entry_per_processor_call(self, card_payment, fake_processor):
        """Every processor call, failed or not, writes exactly one entry."""
        succeed = fake_processor.refund_payment.side_effect
        fake_processor.refund_payment.side_effect = [
            StripeTimeoutError("Request timed out"),
            succeed(
                payment_id="pi_card_test",
                amount_cents=5000,
            ),
        ]

        RefundService.process_refund(card_payment.id, 5000)
        RefundService.process_refund(card_payment.id, 5000)

        assert fake_processor.refund_payment.call_count == 2
        kinds = list(
            SyncLogEntry.objects.order_by("created_at").values_list("event_kind", flat=True)
        )
        assert sorted(kinds) == ["refund_failed", "refund_succeeded"]

    def test_retry_reuses_idempotency_key(self, card_payment, fake_processor):
        """A retried refund sends the same idempotency key."""
        succeed = fake_processor.refund_payment.side_effect
        fake_processor.refund_payment.side_effect = [
            StripeTimeoutError("Request timed out"),
            succeed(payment_id="pi_card_test", amount_cents=5000),
        ]

        first = RefundService.process_refund(card_payment.id, 5000)
        second = RefundService.process_refund(card_payment.id, 5000)

        assert first.error_code in RETRYABLE_ERROR_CODES
        assert second.success
        keys = [
            call.kwargs["idempotency_key"]
            for call in fake_processor.refund_payment.call_args_list
        ]
        assert keys[0] == keys[1]

    def test_next_refund_gets_new_key(self, card_payment, fake_processor):
        RefundService.process_refund(card_payment.id, 5000)
        RefundService.process_refund(card_payment.id, 5000)

        keys = [
            call.kwargs["idempotency_key"]
            for call in fake_processor.refund_payment.call_args_list
        ]
        assert keys[0] != keys[1]


# =============================================================================
# Concurrency
# =============================================================================


@pytest.mark.django_db
class TestProcessRefundConcurrency:
    """Tests for locking and the conditional update."""

    @override_settings(PAYMENTS_LOCK_TIMEOUT_SECONDS=0.1)
    def test_lock_held_elsewhere(self, cash_payment, fake_processor, mock_redis):
        mock_redis.set.return_value = False

        result = RefundService.process_refund(cash_payment.id, 5000)

        assert not result.success
        assert result.error == "A refund is already in progress for this payment"
        assert result.error_code == "LOCK_ACQUISITION_FAILED"
        assert result.error_code in RETRYABLE_ERROR_CODES
        assert reload(cash_payment).refunded_cents == 0

    def test_lock_released_after_refund(self, cash_payment, fake_processor, mock_redis):
        RefundService.process_refund(cash_payment.id, 5000)

        key = mock_redis.set.call_args.args[0]
        assert key == f"lock:refund:payment:{cash_payment.id}"
        mock_redis.eval.assert_called_once()

    def test_lost_update_is_reported_as_conflict(self, card_payment, fake_processor):
        """
        A competing refund commits while the processor call is in flight.

        The processor refund stands, the local update is rejected, and a
        refund_conflict entry records the remote refund for reconciliation.
        """
        succeed = fake_processor.refund_payment.side_effect

        def competing_refund(**kwargs):
            RefundService.apply_refund_locally(card_payment.id, 10000)
            return succeed(**kwargs)

        fake_processor.refund_payment.side_effect = competing_refund

        result = RefundService.process_refund(card_payment.id, 13000)

        assert not result.success
        assert result.error_code == "REFUND_CONFLICT"

        payment = reload(card_payment)
        assert payment.refunded_cents == 10000
        assert payment.refunded_cents <= payment.amount_cents

        conflict = SyncLogEntry.objects.get(event_kind="refund_conflict")
        assert conflict.remote_id == "re_13000"
        assert conflict.payload["refundable_cents"] == 8000

    def test_concurrent_refunds_exactly_one_succeeds(
        self, card_payment, fake_processor, mock_redis
    ):
        """
        Two $100 refunds of a $180 payment both pass the first check.

        The competing refund commits while the second waits for the lock;
        the second re-validates under the lock and never reaches the
        processor.
        """
        competing = []

        def acquire_after_competitor(*args, **kwargs):
            if not competing:
                competing.append(None)
                competing[0] = RefundService.process_refund(card_payment.id, 10000)
            return True

        mock_redis.set.side_effect = acquire_after_competitor

        waited = RefundService.process_refund(card_payment.id, 10000)

        assert competing[0].success
        assert not waited.success
        assert waited.error == "Maximum refundable amount is $80.00"
        assert waited.error_code == "AMOUNT_EXCEEDS_REFUNDABLE"

        fake_processor.refund_payment.assert_called_once()
        payment = reload(card_payment)
        assert payment.refunded_cents == 10000
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED
        assert SyncLogEntry.objects.filter(event_kind="refund_succeeded").count() == 1

    def test_cash_race_rejected_without_conflict(self, cash_payment):
        """Two refunds that fit alone but not together: only one applies."""
        first = RefundService.apply_refund_locally(cash_payment.id, 10000)
        second = RefundService.apply_refund_locally(cash_payment.id, 10000)

        assert first is not None
        assert second is None
        assert reload(cash_payment).refunded_cents == 10000


# =============================================================================
# apply_refund_locally
# =============================================================================


@pytest.mark.django_db
class TestApplyRefundLocally:
    """Tests for the conditional local update."""

    def test_exact_remaining_amount(self, cash_payment):
        payment = RefundService.apply_refund_locally(cash_payment.id, 18000)

        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refundable.cents == 0

    def test_bumps_version(self, cash_payment):
        payment = RefundService.apply_refund_locally(cash_payment.id, 100)

        assert payment.version == cash_payment.version + 1

    def test_note_appended(self, cash_payment):
        payment = RefundService.apply_refund_locally(
            cash_payment.id, 100, note="Refund: External refund"
        )

        assert payment.notes == "Refund: External refund"

    def test_refunded_payment_rejected(self, db):
        payment = PaymentFactory()
        RefundService.apply_refund_locally(payment.id, payment.amount_cents)

        assert RefundService.apply_refund_locally(payment.id, 1) is None
