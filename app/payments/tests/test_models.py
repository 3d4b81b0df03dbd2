"""
Tests for payment models.

Covers Payment state transitions and refund bookkeeping, database
constraints, optimistic version bumps, the append-only sync log, and
WebhookEvent processing helpers.
"""

import pytest
from django.db import IntegrityError
from django_fsm import TransitionNotAllowed

from core.exceptions import ConflictError
from core.money import Money

from payments.models import Payment, SyncLogEntry
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.state_machines import (
    PaymentStatus,
    SyncEntityType,
    SyncStatus,
    WebhookEventStatus,
)
from payments.tests.factories import PaymentFactory, WebhookEventFactory


@pytest.mark.django_db
class TestPaymentTransitions:
    """Tests for Payment FSM transitions."""

    def test_paid_to_partially_refunded(self, cash_payment):
        """A partial refund moves PAID to PARTIALLY_REFUNDED."""
        cash_payment.refund_partial()

        assert cash_payment.status == PaymentStatus.PARTIALLY_REFUNDED

    def test_partially_refunded_to_refunded(self):
        """Refunding the rest completes the refund."""
        payment = PaymentFactory(
            refunded_cents=5000,
            status=PaymentStatus.PARTIALLY_REFUNDED,
        )

        payment.refund_full()

        assert payment.status == PaymentStatus.REFUNDED

    def test_refunded_is_terminal(self):
        """A refunded payment cannot move again."""
        payment = PaymentFactory(
            refunded_cents=18000,
            status=PaymentStatus.REFUNDED,
        )

        with pytest.raises(TransitionNotAllowed):
            payment.refund_partial()

    def test_failed_cannot_be_refunded(self):
        """FAILED is outside the refund flow."""
        payment = PaymentFactory(status=PaymentStatus.FAILED)

        with pytest.raises(TransitionNotAllowed):
            payment.refund_full()

    def test_status_is_protected(self, cash_payment):
        """Status can only change through transitions."""
        with pytest.raises(AttributeError):
            cash_payment.status = PaymentStatus.REFUNDED

    def test_apply_refund_status_partial(self, cash_payment):
        """apply_refund_status picks PARTIALLY_REFUNDED below the amount."""
        cash_payment.refunded_cents = 5000
        cash_payment.apply_refund_status()

        assert cash_payment.status == PaymentStatus.PARTIALLY_REFUNDED

    def test_apply_refund_status_full(self, cash_payment):
        """apply_refund_status picks REFUNDED at the amount."""
        cash_payment.refunded_cents = 18000
        cash_payment.apply_refund_status()

        assert cash_payment.status == PaymentStatus.REFUNDED


@pytest.mark.django_db
class TestPaymentFields:
    """Tests for Payment helpers and constraints."""

    def test_refundable(self):
        """Refundable is amount minus what was already refunded."""
        payment = PaymentFactory(
            amount_cents=18000,
            refunded_cents=5000,
            status=PaymentStatus.PARTIALLY_REFUNDED,
        )

        assert payment.amount == Money(18000)
        assert payment.refunded == Money(5000)
        assert payment.refundable == Money(13000)

    def test_append_note_pipe_delimited(self, cash_payment):
        """Notes accumulate with a pipe separator."""
        cash_payment.append_note("Refund: Rescheduled")
        cash_payment.append_note("Refund: No-show")

        assert cash_payment.notes == "Refund: Rescheduled | Refund: No-show"

    def test_append_note_keeps_existing_notes(self):
        """Existing notes stay in front."""
        payment = PaymentFactory(notes="Paid at desk")

        payment.append_note("Refund: Rescheduled")

        assert payment.notes == "Paid at desk | Refund: Rescheduled"

    def test_is_processor_payment(self, cash_payment, card_payment):
        """Only payments with a processor id are processor payments."""
        assert cash_payment.is_processor_payment is False
        assert card_payment.is_processor_payment is True

    def test_amount_must_be_positive(self):
        """A zero amount is rejected by the database."""
        with pytest.raises(IntegrityError):
            PaymentFactory(amount_cents=0)

    def test_refunded_cannot_exceed_amount(self):
        """refunded_cents above amount_cents is rejected by the database."""
        with pytest.raises(IntegrityError):
            PaymentFactory(
                amount_cents=1000,
                refunded_cents=1001,
                status=PaymentStatus.PARTIALLY_REFUNDED,
            )

    def test_processor_payment_id_unique(self, card_payment):
        """The same processor payment cannot be recorded twice."""
        with pytest.raises(IntegrityError):
            PaymentFactory(processor=True, processor_payment_id="pi_card_test")

    def test_save_increments_version(self, cash_payment):
        """Each update bumps the version."""
        assert cash_payment.version == 1

        cash_payment.append_note("first")
        cash_payment.save()
        assert cash_payment.version == 2

        cash_payment.append_note("second")
        cash_payment.save()
        assert Payment.objects.get(id=cash_payment.id).version == 3


@pytest.mark.django_db
class TestSyncLogEntry:
    """Tests for the append-only sync log model."""

    def _entry(self):
        return SyncLogEntry.objects.create(
            status=SyncStatus.SUCCESS,
            entity_type=SyncEntityType.REFUND,
            event_kind="refund_succeeded",
            local_id="payment-1",
            message="Refunded $50.00",
        )

    def test_update_rejected(self):
        """Saving an existing entry raises."""
        entry = self._entry()
        entry.message = "edited"

        with pytest.raises(ConflictError) as exc_info:
            entry.save()

        assert exc_info.value.error_code == "APPEND_ONLY"
        assert SyncLogEntry.objects.get(id=entry.id).message == "Refunded $50.00"

    def test_delete_rejected(self):
        """Deleting an entry raises."""
        entry = self._entry()

        with pytest.raises(ConflictError):
            entry.delete()

        assert SyncLogEntry.objects.filter(id=entry.id).exists()


@pytest.mark.django_db
class TestWebhookEvent:
    """Tests for WebhookEvent helpers."""

    def test_processing_lifecycle(self, webhook_event):
        """mark_processing counts attempts; mark_processed clears errors."""
        webhook_event.mark_processing()
        assert webhook_event.status == WebhookEventStatus.PROCESSING
        assert webhook_event.retry_count == 1

        webhook_event.mark_failed("boom")
        assert webhook_event.error_message == "boom"
        assert webhook_event.can_retry is True

        webhook_event.mark_processed()
        assert webhook_event.is_processed is True
        assert webhook_event.processed_at is not None
        assert webhook_event.error_message is None

    def test_cannot_retry_after_max_attempts(self):
        """Failed events stop retrying after MAX_WEBHOOK_RETRIES."""
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED,
            retry_count=MAX_WEBHOOK_RETRIES,
        )

        assert event.can_retry is False

    def test_get_object(self):
        """get_object returns payload.data.object."""
        event = WebhookEventFactory(
            payload={"data": {"object": {"id": "cs_123", "amount_total": 5000}}},
        )

        assert event.get_object() == {"id": "cs_123", "amount_total": 5000}
        assert event.get_object_id() == "cs_123"

    def test_get_object_tolerates_malformed_payload(self):
        """A payload without data yields an empty object."""
        event = WebhookEventFactory(payload={"id": "evt_1"})

        assert event.get_object() == {}
        assert event.get_object_id() is None
