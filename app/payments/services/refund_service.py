"""
Refund service for returning money to clients.

This module provides the RefundService class which handles the critical path
for refunds, following a two-phase pattern for safety:

1. Validate refundability (existence, positive amount, refundable cap)
2. Call the processor for card-originated payments, outside any transaction
3. Apply the local update with a single conditional UPDATE so concurrent
   refunds can never push refunded_cents past amount_cents

Every processor call writes exactly one reconciliation log entry.

Usage:
    from payments.services import RefundService

    result = RefundService.process_refund(
        payment_id=payment.id,
        amount_cents=5000,
        reason="Client rescheduled",
        actor=actor,
    )

    if result.success:
        print(result.data.payment.status)
    else:
        print(result.error)  # "Maximum refundable amount is $130.00"
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.actors import Actor
from core.money import is_cents
from core.services import BaseService, ServiceResult

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.cache import invalidate_booking_financials
from payments.exceptions import (
    LockAcquisitionError,
    PaymentNotFoundError,
    PaymentProcessingError,
    ProcessorNotConfiguredError,
    RefundConflictError,
)
from payments.locks import refund_lock
from payments.models import Payment
from payments.services.sync_log_service import SyncLogService
from payments.state_machines import PaymentStatus, REFUNDABLE_PAYMENT_STATUSES
from payments.sync_events import RefundConflict, RefundFailed, RefundSucceeded

if TYPE_CHECKING:
    from payments.adapters import PaymentProcessor


# Error codes a caller may retry with the same arguments
RETRYABLE_ERROR_CODES = frozenset(
    [
        "STRIPE_RATE_LIMITED",
        "STRIPE_UNAVAILABLE",
        "STRIPE_TIMEOUT",
        "LOCK_ACQUISITION_FAILED",
    ]
)


@dataclass
class RefundOutcome:
    """
    Result of a successful refund.

    Attributes:
        payment: The payment after the refund was applied
        processor_refund_id: Processor refund id (None for cash refunds)
    """

    payment: Payment
    processor_refund_id: str | None = None


class RefundService(BaseService):
    """
    Service for processing full and partial refunds.

    Two-Phase Pattern:
        1. Acquire the per-payment distributed lock
        2. Re-read and re-validate the payment under the lock
        3. Call the processor OUTSIDE the transaction (card payments only)
        4. Apply refunded_cents with a conditional UPDATE and run the FSM
           transition inside transaction.atomic()

    Safety Guarantees:
        - The lock serializes refunds per payment across workers
        - The conditional UPDATE rejects a refund that no longer fits even
          if the lock expired mid-call
        - The idempotency key is derived from the refunded total the request
          was computed against, so retrying a timed-out refund reuses it
        - A processor success that loses the local race is logged as a
          refund_conflict entry for manual reconciliation
    """

    # Processor adapter - can be injected for testing
    _processor: PaymentProcessor | None = None

    @classmethod
    def get_processor(cls) -> PaymentProcessor:
        """Get the payment processor adapter."""
        return cls._processor or StripeAdapter

    @classmethod
    def set_processor(cls, processor: PaymentProcessor | None) -> None:
        """Set the payment processor adapter (for testing)."""
        cls._processor = processor

    # =========================================================================
    # Refund Processing
    # =========================================================================

    @classmethod
    def process_refund(
        cls,
        payment_id: uuid.UUID | str,
        amount_cents: int,
        reason: str | None = None,
        actor: Actor | None = None,
    ) -> ServiceResult[RefundOutcome]:
        """
        Refund part or all of a payment.

        Args:
            payment_id: Payment to refund
            amount_cents: Exact amount to refund
            reason: Optional reason, appended to the payment notes
            actor: Who requested the refund

        Returns:
            ServiceResult containing RefundOutcome on success
        """
        actor = actor or Actor.system()
        logger = cls.get_logger()

        log_context = {
            "payment_id": str(payment_id),
            "amount_cents": amount_cents,
            **actor.log_context(),
        }
        logger.info("Starting refund", extra=log_context)

        payment = Payment.objects.filter(id=payment_id).first()
        if payment is None:
            return ServiceResult.from_exception(
                PaymentNotFoundError(
                    "Payment not found",
                    details={"payment_id": str(payment_id)},
                )
            )

        rejection = cls._validate(payment, amount_cents)
        if rejection is not None:
            logger.info(
                "Refund rejected",
                extra={**log_context, "error_code": rejection.error_code},
            )
            return rejection

        try:
            with refund_lock(payment.id):
                return cls._execute_refund(payment.id, amount_cents, reason, actor)
        except LockAcquisitionError as e:
            logger.warning(
                "Failed to acquire lock for refund",
                extra={**log_context, "error": str(e)},
            )
            return ServiceResult.failure(
                "A refund is already in progress for this payment",
                error_code=e.error_code,
            )

    @classmethod
    def _validate(
        cls,
        payment: Payment,
        amount_cents: int,
    ) -> ServiceResult[RefundOutcome] | None:
        """Return a failure result if the refund is not allowed, else None."""
        if not is_cents(amount_cents):
            return ServiceResult.failure(
                "Refund amount must be a whole number of cents",
                error_code="INVALID_AMOUNT",
            )

        if amount_cents <= 0:
            return ServiceResult.failure(
                "Refund amount must be positive",
                error_code="INVALID_AMOUNT",
            )

        if payment.status == PaymentStatus.FAILED:
            return ServiceResult.failure(
                "Failed payments cannot be refunded",
                error_code="PAYMENT_NOT_REFUNDABLE",
            )

        if amount_cents > payment.refundable.cents:
            return cls._exceeds_refundable(payment)

        return None

    @staticmethod
    def _exceeds_refundable(payment: Payment) -> ServiceResult[RefundOutcome]:
        return ServiceResult.failure(
            f"Maximum refundable amount is {payment.refundable.format()}",
            error_code="AMOUNT_EXCEEDS_REFUNDABLE",
        )

    @classmethod
    def _execute_refund(
        cls,
        payment_id: uuid.UUID,
        amount_cents: int,
        reason: str | None,
        actor: Actor,
    ) -> ServiceResult[RefundOutcome]:
        """
        Execute the refund while holding the payment lock.
        """
        logger = cls.get_logger()

        # Another refund may have committed while we waited for the lock
        payment = Payment.objects.get(id=payment_id)
        rejection = cls._validate(payment, amount_cents)
        if rejection is not None:
            return rejection

        processor_refund_id = None
        if payment.is_processor_payment:
            result = cls._refund_with_processor(payment, amount_cents, reason, actor)
            if not result.success:
                return result
            processor_refund_id = result.data

        refund_note = f"Refund: {reason}" if reason else None
        updated = cls.apply_refund_locally(payment.id, amount_cents, note=refund_note)

        if updated is None:
            fresh = Payment.objects.get(id=payment.id)
            if processor_refund_id:
                SyncLogService.record(
                    RefundConflict(
                        amount_cents=amount_cents,
                        refund_id=processor_refund_id,
                        refundable_cents=fresh.refundable.cents,
                    ),
                    local_id=payment.id,
                    remote_id=processor_refund_id,
                    actor=actor,
                )
                logger.error(
                    "Processor refund succeeded but local update was rejected",
                    extra={
                        "payment_id": str(payment.id),
                        "refund_id": processor_refund_id,
                        "amount_cents": amount_cents,
                    },
                )
                return ServiceResult.from_exception(
                    RefundConflictError(
                        "Refund was issued by the processor but conflicted with "
                        "another refund; reconciliation required"
                    )
                )
            return cls._exceeds_refundable(fresh)

        logger.info(
            "Refund completed",
            extra={
                "payment_id": str(updated.id),
                "amount_cents": amount_cents,
                "refunded_cents": updated.refunded_cents,
                "status": updated.status,
                "refund_id": processor_refund_id,
                **actor.log_context(),
            },
        )

        return ServiceResult.success(
            RefundOutcome(payment=updated, processor_refund_id=processor_refund_id)
        )

    @classmethod
    def _refund_with_processor(
        cls,
        payment: Payment,
        amount_cents: int,
        reason: str | None,
        actor: Actor,
    ) -> ServiceResult[str]:
        """
        Call the processor and log the attempt.

        Returns:
            ServiceResult carrying the processor refund id
        """
        processor = cls.get_processor()
        if not processor.is_configured():
            return ServiceResult.from_exception(
                ProcessorNotConfiguredError("Payment processor is not configured")
            )

        currency = settings.PAYMENTS_CURRENCY
        idempotency_key = IdempotencyKeyGenerator.generate(
            operation="refund",
            entity_id=payment.id,
            attempt=f"{payment.refunded_cents}-{amount_cents}",
        )

        try:
            processor_refund = processor.refund_payment(
                idempotency_key=idempotency_key,
                payment_id=payment.processor_payment_id,
                amount_cents=amount_cents,
                currency=currency,
                reason=reason,
            )
        except PaymentProcessingError as e:
            SyncLogService.record(
                RefundFailed(
                    amount_cents=amount_cents,
                    currency=currency,
                    idempotency_key=idempotency_key,
                    error=e.message,
                    error_code=e.error_code,
                    reason=reason,
                ),
                local_id=payment.id,
                actor=actor,
            )
            return ServiceResult.failure(e.message, error_code=e.error_code)

        SyncLogService.record(
            RefundSucceeded(
                amount_cents=amount_cents,
                currency=currency,
                idempotency_key=idempotency_key,
                refund_id=processor_refund.id,
                reason=reason,
            ),
            local_id=payment.id,
            remote_id=processor_refund.id,
            actor=actor,
        )
        return ServiceResult.success(processor_refund.id)

    # =========================================================================
    # Local Ledger Update
    # =========================================================================

    @classmethod
    def apply_refund_locally(
        cls,
        payment_id: uuid.UUID,
        amount_cents: int,
        note: str | None = None,
    ) -> Payment | None:
        """
        Add ``amount_cents`` to a payment's refunded total.

        The UPDATE only matches while the refund still fits, so two racing
        callers can never both succeed. Also used for refunds issued
        directly on the processor dashboard (charge.refunded webhooks).

        Returns:
            The updated Payment, or None if the refund no longer fits
        """
        with transaction.atomic():
            matched = Payment.objects.filter(
                id=payment_id,
                status__in=REFUNDABLE_PAYMENT_STATUSES,
                refunded_cents__lte=F("amount_cents") - amount_cents,
            ).update(
                refunded_cents=F("refunded_cents") + amount_cents,
                refunded_at=timezone.now(),
            )
            if not matched:
                return None

            payment = Payment.objects.select_for_update().get(id=payment_id)
            payment.apply_refund_status()
            if note:
                payment.append_note(note)
            payment.save(update_fields=["status", "notes", "version", "updated_at"])

            booking_id = payment.booking_id
            transaction.on_commit(lambda: invalidate_booking_financials(booking_id))

        return payment
