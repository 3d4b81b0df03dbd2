"""
Payment model for settlement events against a booking.

A Payment is one collection of money for a booking: cash at the desk, a card
tap through the processor, or a hosted checkout. Payments are created by the
PaymentRecorder, mutated only by refunds, and never deleted.

Usage:
    from payments.models import Payment

    payment = Payment.objects.get(id=payment_id)
    payment.refundable  # Money(amount - refunded)

    # State transitions using django-fsm (inside RefundService only)
    payment.refund_partial()
    payment.save()
"""

from __future__ import annotations

from django.db import models
from django.db.models import F

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from core.money import Money

from payments.state_machines import PaymentMethod, PaymentStatus

NOTES_SEPARATOR = " | "


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single settlement event against a booking.

    State Flow:
        PAID -> PARTIALLY_REFUNDED -> REFUNDED
        PAID -> REFUNDED

    Fields:
        booking: Booking this payment settles
        client_id: Client who paid (matches booking.client_id)
        amount_cents: Amount collected in cents (> 0)
        tip_cents: Tip collected on top of the amount (>= 0)
        method: Cash, processor card, or other processor method
        status: Current FSM status
        refunded_cents: Total refunded so far (0 <= refunded <= amount)
        processor_payment_id: Processor payment id (Stripe PaymentIntent)
        processor_order_id: Processor order/checkout reference
        receipt_url: Processor-hosted receipt
        notes: Free text; refund reasons are appended pipe-delimited
        paid_at: When the money was collected
        refunded_at: When the latest refund was applied
        version: Optimistic locking version

    Invariant:
        refunded_cents <= amount_cents (CheckConstraint plus the
        conditional update in RefundService)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Booking this payment settles",
    )

    client_id = models.UUIDField(
        db_index=True,
        help_text="Client who made the payment",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount collected in cents",
    )

    tip_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Tip collected in cents",
    )

    refunded_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Total refunded so far in cents",
    )

    method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
        help_text="How the payment was settled",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PAID,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status of the payment (managed by FSM)",
    )

    # ==========================================================================
    # Processor Integration
    # ==========================================================================

    processor_payment_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Processor payment id (Stripe PaymentIntent pi_xxx)",
    )

    processor_order_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Processor order or checkout session reference",
    )

    receipt_url = models.URLField(
        max_length=500,
        null=True,
        blank=True,
        help_text="Processor-hosted receipt",
    )

    notes = models.TextField(
        blank=True,
        default="",
        help_text="Free-text notes; refund reasons are appended",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the money was collected",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the latest refund was applied",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["booking", "status"],
                name="payment_booking_status_idx",
            ),
            models.Index(
                fields=["status", "paid_at"],
                name="payment_status_paid_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(refunded_cents__lte=F("amount_cents")),
                name="payment_refunded_lte_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, {self.amount.format()})"

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.
        """
        is_update = self.pk and not self._state.adding
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED],
        target=PaymentStatus.PARTIALLY_REFUNDED,
    )
    def refund_partial(self):
        """
        Record that part of the payment has been refunded.

        Transition: PAID/PARTIALLY_REFUNDED -> PARTIALLY_REFUNDED
        """

    @transition(
        field=status,
        source=[PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED],
        target=PaymentStatus.REFUNDED,
    )
    def refund_full(self):
        """
        Record that the whole payment has been refunded.

        Transition: PAID/PARTIALLY_REFUNDED -> REFUNDED
        """

    def apply_refund_status(self) -> None:
        """Transition to the status matching ``refunded_cents``."""
        if self.refunded_cents >= self.amount_cents:
            self.refund_full()
        else:
            self.refund_partial()

    def append_note(self, note: str) -> None:
        """Append ``note`` to notes, pipe-delimited."""
        self.notes = NOTES_SEPARATOR.join(n for n in [self.notes, note] if n)

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def amount(self) -> Money:
        return Money(self.amount_cents)

    @property
    def refunded(self) -> Money:
        return Money(self.refunded_cents)

    @property
    def refundable(self) -> Money:
        """Amount still available to refund."""
        return self.amount.subtract_clamped(self.refunded)

    @property
    def is_processor_payment(self) -> bool:
        """True when a refund must go through the external processor."""
        return bool(self.processor_payment_id)
