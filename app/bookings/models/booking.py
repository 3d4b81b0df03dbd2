"""
Booking and Service models.

A Booking is one scheduled instance of a studio Service for a client. This
app never creates or deletes bookings; it reads their totals and lets the
payments, gift card and promotion flows apply discounts and link processor
orders.

Usage:
    from bookings.models import Booking

    booking = Booking.objects.get(id=booking_id)
    booking.effective_total  # Money(total - discount)
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from core.money import Money


class BookingStatus(models.TextChoices):
    """
    Scheduling status of a booking.

    Only CONFIRMED, IN_PROGRESS and COMPLETED bookings can take payments.
    """

    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    NO_SHOW = "no_show", "No Show"


PAYABLE_BOOKING_STATUSES = frozenset(
    [
        BookingStatus.CONFIRMED,
        BookingStatus.IN_PROGRESS,
        BookingStatus.COMPLETED,
    ]
)


class Service(UUIDPrimaryKeyMixin, BaseModel):
    """
    A bookable studio service (e.g. "Fine line tattoo, small").

    The category is what promotions scope themselves to.
    """

    name = models.CharField(
        max_length=200,
        help_text="Display name shown on checkout pages",
    )

    category = models.CharField(
        max_length=50,
        blank=True,
        default="",
        db_index=True,
        help_text="Service category used for promotion scoping (e.g. 'tattoo')",
    )

    price_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="List price in cents",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Service"
        verbose_name_plural = "Services"

    def __str__(self) -> str:
        return self.name


class Booking(UUIDPrimaryKeyMixin, BaseModel):
    """
    A scheduled service instance for a client.

    Fields:
        client_id: Opaque client identifier (owned by the CRM)
        service: The booked service (nullable for custom appointments)
        scheduled_at: Appointment start time
        status: Scheduling status
        total_cents: Gross total in cents
        discount_cents: Discount applied in cents (never above total)
        deposit_cents: Deposit required up front, if any
        processor_order_id: External processor order/checkout reference
        gift_card: Gift card redeemed against this booking
        promotion: Promotion applied to this booking

    Invariant:
        discount_cents <= total_cents (enforced by a CheckConstraint)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    client_id = models.UUIDField(
        db_index=True,
        help_text="Client who owns this booking",
    )

    service = models.ForeignKey(
        "bookings.Service",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
        help_text="Booked service",
    )

    gift_card = models.ForeignKey(
        "giftcards.GiftCard",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
        help_text="Gift card redeemed against this booking",
    )

    promotion = models.ForeignKey(
        "promotions.Promotion",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
        help_text="Promotion applied to this booking",
    )

    # ==========================================================================
    # Scheduling
    # ==========================================================================

    scheduled_at = models.DateTimeField(
        help_text="Appointment start time",
    )

    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
        db_index=True,
        help_text="Scheduling status",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    total_cents = models.PositiveBigIntegerField(
        help_text="Gross total in cents",
    )

    discount_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Discount applied in cents (gift card or promotion)",
    )

    deposit_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Deposit required up front, in cents",
    )

    # ==========================================================================
    # Processor Integration
    # ==========================================================================

    processor_order_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Processor order reference (first writer wins)",
    )

    class Meta:
        ordering = ["-scheduled_at"]
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        indexes = [
            models.Index(
                fields=["client_id", "status"],
                name="booking_client_status_idx",
            ),
            models.Index(
                fields=["status", "scheduled_at"],
                name="booking_status_scheduled_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(discount_cents__lte=models.F("total_cents")),
                name="booking_discount_lte_total",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking({self.id}, {self.status}, {self.total.format()})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def total(self) -> Money:
        return Money(self.total_cents)

    @property
    def discount(self) -> Money:
        return Money(self.discount_cents)

    @property
    def effective_total(self) -> Money:
        """Gross total minus any discount already applied."""
        return self.total.subtract_clamped(self.discount)

    @property
    def service_name(self) -> str:
        """Display name for checkout pages."""
        if self.service_id and self.service.name:
            return self.service.name
        return "Appointment"

    @property
    def is_payable(self) -> bool:
        return self.status in PAYABLE_BOOKING_STATUSES
