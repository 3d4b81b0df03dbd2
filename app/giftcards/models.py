"""
GiftCard model.

A gift card is issued with an original value and a matching balance. Each
redemption lowers the balance; the card flips to REDEEMED exactly when the
balance reaches zero. Expiry is evaluated when the card is read, not stored.
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from core.money import Money


class GiftCardStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    REDEEMED = "redeemed", "Redeemed"
    EXPIRED = "expired", "Expired"


class GiftCard(UUIDPrimaryKeyMixin, BaseModel):
    """
    Stored-value instrument.

    Fields:
        code: Sequential code (e.g. "TC-GC-007"), unique
        purchaser_id: Client who bought the card, if known
        recipient_name: Name printed on the card
        original_cents: Value at issuance
        balance_cents: Value left (0 <= balance <= original)
        status: ACTIVE or REDEEMED (EXPIRED may be set by an admin)
        purchased_at: Issuance time
        expires_at: Optional expiry
    """

    code = models.CharField(
        max_length=32,
        unique=True,
        help_text="Sequential gift card code (PREFIX-NNN)",
    )

    purchaser_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Client who purchased the card",
    )

    recipient_name = models.CharField(
        max_length=200,
        blank=True,
        default="",
    )

    original_cents = models.PositiveBigIntegerField(
        help_text="Value at issuance in cents",
    )

    balance_cents = models.PositiveBigIntegerField(
        help_text="Remaining value in cents",
    )

    status = models.CharField(
        max_length=20,
        choices=GiftCardStatus.choices,
        default=GiftCardStatus.ACTIVE,
        db_index=True,
    )

    purchased_at = models.DateTimeField(default=timezone.now)

    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-purchased_at"]
        verbose_name = "Gift Card"
        verbose_name_plural = "Gift Cards"
        constraints = [
            models.CheckConstraint(
                condition=Q(balance_cents__gte=0)
                & Q(balance_cents__lte=F("original_cents")),
                name="giftcard_balance_within_original",
            ),
            models.CheckConstraint(
                condition=Q(status=GiftCardStatus.REDEEMED, balance_cents=0)
                | (~Q(status=GiftCardStatus.REDEEMED) & Q(balance_cents__gt=0)),
                name="giftcard_redeemed_iff_empty",
            ),
        ]

    def __str__(self) -> str:
        return f"GiftCard({self.code}, {self.balance.format()})"

    @property
    def balance(self) -> Money:
        return Money(self.balance_cents)

    @property
    def original(self) -> Money:
        return Money(self.original_cents)

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= timezone.now()

    @property
    def effective_status(self) -> str:
        """Stored status, reported as EXPIRED once an active card is past expiry."""
        if self.status == GiftCardStatus.ACTIVE and self.is_expired:
            return GiftCardStatus.EXPIRED
        return self.status
