"""
Promotion model.

Codes are matched case-insensitively by storing them upper-cased. The
redemption counter only ever grows, through a conditional F() increment in
PromotionService.apply_promo_code.
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class DiscountType(models.TextChoices):
    """
    How a promotion's discount is computed from a booking's effective total.

    PERCENT: value is a percentage (0-100)
    FIXED: value is an amount in cents, capped at the effective total
    BOGO: half the effective total; value is unused
    """

    PERCENT = "percent", "Percent"
    FIXED = "fixed", "Fixed amount"
    BOGO = "bogo", "Buy one, get one"


class Promotion(UUIDPrimaryKeyMixin, BaseModel):
    """
    A discount code.

    Fields:
        code: Upper-cased unique code
        discount_type: PERCENT, FIXED or BOGO
        discount_value: Percent or cents depending on type
        applies_to: Service category the code is limited to (None = any)
        max_uses: Redemption cap (None = unlimited)
        redemption_count: Successful applications so far
        is_active: Admin kill switch
        starts_at / ends_at: Optional validity window

    Invariant:
        redemption_count <= max_uses when max_uses is set
    """

    code = models.CharField(
        max_length=50,
        unique=True,
        help_text="Promo code, stored upper-cased",
    )

    discount_type = models.CharField(
        max_length=10,
        choices=DiscountType.choices,
    )

    discount_value = models.PositiveIntegerField(
        default=0,
        help_text="Percent (0-100) or cents, depending on discount type",
    )

    applies_to = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Service category this code is limited to",
    )

    max_uses = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Maximum redemptions (empty = unlimited)",
    )

    redemption_count = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True, db_index=True)

    starts_at = models.DateTimeField(null=True, blank=True)

    ends_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Promotion"
        verbose_name_plural = "Promotions"
        constraints = [
            models.CheckConstraint(
                condition=Q(max_uses__isnull=True)
                | Q(redemption_count__lte=F("max_uses")),
                name="promotion_redemptions_within_max_uses",
            ),
            models.CheckConstraint(
                condition=~Q(discount_type=DiscountType.PERCENT)
                | Q(discount_value__lte=100),
                name="promotion_percent_within_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Promotion({self.code}, {self.discount_type} {self.discount_value})"

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    @property
    def uses_remaining(self) -> int | None:
        if self.max_uses is None:
            return None
        return max(0, self.max_uses - self.redemption_count)
