"""
Promo code validation, discount calculation, and application.

Usage:
    from promotions.services import PromotionService

    verdict = PromotionService.validate_promo_code("save20", service_category="tattoo")
    if verdict.valid:
        result = PromotionService.apply_promo_code(booking.id, "save20", actor=actor)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from core.actors import Actor
from core.exceptions import ConflictError, ValidationError
from core.money import Money, is_cents
from core.services import BaseService, ServiceResult

from bookings.exceptions import BookingNotFoundError
from bookings.models import Booking
from payments.cache import invalidate_booking_financials
from promotions.exceptions import PromotionNotFoundError
from promotions.models import DiscountType, Promotion


@dataclass(frozen=True)
class PromoValidation:
    """
    Verdict of validate_promo_code.

    discount_type, discount_value and promotion_id are set only when valid.
    """

    valid: bool
    message: str
    discount_type: str | None = None
    discount_value: int | None = None
    promotion_id: uuid.UUID | None = None


def normalize_code(code: str) -> str:
    return code.strip().upper()


class PromotionService(BaseService):
    """
    Promo code engine.

    Validation is a pure read with a fixed check order; the first failing
    check decides the message. Application increments the redemption
    counter with a conditional UPDATE, so the cap holds under concurrency.
    """

    # =========================================================================
    # Validation
    # =========================================================================

    @classmethod
    def validate_promo_code(
        cls,
        code: str,
        service_category: str | None = None,
    ) -> PromoValidation:
        """
        Check whether a code can be used.

        Order: exists, active, not expired, started, under the usage cap,
        matches the service category.
        """
        promotion = Promotion.objects.filter(code=normalize_code(code)).first()
        if promotion is None:
            return PromoValidation(valid=False, message="Promo code not found")

        rejection = cls._eligibility_error(promotion, service_category)
        if rejection is not None:
            cls.get_logger().info(
                "Promo code rejected",
                extra={"code": promotion.code, "reason": rejection},
            )
            return PromoValidation(valid=False, message=rejection)

        return PromoValidation(
            valid=True,
            message="Promo code is valid",
            discount_type=promotion.discount_type,
            discount_value=promotion.discount_value,
            promotion_id=promotion.id,
        )

    @staticmethod
    def _eligibility_error(
        promotion: Promotion,
        service_category: str | None,
    ) -> str | None:
        now = timezone.now()

        if not promotion.is_active:
            return "Promo code is no longer active"
        if promotion.ends_at is not None and promotion.ends_at < now:
            return "Promo code has expired"
        if promotion.starts_at is not None and promotion.starts_at > now:
            return "Promo code is not yet active"
        if (
            promotion.max_uses is not None
            and promotion.redemption_count >= promotion.max_uses
        ):
            return "Promo code has reached max uses"
        if (
            promotion.applies_to
            and service_category
            and promotion.applies_to.lower() != service_category.lower()
        ):
            return f"This promo only applies to {promotion.applies_to} services"
        return None

    # =========================================================================
    # Discounts
    # =========================================================================

    @classmethod
    def calculate_discount(cls, promotion: Promotion, effective_total: Money) -> Money:
        """
        Discount for a booking with ``effective_total``.

        percent: round(total * value / 100)
        fixed:   min(value, total)
        bogo:    round(total / 2)
        """
        if promotion.discount_type == DiscountType.PERCENT:
            return effective_total.percentage(promotion.discount_value)
        if promotion.discount_type == DiscountType.FIXED:
            return Money(promotion.discount_value).min(effective_total)
        if promotion.discount_type == DiscountType.BOGO:
            return effective_total.half()
        raise ValidationError(
            f"Unknown discount type: {promotion.discount_type}",
            error_code="INVALID_DISCOUNT_TYPE",
        )

    # =========================================================================
    # Application
    # =========================================================================

    @classmethod
    def apply_promo_code(
        cls,
        booking_id: uuid.UUID | str,
        code: str,
        actor: Actor | None = None,
    ) -> ServiceResult[Booking]:
        """
        Apply a promo code to a booking.

        Only existence is checked by default; the full eligibility chain
        runs when PROMOTIONS_APPLY_REVALIDATES is set. The usage cap is
        always enforced by the conditional increment.

        The discount is computed on the current effective total and
        replaces any discount already on the booking.

        Returns:
            ServiceResult containing the updated Booking

        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        actor = actor or Actor.system()
        logger = cls.get_logger()

        booking = Booking.objects.select_related("service").filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFoundError(
                "Booking not found",
                details={"booking_id": str(booking_id)},
            )

        promotion = Promotion.objects.filter(code=normalize_code(code)).first()
        if promotion is None:
            return ServiceResult.failure(
                "Promo code not found",
                error_code="PROMO_NOT_FOUND",
            )

        if settings.PROMOTIONS_APPLY_REVALIDATES:
            category = booking.service.category if booking.service_id else None
            rejection = cls._eligibility_error(promotion, category)
            if rejection is not None:
                return ServiceResult.failure(rejection, error_code="PROMO_NOT_ELIGIBLE")

        discount = cls.calculate_discount(promotion, booking.effective_total)
        now = timezone.now()

        with cls.atomic():
            incremented = (
                Promotion.objects.filter(id=promotion.id)
                .filter(Q(max_uses__isnull=True) | Q(redemption_count__lt=F("max_uses")))
                .update(redemption_count=F("redemption_count") + 1, updated_at=now)
            )
            if not incremented:
                return ServiceResult.failure(
                    "Promo code has reached max uses",
                    error_code="PROMO_MAX_USES",
                )

            Booking.objects.filter(id=booking.id).update(
                promotion_id=promotion.id,
                discount_cents=discount.cents,
                updated_at=now,
            )
            transaction.on_commit(lambda: invalidate_booking_financials(booking.id))

        booking = Booking.objects.get(id=booking.id)

        logger.info(
            "Promo code applied",
            extra={
                "booking_id": str(booking.id),
                "promotion_id": str(promotion.id),
                "code": promotion.code,
                "discount_cents": discount.cents,
                **actor.log_context(),
            },
        )

        return ServiceResult.success(booking)

    # =========================================================================
    # Administration
    # =========================================================================

    @classmethod
    def create_promotion(
        cls,
        code: str,
        discount_type: str,
        discount_value: int = 0,
        applies_to: str | None = None,
        max_uses: int | None = None,
        is_active: bool = True,
        starts_at: datetime | None = None,
        ends_at: datetime | None = None,
        actor: Actor | None = None,
    ) -> Promotion:
        """
        Create a promotion.

        Raises:
            ValidationError: Malformed code, type, value, cap, or window
            ConflictError: The code already exists
        """
        actor = actor or Actor.system()
        code = normalize_code(code)

        if not code:
            raise ValidationError("Promo code is required", error_code="INVALID_CODE")
        if discount_type not in DiscountType.values:
            raise ValidationError(
                f"Unknown discount type: {discount_type}",
                error_code="INVALID_DISCOUNT_TYPE",
            )
        if not is_cents(discount_value) or discount_value < 0:
            raise ValidationError(
                "Discount value cannot be negative",
                error_code="INVALID_DISCOUNT_VALUE",
                details={"discount_value": repr(discount_value)},
            )
        if discount_type == DiscountType.PERCENT and discount_value > 100:
            raise ValidationError(
                "Percent discount must be between 0 and 100",
                error_code="INVALID_DISCOUNT_VALUE",
                details={"discount_value": discount_value},
            )
        if max_uses is not None and max_uses < 1:
            raise ValidationError(
                "Max uses must be at least 1",
                error_code="INVALID_MAX_USES",
            )
        if starts_at and ends_at and ends_at <= starts_at:
            raise ValidationError(
                "Promotion must end after it starts",
                error_code="INVALID_WINDOW",
            )

        try:
            with transaction.atomic():
                promotion = Promotion.objects.create(
                    code=code,
                    discount_type=discount_type,
                    discount_value=discount_value,
                    applies_to=applies_to or None,
                    max_uses=max_uses,
                    is_active=is_active,
                    starts_at=starts_at,
                    ends_at=ends_at,
                )
        except IntegrityError as e:
            raise ConflictError(
                "Promo code already exists",
                error_code="DUPLICATE_PROMO_CODE",
                details={"code": code},
            ) from e

        cls.get_logger().info(
            "Promotion created",
            extra={
                "promotion_id": str(promotion.id),
                "code": code,
                "discount_type": discount_type,
                **actor.log_context(),
            },
        )
        return promotion

    @classmethod
    def deactivate_promotion(
        cls,
        promotion_id: uuid.UUID | str,
        actor: Actor | None = None,
    ) -> Promotion:
        """
        Switch a promotion off. Promotions are never deleted.

        Raises:
            PromotionNotFoundError: If the promotion does not exist
        """
        actor = actor or Actor.system()

        updated = Promotion.objects.filter(id=promotion_id).update(
            is_active=False,
            updated_at=timezone.now(),
        )
        if not updated:
            raise PromotionNotFoundError(
                "Promotion not found",
                details={"promotion_id": str(promotion_id)},
            )

        cls.get_logger().info(
            "Promotion deactivated",
            extra={"promotion_id": str(promotion_id), **actor.log_context()},
        )
        return Promotion.objects.get(id=promotion_id)
