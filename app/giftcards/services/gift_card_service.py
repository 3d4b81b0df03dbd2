"""
Gift card issuance and redemption.

Usage:
    from giftcards.services import GiftCardService

    card = GiftCardService.create_gift_card(10000, recipient_name="Sam")
    # card.code == "TC-GC-001" on an empty ledger

    result = GiftCardService.redeem_gift_card(booking.id, card.id, 10000)
    if result.success:
        result.data.status  # "redeemed"
"""

from __future__ import annotations

import uuid
from datetime import datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Case, F, Q, Value, When
from django.utils import timezone

from core.actors import Actor
from core.money import is_cents
from core.exceptions import ValidationError
from core.services import BaseService, ServiceResult

from bookings.exceptions import BookingNotFoundError
from bookings.models import Booking
from giftcards.exceptions import GiftCardNotFoundError
from giftcards.models import GiftCard, GiftCardStatus
from payments.cache import invalidate_booking_financials

# Concurrent issuance can pick the same next code
MAX_CODE_ATTEMPTS = 3


class GiftCardService(BaseService):
    """
    Issues gift cards and redeems them against bookings.

    Redemption is a one-shot discount: the redeemed amount becomes the
    booking's discount. Redeeming again for another booking is a new call
    against the card's remaining balance.
    """

    # =========================================================================
    # Issuance
    # =========================================================================

    @classmethod
    def next_code(cls, prefix: str | None = None) -> str:
        """
        Next sequential code: highest existing numeric suffix + 1.

        Suffixes are zero-padded to three digits and keep growing past 999.
        """
        prefix = prefix or settings.GIFT_CARD_CODE_PREFIX
        highest = 0
        for code in GiftCard.objects.filter(
            code__startswith=f"{prefix}-"
        ).values_list("code", flat=True):
            suffix = code[len(prefix) + 1 :]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}-{highest + 1:03d}"

    @classmethod
    def create_gift_card(
        cls,
        original_cents: int,
        purchaser_id: uuid.UUID | str | None = None,
        recipient_name: str | None = None,
        expires_at: datetime | None = None,
        actor: Actor | None = None,
    ) -> GiftCard:
        """
        Issue a gift card with balance equal to its original value.

        Raises:
            ValidationError: If original_cents is not positive
        """
        actor = actor or Actor.system()

        if not is_cents(original_cents) or original_cents <= 0:
            raise ValidationError(
                "Gift card value must be positive",
                error_code="INVALID_AMOUNT",
                details={"original_cents": repr(original_cents)},
            )

        attempt = 0
        while True:
            attempt += 1
            code = cls.next_code()
            try:
                with transaction.atomic():
                    card = GiftCard.objects.create(
                        code=code,
                        purchaser_id=purchaser_id,
                        recipient_name=recipient_name or "",
                        original_cents=original_cents,
                        balance_cents=original_cents,
                        status=GiftCardStatus.ACTIVE,
                        expires_at=expires_at,
                    )
            except IntegrityError:
                cls.get_logger().warning(
                    "Gift card code collision, retrying",
                    extra={"code": code, "attempt": attempt},
                )
                if attempt == MAX_CODE_ATTEMPTS:
                    raise
                continue

            cls.get_logger().info(
                "Gift card issued",
                extra={
                    "gift_card_id": str(card.id),
                    "code": card.code,
                    "original_cents": original_cents,
                    **actor.log_context(),
                },
            )
            return card

    # =========================================================================
    # Redemption
    # =========================================================================

    @classmethod
    def redeem_gift_card(
        cls,
        booking_id: uuid.UUID | str,
        gift_card_id: uuid.UUID | str,
        amount_cents: int,
        actor: Actor | None = None,
    ) -> ServiceResult[GiftCard]:
        """
        Redeem ``amount_cents`` from a gift card as a booking discount.

        Returns:
            ServiceResult containing the updated GiftCard

        Raises:
            GiftCardNotFoundError: If the card does not exist
            BookingNotFoundError: If the booking does not exist
        """
        actor = actor or Actor.system()
        logger = cls.get_logger()

        card = GiftCard.objects.filter(id=gift_card_id).first()
        if card is None:
            raise GiftCardNotFoundError(
                "Gift card not found",
                details={"gift_card_id": str(gift_card_id)},
            )

        booking = Booking.objects.filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFoundError(
                "Booking not found",
                details={"booking_id": str(booking_id)},
            )

        if not is_cents(amount_cents) or amount_cents <= 0:
            return ServiceResult.failure(
                "Redemption amount must be positive",
                error_code="INVALID_AMOUNT",
            )

        if card.effective_status != GiftCardStatus.ACTIVE:
            return ServiceResult.failure(
                "Gift card is not active",
                error_code="GIFT_CARD_NOT_ACTIVE",
            )

        if card.balance_cents < amount_cents:
            return ServiceResult.failure(
                "Insufficient gift card balance",
                error_code="INSUFFICIENT_BALANCE",
            )

        if amount_cents > booking.total_cents:
            return ServiceResult.failure(
                "Redemption exceeds booking total",
                error_code="EXCEEDS_BOOKING_TOTAL",
            )

        now = timezone.now()
        with cls.atomic():
            matched = (
                GiftCard.objects.filter(
                    id=card.id,
                    status=GiftCardStatus.ACTIVE,
                    balance_cents__gte=amount_cents,
                )
                .filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))
                .update(
                    balance_cents=F("balance_cents") - amount_cents,
                    status=Case(
                        When(
                            balance_cents=amount_cents,
                            then=Value(GiftCardStatus.REDEEMED),
                        ),
                        default=F("status"),
                    ),
                    updated_at=now,
                )
            )
            if not matched:
                # Another redemption spent the balance first
                return ServiceResult.failure(
                    "Insufficient gift card balance",
                    error_code="INSUFFICIENT_BALANCE",
                )

            Booking.objects.filter(id=booking.id).update(
                gift_card_id=card.id,
                discount_cents=amount_cents,
                updated_at=now,
            )
            transaction.on_commit(lambda: invalidate_booking_financials(booking.id))

        card = GiftCard.objects.get(id=card.id)

        logger.info(
            "Gift card redeemed",
            extra={
                "gift_card_id": str(card.id),
                "booking_id": str(booking.id),
                "amount_cents": amount_cents,
                "balance_cents": card.balance_cents,
                **actor.log_context(),
            },
        )

        return ServiceResult.success(card)

    # =========================================================================
    # Lookup
    # =========================================================================

    @classmethod
    def lookup(cls, code: str) -> GiftCard | None:
        """Find a card by code, ignoring case and surrounding whitespace."""
        return GiftCard.objects.filter(code__iexact=code.strip()).first()
