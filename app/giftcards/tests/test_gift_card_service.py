"""
Tests for GiftCardService.

Tests cover:
- Sequential code generation
- Issuance
- Redemption rules and the atomic balance decrement
- Case-insensitive lookup
"""

import uuid
from datetime import timedelta

import pytest
from django.test import override_settings
from django.utils import timezone
from freezegun import freeze_time

from bookings.exceptions import BookingNotFoundError
from bookings.models import Booking
from bookings.services import BalanceService
from bookings.tests.factories import BookingFactory
from core.actors import Actor
from core.exceptions import ValidationError
from giftcards.exceptions import GiftCardNotFoundError
from giftcards.models import GiftCard, GiftCardStatus
from giftcards.services import GiftCardService
from giftcards.tests.factories import GiftCardFactory


# =============================================================================
# Codes and Issuance
# =============================================================================


@pytest.mark.django_db
class TestNextCode:
    """Tests for GiftCardService.next_code."""

    def test_first_code(self):
        assert GiftCardService.next_code("TC-GC") == "TC-GC-001"

    def test_follows_highest_suffix(self):
        GiftCardFactory(code="TC-GC-002")
        GiftCardFactory(code="TC-GC-010")
        GiftCardFactory(code="TC-GC-CUSTOM")
        GiftCardFactory(code="OTHER-050")

        assert GiftCardService.next_code("TC-GC") == "TC-GC-011"

    def test_grows_past_three_digits(self):
        GiftCardFactory(code="TC-GC-999")

        assert GiftCardService.next_code("TC-GC") == "TC-GC-1000"

    @override_settings(GIFT_CARD_CODE_PREFIX="INK")
    def test_default_prefix_from_settings(self):
        assert GiftCardService.next_code() == "INK-001"


@pytest.mark.django_db
class TestCreateGiftCard:
    """Tests for GiftCardService.create_gift_card."""

    @override_settings(GIFT_CARD_CODE_PREFIX="TC-GC")
    def test_issues_full_balance(self):
        purchaser = uuid.uuid4()
        expires_at = timezone.now() + timedelta(days=365)

        card = GiftCardService.create_gift_card(
            10000,
            purchaser_id=purchaser,
            recipient_name="Sam",
            expires_at=expires_at,
            actor=Actor(id="staff-1"),
        )

        assert card.code == "TC-GC-001"
        assert card.original_cents == 10000
        assert card.balance_cents == 10000
        assert card.status == GiftCardStatus.ACTIVE
        assert card.purchaser_id == purchaser
        assert card.recipient_name == "Sam"
        assert card.expires_at == expires_at

    @override_settings(GIFT_CARD_CODE_PREFIX="TC-GC")
    def test_sequential_codes(self):
        first = GiftCardService.create_gift_card(5000)
        second = GiftCardService.create_gift_card(5000)

        assert (first.code, second.code) == ("TC-GC-001", "TC-GC-002")

    @pytest.mark.parametrize("amount", [0, -100, 99.5])
    def test_rejects_non_positive_value(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            GiftCardService.create_gift_card(amount)

        assert exc_info.value.error_code == "INVALID_AMOUNT"
        assert GiftCard.objects.count() == 0


# =============================================================================
# Redemption
# =============================================================================


@pytest.mark.django_db
class TestRedeemGiftCard:
    """Tests for GiftCardService.redeem_gift_card."""

    def test_full_redemption(self, gift_card, booking):
        """Redeeming the whole balance empties and closes the card."""
        result = GiftCardService.redeem_gift_card(booking.id, gift_card.id, 10000)

        assert result.success
        assert result.data.balance_cents == 0
        assert result.data.status == GiftCardStatus.REDEEMED

        booking = Booking.objects.get(id=booking.id)
        assert booking.discount_cents == 10000
        assert booking.gift_card_id == gift_card.id

    def test_partial_redemption(self, gift_card, booking):
        result = GiftCardService.redeem_gift_card(booking.id, gift_card.id, 2500)

        assert result.data.balance_cents == 7500
        assert result.data.status == GiftCardStatus.ACTIVE

    def test_second_booking_spends_remainder(self, gift_card, booking):
        other = BookingFactory(total_cents=9000)

        GiftCardService.redeem_gift_card(booking.id, gift_card.id, 6000)
        result = GiftCardService.redeem_gift_card(other.id, gift_card.id, 4000)

        assert result.success
        assert result.data.status == GiftCardStatus.REDEEMED

    def test_insufficient_balance(self, gift_card, booking):
        result = GiftCardService.redeem_gift_card(booking.id, gift_card.id, 10001)

        assert not result.success
        assert result.error == "Insufficient gift card balance"
        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert GiftCard.objects.get(id=gift_card.id).balance_cents == 10000

    def test_redeemed_card_rejected(self, booking):
        card = GiftCardFactory(redeemed=True)

        result = GiftCardService.redeem_gift_card(booking.id, card.id, 100)

        assert result.error == "Gift card is not active"
        assert result.error_code == "GIFT_CARD_NOT_ACTIVE"

    def test_expired_card_rejected(self, booking):
        with freeze_time("2026-01-01"):
            card = GiftCardFactory(expires_at=timezone.now() + timedelta(days=30))

        with freeze_time("2026-03-01"):
            result = GiftCardService.redeem_gift_card(booking.id, card.id, 100)

        assert result.error_code == "GIFT_CARD_NOT_ACTIVE"
        assert GiftCard.objects.get(id=card.id).balance_cents == 10000

    def test_unexpired_card_accepted(self, booking):
        with freeze_time("2026-01-01"):
            card = GiftCardFactory(expires_at=timezone.now() + timedelta(days=30))
            result = GiftCardService.redeem_gift_card(booking.id, card.id, 100)

        assert result.success

    def test_exceeds_booking_total(self, db):
        card = GiftCardFactory(original_cents=20000)
        small = BookingFactory(total_cents=5000)

        result = GiftCardService.redeem_gift_card(small.id, card.id, 6000)

        assert result.error_code == "EXCEEDS_BOOKING_TOTAL"

    @pytest.mark.parametrize("amount", [0, -1, 10.0])
    def test_invalid_amount(self, gift_card, booking, amount):
        result = GiftCardService.redeem_gift_card(booking.id, gift_card.id, amount)

        assert result.error == "Redemption amount must be positive"
        assert result.error_code == "INVALID_AMOUNT"

    def test_unknown_card(self, booking):
        with pytest.raises(GiftCardNotFoundError):
            GiftCardService.redeem_gift_card(booking.id, uuid.uuid4(), 100)

    def test_unknown_booking(self, gift_card):
        with pytest.raises(BookingNotFoundError):
            GiftCardService.redeem_gift_card(uuid.uuid4(), gift_card.id, 100)

    def test_stale_read_cannot_overdraw(self, gift_card, booking, mocker):
        """
        The balance is re-checked by the UPDATE itself.

        A concurrent redemption that empties the card between the read and
        the write leaves this one rejected.
        """
        stale = GiftCard.objects.get(id=gift_card.id)
        GiftCard.objects.filter(id=gift_card.id).update(
            balance_cents=0, status=GiftCardStatus.REDEEMED
        )
        real_filter = GiftCard.objects.filter

        def filter_with_stale_read(*args, **kwargs):
            queryset = real_filter(*args, **kwargs)
            if kwargs == {"id": gift_card.id}:
                queryset.first = lambda: stale
            return queryset

        mocker.patch.object(GiftCard.objects, "filter", side_effect=filter_with_stale_read)

        result = GiftCardService.redeem_gift_card(booking.id, gift_card.id, 5000)

        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert Booking.objects.get(id=booking.id).discount_cents == 0

    def test_invalidates_cached_balance(
        self, gift_card, booking, django_capture_on_commit_callbacks
    ):
        assert BalanceService.get_balance(booking.id).remaining.cents == 18000

        with django_capture_on_commit_callbacks(execute=True):
            GiftCardService.redeem_gift_card(booking.id, gift_card.id, 10000)

        assert BalanceService.get_balance(booking.id).remaining.cents == 8000


@pytest.mark.django_db
class TestLookup:
    """Tests for GiftCardService.lookup."""

    def test_case_insensitive(self):
        card = GiftCardFactory(code="TC-GC-007")

        assert GiftCardService.lookup("  tc-gc-007 ") == card

    def test_missing(self, db):
        assert GiftCardService.lookup("TC-GC-404") is None
