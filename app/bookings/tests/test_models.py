"""
Tests for Booking and Service models.
"""

import pytest
from django.db import IntegrityError

from core.money import Money

from bookings.models import BookingStatus
from bookings.tests.factories import BookingFactory


@pytest.mark.django_db
class TestBookingModel:
    """Tests for Booking."""

    def test_effective_total_subtracts_discount(self):
        """Effective total is total minus discount."""
        booking = BookingFactory(total_cents=18000, discount_cents=3600)

        assert booking.total == Money(18000)
        assert booking.discount == Money(3600)
        assert booking.effective_total == Money(14400)

    def test_discount_cannot_exceed_total(self):
        """The database rejects a discount above the total."""
        with pytest.raises(IntegrityError):
            BookingFactory(total_cents=1000, discount_cents=1001)

    def test_service_name_uses_service(self, booking):
        """Checkout label comes from the service."""
        assert booking.service_name == "Fine line tattoo"

    def test_service_name_fallback(self):
        """Custom appointments without a service get a generic label."""
        booking = BookingFactory(service=None)

        assert booking.service_name == "Appointment"

    @pytest.mark.parametrize(
        "status,payable",
        [
            (BookingStatus.PENDING, False),
            (BookingStatus.CONFIRMED, True),
            (BookingStatus.IN_PROGRESS, True),
            (BookingStatus.COMPLETED, True),
            (BookingStatus.CANCELLED, False),
            (BookingStatus.NO_SHOW, False),
        ],
    )
    def test_is_payable(self, status, payable):
        """Only confirmed, in-progress and completed bookings take payments."""
        assert BookingFactory(status=status).is_payable is payable

    def test_str(self, booking):
        """String form includes status and formatted total."""
        assert "confirmed" in str(booking)
        assert "$180.00" in str(booking)
