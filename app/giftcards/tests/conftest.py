"""
Pytest fixtures for gift card tests.
"""

import pytest

from bookings.tests.factories import BookingFactory
from giftcards.tests.factories import GiftCardFactory


@pytest.fixture
def gift_card(db):
    """An active $100.00 gift card."""
    return GiftCardFactory(original_cents=10000)


@pytest.fixture
def booking(db):
    """A confirmed $180.00 booking."""
    return BookingFactory(total_cents=18000)
