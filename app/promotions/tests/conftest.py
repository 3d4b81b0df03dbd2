"""
Pytest fixtures for promotion tests.
"""

import pytest

from bookings.tests.factories import BookingFactory, ServiceFactory
from promotions.tests.factories import PromotionFactory


@pytest.fixture
def save20(db):
    """SAVE20: 20% off, single use."""
    return PromotionFactory(code="SAVE20", discount_value=20, max_uses=1)


@pytest.fixture
def booking(db):
    """A confirmed $100.00 tattoo booking."""
    return BookingFactory(
        service=ServiceFactory(category="tattoo"),
        total_cents=10000,
    )
