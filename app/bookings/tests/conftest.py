"""
Pytest fixtures for booking tests.
"""

import pytest

from bookings.tests.factories import BookingFactory, ServiceFactory


@pytest.fixture
def service(db):
    """A tattoo service."""
    return ServiceFactory(name="Fine line tattoo", category="tattoo")


@pytest.fixture
def booking(db, service):
    """A confirmed $180.00 booking."""
    return BookingFactory(service=service, total_cents=18000)
