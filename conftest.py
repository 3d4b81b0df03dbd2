"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full booking-to-refund workflows)
    - test_services.py, test_tasks.py, test_handlers.py, etc. → integration
    - test_models.py, test_money.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_services.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_webhook_service.py",
        "test_refund_service.py",
        "test_payment_recorder.py",
        "test_payment_link_service.py",
        "test_sync_log.py",
        "test_balance_service.py",
        "test_gift_card_service.py",
        "test_promotion_service.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_money.py",
        "test_stripe_adapter.py",
        "test_locks.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty cache so cached balances never leak."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()
