"""
Payments app configuration.

This app records payments against bookings, performs refunds through the
external processor, issues hosted payment links, and keeps the sync log
that reconciles local state with the processor.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        # Register webhook handlers
        from payments.webhooks import handlers  # noqa: F401
