"""Gift cards app configuration."""

from django.apps import AppConfig


class GiftCardsConfig(AppConfig):
    """Configuration for the gift cards application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "giftcards"
    verbose_name = "Gift Cards"
