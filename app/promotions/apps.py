"""Promotions app configuration."""

from django.apps import AppConfig


class PromotionsConfig(AppConfig):
    """Configuration for the promotions application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "promotions"
    verbose_name = "Promotions"
