"""
WebhookEvent model for inbound Stripe event tracking.

Every verified webhook is stored before processing. The unique
stripe_event_id makes redelivery of the same event a no-op.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id="evt_1234567890",
        defaults={"event_type": "checkout.session.completed", "payload": data},
    )
"""

from __future__ import annotations

from typing import Any

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks Stripe webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, signature verified
        2. Insert/get WebhookEvent by stripe_event_id
        3. If already PROCESSED -> nothing to do
        4. Celery task marks PROCESSING and dispatches to a handler
        5. Handler result marks PROCESSED or FAILED
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'checkout.session.completed')",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(null=True, blank=True)

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="webhook_status_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < MAX_WEBHOOK_RETRIES
        )

    # ==========================================================================
    # Helper Methods (callers save)
    # ==========================================================================

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object(self) -> dict[str, Any]:
        """Return ``payload.data.object`` or an empty dict."""
        try:
            return self.payload.get("data", {}).get("object", {}) or {}
        except AttributeError:
            return {}

    def get_object_id(self) -> str | None:
        return self.get_object().get("id")
