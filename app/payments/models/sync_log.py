"""
SyncLogEntry model - append-only reconciliation trail.

One row per outbound call to the payment processor (refunds, payment links)
and per significant inbound processor event (webhooks). Rows are written only
through SyncLogService, which builds the payload from a typed event in
payments.sync_events.

Usage:
    from payments.models import SyncLogEntry

    SyncLogEntry.objects.filter(local_id=str(payment.id)).order_by("created_at")
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin

from payments.state_machines import SyncDirection, SyncEntityType, SyncStatus


class SyncLogEntry(UUIDPrimaryKeyMixin, AppendOnlyMixin, BaseModel):
    """
    Audit record of one processor interaction.

    Fields:
        provider: Processor name ("stripe")
        direction: Outbound call or inbound event
        status: success, failed, or skipped
        entity_type: Local entity kind (refund, payment_link, ...)
        event_kind: Typed event discriminator (refund_succeeded, ...)
        local_id: Local record id (payment id, booking id, ...)
        remote_id: Processor-side id (refund id, checkout session id, ...)
        message: Human-readable summary ("Refunded $50.00")
        payload: Typed event fields, serialized
        error_message: Processor error text for failures
        actor_id: Who initiated the interaction

    Note:
        Never mutated after creation (AppendOnlyMixin).
    """

    provider = models.CharField(
        max_length=30,
        default="stripe",
        help_text="Payment processor name",
    )

    direction = models.CharField(
        max_length=10,
        choices=SyncDirection.choices,
        default=SyncDirection.OUTBOUND,
    )

    status = models.CharField(
        max_length=10,
        choices=SyncStatus.choices,
        db_index=True,
    )

    entity_type = models.CharField(
        max_length=20,
        choices=SyncEntityType.choices,
    )

    event_kind = models.CharField(
        max_length=40,
        db_index=True,
        help_text="Typed event discriminator (see payments.sync_events)",
    )

    local_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Local record id this entry refers to",
    )

    remote_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Processor-side id",
    )

    message = models.CharField(max_length=500)

    payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Serialized typed event fields",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
    )

    actor_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Identity that initiated the interaction",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Sync Log Entry"
        verbose_name_plural = "Sync Log Entries"
        indexes = [
            models.Index(
                fields=["entity_type", "local_id"],
                name="synclog_entity_local_idx",
            ),
            models.Index(
                fields=["status", "created_at"],
                name="synclog_status_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"SyncLogEntry({self.event_kind}, {self.status}, {self.local_id})"
