"""
Reconciliation log writer and queries.

SyncLogService is the only code that creates SyncLogEntry rows. Callers hand
it a typed event from payments.sync_events; the event decides the row's
status, direction, entity type and message.

Usage:
    from payments.services import SyncLogService
    from payments.sync_events import RefundSucceeded

    SyncLogService.record(
        RefundSucceeded(amount_cents=5000, currency="usd",
                        idempotency_key=key, refund_id="re_123"),
        local_id=payment.id,
        remote_id="re_123",
        actor=actor,
    )
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.db.models import Count

from core.actors import Actor
from core.services import BaseService

from payments.models import SyncLogEntry
from payments.state_machines import SyncStatus
from payments.sync_events import SyncEvent, parse_event

if TYPE_CHECKING:
    from django.db.models import QuerySet


class SyncLogService(BaseService):
    """
    Append-only reconciliation trail for processor interactions.
    """

    @classmethod
    def record(
        cls,
        event: SyncEvent,
        *,
        local_id: Any,
        remote_id: str | None = None,
        actor: Actor | None = None,
        provider: str = "stripe",
    ) -> SyncLogEntry:
        """
        Write one entry for ``event``.

        Args:
            event: Typed reconciliation event
            local_id: Local record the event concerns (payment, booking, ...)
            remote_id: Processor-side id (refund id, checkout session id)
            actor: Who initiated the interaction
            provider: Processor name

        Returns:
            The created SyncLogEntry
        """
        actor = actor or Actor.system()
        local_id = str(local_id)

        entry = SyncLogEntry.objects.create(
            provider=provider,
            direction=event.direction,
            status=event.status,
            entity_type=event.entity_type,
            event_kind=event.kind,
            local_id=local_id,
            remote_id=remote_id,
            message=event.message(local_id),
            payload=event.to_payload(),
            error_message=event.error_message,
            actor_id=actor.id,
        )

        log_extra = {
            "sync_log_id": str(entry.id),
            "event_kind": event.kind,
            "local_id": local_id,
            "remote_id": remote_id,
            **actor.log_context(),
        }
        if event.status == SyncStatus.FAILED:
            cls.get_logger().warning(entry.message, extra=log_extra)
        else:
            cls.get_logger().info(entry.message, extra=log_extra)

        return entry

    @classmethod
    def entries_for(cls, local_id: Any) -> QuerySet[SyncLogEntry]:
        """Entries for a local record, oldest first."""
        return SyncLogEntry.objects.filter(local_id=str(local_id)).order_by(
            "created_at"
        )

    @classmethod
    def events_for(cls, local_id: Any) -> list[SyncEvent]:
        """Typed events for a local record, oldest first."""
        return [
            parse_event(entry.event_kind, entry.payload)
            for entry in cls.entries_for(local_id)
        ]

    @classmethod
    def has_remote_id(cls, event_kind: str, remote_id: str) -> bool:
        """True if an entry of ``event_kind`` already carries ``remote_id``."""
        return SyncLogEntry.objects.filter(
            event_kind=event_kind,
            remote_id=remote_id,
        ).exists()

    @classmethod
    def summary(cls, since: datetime | None = None) -> dict[str, int]:
        """
        Count entries by status.

        Returns:
            Dict with a key for every SyncStatus value, zero-filled
        """
        queryset = SyncLogEntry.objects.all()
        if since is not None:
            queryset = queryset.filter(created_at__gte=since)

        counts = {status.value: 0 for status in SyncStatus}
        for row in queryset.values("status").annotate(total=Count("id")).order_by():
            counts[row["status"]] = row["total"]
        return counts
