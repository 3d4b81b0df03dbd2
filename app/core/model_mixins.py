"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    AppendOnlyMixin: Reject updates and deletes of persisted rows

Usage:
    from core.models import BaseModel
    from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin

    class SyncLogEntry(UUIDPrimaryKeyMixin, AppendOnlyMixin, BaseModel):
        message = models.TextField()

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models

from core.exceptions import ConflictError

if TYPE_CHECKING:
    from typing import Any


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Ledger identifiers are opaque: they never reveal how many bookings
    or payments a studio has taken.

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class AppendOnlyMixin(models.Model):
    """
    Make a model insert-only at the instance level.

    ``save()`` on a row that already exists and ``delete()`` both raise
    ConflictError. Queryset ``update()``/``delete()`` bypass instance
    methods, so audit tables should only ever be written through their
    service.

    Usage:
        entry = SyncLogEntry.objects.create(message="Refunded $50.00")
        entry.message = "edited"
        entry.save()  # raises ConflictError
    """

    class Meta:
        abstract = True

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ConflictError(
                f"{self.__class__.__name__} rows are append-only",
                error_code="APPEND_ONLY",
                details={"pk": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> Any:
        raise ConflictError(
            f"{self.__class__.__name__} rows cannot be deleted",
            error_code="APPEND_ONLY",
            details={"pk": str(self.pk)},
        )
