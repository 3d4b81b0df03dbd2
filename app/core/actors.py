"""
Actor identity threaded through mutating operations.

The engine never looks up a "current user". Whoever resolves the request
(a view, a Celery task, a webhook handler) builds an Actor once and passes
it down; services record it on sync log entries and in log context.

Usage:
    from core.actors import Actor

    actor = Actor(id=str(request.user.id), display_name="Front desk", kind="staff")
    RefundService.process_refund(payment.id, 5000, reason="No-show", actor=actor)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """
    Identity of whoever initiated an operation.

    Attributes:
        id: Opaque identifier of the actor (user id, task name, etc.)
        display_name: Human-readable name for audit screens
        kind: One of "staff", "system" or "webhook"
    """

    id: str
    display_name: str = ""
    kind: str = "staff"

    @classmethod
    def system(cls) -> Actor:
        return cls(id="system", display_name="System", kind="system")

    @classmethod
    def webhook(cls, provider: str) -> Actor:
        return cls(id=f"webhook:{provider}", display_name=provider.title(), kind="webhook")

    def log_context(self) -> dict[str, str]:
        return {"actor_id": self.id, "actor_kind": self.kind}
