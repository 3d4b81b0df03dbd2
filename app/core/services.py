"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (business rules the caller
      renders as a message: "Insufficient gift card balance")
    - Exceptions: Use for precondition failures (missing booking, client
      mismatch) that indicate a bug or tampering

Usage:
    from core.services import BaseService, ServiceResult

    class GiftCardService(BaseService):
        @classmethod
        def redeem_gift_card(cls, ...) -> ServiceResult[GiftCard]:
            if card.balance_cents < amount_cents:
                return ServiceResult.failure(
                    "Insufficient gift card balance",
                    error_code="INSUFFICIENT_BALANCE",
                )

            with cls.atomic():
                ...

            cls.get_logger().info("Gift card redeemed", extra={...})
            return ServiceResult.success(card)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from core.exceptions import BaseApplicationError

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    This is the `{success, error?}` shape returned by operations that can
    fail for expected business reasons.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Human-readable error message if failed
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        result = RefundService.process_refund(payment.id, 5000)
        if not result:
            messages.error(request, result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from a domain exception.

        Keeps the exception's own message (without the ``[CODE]`` prefix
        that ``str(exc)`` adds) so it can be shown to a user as-is.
        """
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to a plain dict.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for precondition failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for easy
        filtering in logs (e.g. ``payments.services.refund_service.RefundService``).
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around ``django.db.transaction.atomic`` that makes
        transaction boundaries explicit in service code.

        Example:
            with cls.atomic():
                Booking.objects.filter(id=booking.id).update(...)
                Promotion.objects.filter(id=promo.id).update(...)
                # Both rows roll back together on failure
        """
        with transaction.atomic():
            yield
