"""Promotion exceptions."""

from __future__ import annotations

from core.exceptions import NotFoundError


class PromotionNotFoundError(NotFoundError):
    """Raised when a referenced promotion does not exist."""

    default_error_code: str = "PROMOTION_NOT_FOUND"
