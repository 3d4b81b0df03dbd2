"""Gift card exceptions."""

from __future__ import annotations

from core.exceptions import NotFoundError


class GiftCardNotFoundError(NotFoundError):
    """Raised when a referenced gift card does not exist."""

    default_error_code: str = "GIFT_CARD_NOT_FOUND"
