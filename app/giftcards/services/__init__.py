"""
Gift card services.

- GiftCardService: Issuance, redemption, and code lookup
"""

from giftcards.services.gift_card_service import GiftCardService

__all__ = [
    "GiftCardService",
]
