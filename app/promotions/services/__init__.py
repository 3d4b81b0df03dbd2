"""
Promotion services.

- PromotionService: Validation, discount calculation, application, admin
"""

from promotions.services.promotion_service import PromotionService, PromoValidation

__all__ = [
    "PromoValidation",
    "PromotionService",
]
