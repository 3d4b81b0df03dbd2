"""
Factory Boy factories for promotion test data.

Usage:
    from promotions.tests.factories import PromotionFactory

    promo = PromotionFactory(code="SAVE20", discount_value=20, max_uses=1)
"""

import factory

from promotions.models import DiscountType, Promotion


class PromotionFactory(factory.django.DjangoModelFactory):
    """Factory for active, unlimited 20% promotions."""

    class Meta:
        model = Promotion

    code = factory.Sequence(lambda n: f"PROMO{n}")
    discount_type = DiscountType.PERCENT
    discount_value = 20
    is_active = True
