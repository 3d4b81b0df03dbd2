"""
Tests for the Promotion model.
"""

import pytest
from django.db import IntegrityError

from promotions.models import DiscountType
from promotions.tests.factories import PromotionFactory


@pytest.mark.django_db
class TestPromotionModel:
    """Tests for Promotion."""

    def test_code_upper_cased_on_save(self):
        promo = PromotionFactory(code="  spring10 ")

        assert promo.code == "SPRING10"

    def test_uses_remaining(self):
        assert PromotionFactory(max_uses=None).uses_remaining is None
        assert PromotionFactory(max_uses=3, redemption_count=1).uses_remaining == 2

    def test_redemptions_cannot_exceed_max_uses(self):
        with pytest.raises(IntegrityError):
            PromotionFactory(max_uses=1, redemption_count=2)

    def test_percent_capped_at_100(self):
        with pytest.raises(IntegrityError):
            PromotionFactory(discount_type=DiscountType.PERCENT, discount_value=101)

    def test_fixed_value_not_capped(self):
        promo = PromotionFactory(discount_type=DiscountType.FIXED, discount_value=50000)

        assert promo.discount_value == 50000
