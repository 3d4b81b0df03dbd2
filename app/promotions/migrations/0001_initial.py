"""
Create the Promotion table.

Changes:
    - Promotion with upper-cased unique code and discount settings
    - Redemption counter bounded by max_uses
    - Percent discounts bounded to 100
"""

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Promotion",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "code",
                    models.CharField(
                        help_text="Promo code, stored upper-cased",
                        max_length=50,
                        unique=True,
                    ),
                ),
                (
                    "discount_type",
                    models.CharField(
                        choices=[
                            ("percent", "Percent"),
                            ("fixed", "Fixed amount"),
                            ("bogo", "Buy one, get one"),
                        ],
                        max_length=10,
                    ),
                ),
                (
                    "discount_value",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Percent (0-100) or cents, depending on discount type",
                    ),
                ),
                (
                    "applies_to",
                    models.CharField(
                        blank=True,
                        help_text="Service category this code is limited to",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "max_uses",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Maximum redemptions (empty = unlimited)",
                        null=True,
                    ),
                ),
                ("redemption_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Promotion",
                "verbose_name_plural": "Promotions",
                "ordering": ["code"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("max_uses__isnull", True),
                            ("redemption_count__lte", models.F("max_uses")),
                            _connector="OR",
                        ),
                        name="promotion_redemptions_within_max_uses",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("discount_type", "percent"), _negated=True),
                            ("discount_value__lte", 100),
                            _connector="OR",
                        ),
                        name="promotion_percent_within_range",
                    ),
                ],
            },
        ),
    ]
