"""
Create the GiftCard table.

Changes:
    - GiftCard with sequential unique code and cents balance
    - Balance bounded by the original value
    - REDEEMED status tied to a zero balance
"""

import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="GiftCard",
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
                        help_text="Sequential gift card code (PREFIX-NNN)",
                        max_length=32,
                        unique=True,
                    ),
                ),
                (
                    "purchaser_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Client who purchased the card",
                        null=True,
                    ),
                ),
                (
                    "recipient_name",
                    models.CharField(blank=True, default="", max_length=200),
                ),
                (
                    "original_cents",
                    models.PositiveBigIntegerField(
                        help_text="Value at issuance in cents",
                    ),
                ),
                (
                    "balance_cents",
                    models.PositiveBigIntegerField(
                        help_text="Remaining value in cents",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("redeemed", "Redeemed"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                (
                    "purchased_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "expires_at",
                    models.DateTimeField(blank=True, null=True),
                ),
            ],
            options={
                "verbose_name": "Gift Card",
                "verbose_name_plural": "Gift Cards",
                "ordering": ["-purchased_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("balance_cents__gte", 0),
                            ("balance_cents__lte", models.F("original_cents")),
                        ),
                        name="giftcard_balance_within_original",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("balance_cents", 0), ("status", "redeemed")),
                            models.Q(
                                models.Q(("status", "redeemed"), _negated=True),
                                ("balance_cents__gt", 0),
                            ),
                            _connector="OR",
                        ),
                        name="giftcard_redeemed_iff_empty",
                    ),
                ],
            },
        ),
    ]
