"""
Create Service and Booking tables.

Changes:
    - Service with display name, promotion category and list price
    - Booking with cents totals, applied discount and processor order link
    - Discount never exceeds the booking total
"""

import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("giftcards", "0001_initial"),
        ("promotions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Service",
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
                    "name",
                    models.CharField(
                        help_text="Display name shown on checkout pages",
                        max_length=200,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Service category used for promotion scoping (e.g. 'tattoo')",
                        max_length=50,
                    ),
                ),
                (
                    "price_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="List price in cents",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name": "Service",
                "verbose_name_plural": "Services",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Booking",
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
                    "client_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Client who owns this booking",
                    ),
                ),
                (
                    "scheduled_at",
                    models.DateTimeField(help_text="Appointment start time"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("no_show", "No Show"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Scheduling status",
                        max_length=20,
                    ),
                ),
                (
                    "total_cents",
                    models.PositiveBigIntegerField(help_text="Gross total in cents"),
                ),
                (
                    "discount_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Discount applied in cents (gift card or promotion)",
                    ),
                ),
                (
                    "deposit_cents",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Deposit required up front, in cents",
                        null=True,
                    ),
                ),
                (
                    "processor_order_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Processor order reference (first writer wins)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "gift_card",
                    models.ForeignKey(
                        blank=True,
                        help_text="Gift card redeemed against this booking",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="giftcards.giftcard",
                    ),
                ),
                (
                    "promotion",
                    models.ForeignKey(
                        blank=True,
                        help_text="Promotion applied to this booking",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="promotions.promotion",
                    ),
                ),
                (
                    "service",
                    models.ForeignKey(
                        blank=True,
                        help_text="Booked service",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="bookings.service",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-scheduled_at"],
                "indexes": [
                    models.Index(
                        fields=["client_id", "status"],
                        name="booking_client_status_idx",
                    ),
                    models.Index(
                        fields=["status", "scheduled_at"],
                        name="booking_status_scheduled_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("discount_cents__lte", models.F("total_cents"))
                        ),
                        name="booking_discount_lte_total",
                    ),
                ],
            },
        ),
    ]
