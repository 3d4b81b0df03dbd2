"""
Create payment ledger tables.

Changes:
    - Payment with FSM-managed status, refund totals and optimistic version
    - SyncLogEntry append-only processor interaction trail
    - WebhookEvent for idempotent inbound event processing
"""

import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
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
                        help_text="Client who made the payment",
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount collected in cents",
                    ),
                ),
                (
                    "tip_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Tip collected in cents",
                    ),
                ),
                (
                    "refunded_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Total refunded so far in cents",
                    ),
                ),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("processor_card", "Card (processor)"),
                            ("processor_other", "Other (processor)"),
                        ],
                        default="cash",
                        help_text="How the payment was settled",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("paid", "Paid"),
                            ("partially_refunded", "Partially Refunded"),
                            ("refunded", "Refunded"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="paid",
                        help_text="Current status of the payment (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "processor_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Processor payment id (Stripe PaymentIntent pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "processor_order_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Processor order or checkout session reference",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "receipt_url",
                    models.URLField(
                        blank=True,
                        help_text="Processor-hosted receipt",
                        max_length=500,
                        null=True,
                    ),
                ),
                (
                    "notes",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Free-text notes; refund reasons are appended",
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "paid_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the money was collected",
                        null=True,
                    ),
                ),
                (
                    "refunded_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the latest refund was applied",
                        null=True,
                    ),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        help_text="Booking this payment settles",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["booking", "status"],
                        name="payment_booking_status_idx",
                    ),
                    models.Index(
                        fields=["status", "paid_at"],
                        name="payment_status_paid_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="payment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("refunded_cents__lte", models.F("amount_cents"))
                        ),
                        name="payment_refunded_lte_amount",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SyncLogEntry",
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
                    "provider",
                    models.CharField(
                        default="stripe",
                        help_text="Payment processor name",
                        max_length=30,
                    ),
                ),
                (
                    "direction",
                    models.CharField(
                        choices=[("outbound", "Outbound"), ("inbound", "Inbound")],
                        default="outbound",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("success", "Success"),
                            ("failed", "Failed"),
                            ("skipped", "Skipped"),
                        ],
                        db_index=True,
                        max_length=10,
                    ),
                ),
                (
                    "entity_type",
                    models.CharField(
                        choices=[
                            ("refund", "Refund"),
                            ("payment_link", "Payment Link"),
                            ("payment", "Payment"),
                            ("webhook", "Webhook"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "event_kind",
                    models.CharField(
                        db_index=True,
                        help_text="Typed event discriminator (see payments.sync_events)",
                        max_length=40,
                    ),
                ),
                (
                    "local_id",
                    models.CharField(
                        db_index=True,
                        help_text="Local record id this entry refers to",
                        max_length=64,
                    ),
                ),
                (
                    "remote_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Processor-side id",
                        max_length=255,
                        null=True,
                    ),
                ),
                ("message", models.CharField(max_length=500)),
                (
                    "payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Serialized typed event fields",
                    ),
                ),
                ("error_message", models.TextField(blank=True, null=True)),
                (
                    "actor_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Identity that initiated the interaction",
                        max_length=64,
                    ),
                ),
            ],
            options={
                "verbose_name": "Sync Log Entry",
                "verbose_name_plural": "Sync Log Entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["entity_type", "local_id"],
                        name="synclog_entity_local_idx",
                    ),
                    models.Index(
                        fields=["status", "created_at"],
                        name="synclog_status_created_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
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
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'checkout.session.completed')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook payload from Stripe (JSON)"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Number of processing attempts",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                ],
            },
        ),
    ]
