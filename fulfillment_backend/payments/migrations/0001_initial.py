import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("provider", models.CharField(choices=[("mpesa", "M-Pesa"), ("airtel", "Airtel Money")], max_length=20)),
                ("phone_number", models.CharField(max_length=20)),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("currency", models.CharField(default="KES", max_length=8)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("success", "Success"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("reference", models.CharField(max_length=64, unique=True)),
                (
                    "transaction_id",
                    models.CharField(
                        blank=True,
                        help_text="Provider transaction handle used to match callbacks",
                        max_length=128,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "external_ref",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Secondary provider reference (e.g. M-Pesa MerchantRequestID / receipt)",
                        max_length=128,
                    ),
                ),
                ("result_code", models.CharField(blank=True, default="", max_length=32)),
                ("result_description", models.TextField(blank=True, default="")),
                ("provider_response", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("order",),
                        name="payment_one_pending_per_order",
                    ),
                ],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="payment_status_created_idx"),
                    models.Index(fields=["provider", "transaction_id"], name="payment_provider_txn_idx"),
                ],
            },
        ),
    ]
