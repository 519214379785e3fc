# payments/models/payment.py

"""
======================================================
PATH: payments/models/payment.py
======================================================
PAYMENT RECORD

One mobile-money push attempt for an order.

- `transaction_id` is the provider transaction handle (M-Pesa
  CheckoutRequestID, Airtel transaction id). It is unique once assigned and
  is the ONLY key callbacks are matched on.
- At most one attempt per order may be PENDING (partial unique constraint);
  retries create new rows.
- SUCCESS / FAILED / CANCELLED are terminal. Status changes go through
  payments.services.payment_lifecycle only.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Payment(models.Model):
    STATUS_PENDING = "pending"
    STATUS_SUCCESS = "success"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_SUCCESS, "Success"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    PROVIDER_MPESA = "mpesa"
    PROVIDER_AIRTEL = "airtel"

    PROVIDER_CHOICES = [
        (PROVIDER_MPESA, "M-Pesa"),
        (PROVIDER_AIRTEL, "Airtel Money"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    provider = models.CharField(max_length=20, choices=PROVIDER_CHOICES)
    phone_number = models.CharField(max_length=20)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(max_length=8, default="KES")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    # Our own reference sent to the provider (account reference / description)
    reference = models.CharField(max_length=64, unique=True)

    transaction_id = models.CharField(
        max_length=128,
        unique=True,
        null=True,
        blank=True,
        help_text="Provider transaction handle used to match callbacks",
    )
    external_ref = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Secondary provider reference (e.g. M-Pesa MerchantRequestID / receipt)",
    )

    result_code = models.CharField(max_length=32, blank=True, default="")
    result_description = models.TextField(blank=True, default="")
    provider_response = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status="pending"),
                name="payment_one_pending_per_order",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="payment_status_created_idx"),
            models.Index(fields=["provider", "transaction_id"], name="payment_provider_txn_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status != self.STATUS_PENDING

    def __str__(self):
        return f"{self.provider}:{self.transaction_id or self.reference} | {self.amount} | {self.status}"
