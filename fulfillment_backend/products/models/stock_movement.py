# products/models/stock_movement.py

"""
INVENTORY AUDIT TRAIL

Immutable record of every stock counter change made by the ledger.

GUARANTEES:
- Append-only (no updates, no deletes)
- Direction is derived from reason (reservations go OUT, everything else IN)
- Order-driven movements reference their order
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        RESTOCK = "RESTOCK", "Restock"
        RESERVATION = "RESERVATION", "Order Reservation"
        CANCELLATION = "CANCELLATION", "Order Cancelled"
        PAYMENT_FAILED = "PAYMENT_FAILED", "Payment Failed"

    REASON_TO_MOVEMENT = {
        Reason.RESTOCK: MovementType.IN,
        Reason.RESERVATION: MovementType.OUT,
        Reason.CANCELLATION: MovementType.IN,
        Reason.PAYMENT_FAILED: MovementType.IN,
    }

    ORDER_REASONS = {Reason.RESERVATION, Reason.CANCELLATION, Reason.PAYMENT_FAILED}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="stockmove_product_created_idx"),
            models.Index(fields=["order", "reason"], name="stockmove_order_reason_idx"),
        ]

    def clean(self):
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected_type = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.reason} requires movement_type={expected_type}"
            )

        if self.reason in self.ORDER_REASONS and not self.order_id:
            raise ValidationError(f"{self.reason} must reference an order")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        if not self.movement_type:
            self.movement_type = self.REASON_TO_MOVEMENT.get(self.reason, "")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.reason} | {self.quantity}"
