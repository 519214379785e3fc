# products/services/inventory.py

"""
======================================================
PATH: products/services/inventory.py
======================================================
INVENTORY LEDGER

Purpose:
- Sole owner of Product.stock.
- reserve(): conditional decrement, succeeds only while stock >= qty.
- restore(): unconditional increment (cancellation / failed payment).
- Every change appends a StockMovement audit row.

Rules:
- Quantities are integer units >= 1.
- The decrement is ONE statement at the database:
      UPDATE product SET stock = stock - qty WHERE id = ? AND stock >= qty
  There is no read-then-write in Python, so concurrent reservations for the
  same product can never lose an update or push stock below zero.
- reserve_many() is all-or-nothing: it runs inside a savepoint, so a failed
  line rolls back the lines reserved before it.
"""

from __future__ import annotations

import logging
import uuid

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from products.models import Product, StockMovement
from products.services.exceptions import InsufficientStock, ProductNotFound

logger = logging.getLogger(__name__)


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise ValueError("quantity must be a whole integer unit")

    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise ValueError("quantity must be a whole integer unit")

    if qty <= 0:
        raise ValueError("quantity must be >= 1")
    return qty


def _to_product_id(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        raise ProductNotFound(value) from None


def aggregate_lines(lines) -> list[tuple]:
    """
    [(product_id, qty), ...] -> merged per product, sorted by product id.

    Ids are coerced to UUID, so "abc..." and UUID("abc...") merge into one line.
    Sorting gives every transaction the same row-lock order, which keeps
    concurrent multi-line reservations from deadlocking on Postgres.
    """
    merged: dict = {}
    for product_id, qty in lines:
        key = _to_product_id(product_id)
        merged[key] = merged.get(key, 0) + _to_int_qty(qty)
    return sorted(merged.items(), key=lambda kv: str(kv[0]))


class InventoryLedger:
    # ============================================================
    # READS
    # ============================================================

    def available(self, *, product_id) -> int:
        stock = Product.objects.filter(pk=product_id).values_list("stock", flat=True).first()
        if stock is None:
            raise ProductNotFound(product_id)
        return int(stock)

    # ============================================================
    # WRITES
    # ============================================================

    @transaction.atomic
    def reserve(self, *, product_id, quantity, order=None, user=None) -> None:
        qty = _to_int_qty(quantity)

        updated = Product.objects.filter(pk=product_id, stock__gte=qty).update(
            stock=F("stock") - qty,
            updated_at=timezone.now(),
        )

        if updated == 0:
            row = Product.objects.filter(pk=product_id).values("name", "stock").first()
            if row is None:
                raise ProductNotFound(product_id)
            logger.info(
                "Reservation refused",
                extra={"product_id": str(product_id), "requested": qty, "available": row["stock"]},
            )
            raise InsufficientStock(
                product_id=product_id,
                product_name=row["name"],
                requested=qty,
                available=int(row["stock"]),
            )

        StockMovement.objects.create(
            product_id=product_id,
            reason=StockMovement.Reason.RESERVATION,
            quantity=qty,
            order=order,
            performed_by=user,
        )

    @transaction.atomic
    def restore(self, *, product_id, quantity, reason=StockMovement.Reason.CANCELLATION, order=None, user=None) -> None:
        qty = _to_int_qty(quantity)

        updated = Product.objects.filter(pk=product_id).update(
            stock=F("stock") + qty,
            updated_at=timezone.now(),
        )
        if updated == 0:
            raise ProductNotFound(product_id)

        StockMovement.objects.create(
            product_id=product_id,
            reason=reason,
            quantity=qty,
            order=order,
            performed_by=user,
        )

    def receive(self, *, product_id, quantity, user=None) -> None:
        """Restock from a delivery (admin intake)."""
        self.restore(
            product_id=product_id,
            quantity=quantity,
            reason=StockMovement.Reason.RESTOCK,
            user=user,
        )

    # ============================================================
    # ORDER-LEVEL HELPERS
    # ============================================================

    def reserve_many(self, lines, *, order=None, user=None) -> None:
        with transaction.atomic():
            for product_id, qty in aggregate_lines(lines):
                self.reserve(product_id=product_id, quantity=qty, order=order, user=user)

    def restore_many(self, lines, *, reason, order=None, user=None) -> None:
        with transaction.atomic():
            for product_id, qty in aggregate_lines(lines):
                self.restore(product_id=product_id, quantity=qty, reason=reason, order=order, user=user)
