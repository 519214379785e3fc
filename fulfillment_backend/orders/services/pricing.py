# orders/services/pricing.py

"""
======================================================
PATH: orders/services/pricing.py
======================================================
ORDER PRICING

Totals are computed once, from the unit prices captured into the line-item
snapshot, and then frozen on the Order:

    total = subtotal + shipping + tax - discount

- shipping: flat amount (settings.ORDERS["SHIPPING_FLAT"])
- tax: TAX_RATE * subtotal
- discount is clamped to [0, subtotal]
- every amount is quantized to 2dp, ROUND_HALF_UP
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Tuple

from django.conf import settings

MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")


def _to_decimal(value, *, field: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError(f"{field} must be a decimal amount") from exc


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingPolicy:
    shipping_flat: Decimal
    tax_rate: Decimal
    currency: str = "KES"

    @classmethod
    def from_settings(cls) -> "PricingPolicy":
        cfg = getattr(settings, "ORDERS", {}) or {}
        return cls(
            shipping_flat=_to_decimal(cfg.get("SHIPPING_FLAT", "200.00"), field="SHIPPING_FLAT"),
            tax_rate=_to_decimal(cfg.get("TAX_RATE", "0.16"), field="TAX_RATE"),
            currency=cfg.get("CURRENCY") or "KES",
        )


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def line_total(quantity: int, unit_price) -> Decimal:
    return _money(Decimal(int(quantity)) * _to_decimal(unit_price, field="unit_price"))


def compute_totals(
    lines: Iterable[Tuple[int, Decimal]],
    *,
    policy: PricingPolicy | None = None,
    discount=ZERO,
) -> OrderTotals:
    """
    lines: [(quantity, unit_price), ...] taken from the snapshot.
    """
    policy = policy or PricingPolicy.from_settings()

    subtotal = _money(sum((line_total(q, p) for q, p in lines), ZERO))
    shipping = _money(policy.shipping_flat) if subtotal > ZERO else ZERO
    tax = _money(subtotal * policy.tax_rate)

    discount = _money(_to_decimal(discount, field="discount"))
    discount = min(max(discount, ZERO), subtotal)

    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount,
        total=_money(subtotal + shipping + tax - discount),
    )
