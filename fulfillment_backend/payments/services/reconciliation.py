# payments/services/reconciliation.py

"""
======================================================
PATH: payments/services/reconciliation.py
======================================================
RECONCILIATION ENGINE

Orchestrates one purchase across three pieces of state:
order + inventory, the provider push, and the provider's later callback.

ORDER CREATION (create_order)
1) validate lines (product exists + active, qty <= stock; read-only)
2) price from live catalog prices, frozen into the snapshot
3) ONE transaction: Order(pending/pending) + items, reserve every line,
   Payment(pending). Any InsufficientStock rolls the whole thing back, so a
   pending order never exists without its reservation.
4) after commit: push to the provider (bounded timeout), then a second short
   transaction stores the handle or marks the attempt failed.
   Gateway failure keeps the order and its reservation (retry window).
   Providers whose handle is assigned before the push (Airtel) keep the
   attempt pending after a transport failure, since their callback can still
   match it; stale expiry closes it if none arrives.

CALLBACKS (handle_callback)
- exact lookup on (provider, transaction_id) under a row lock
- unknown handle / terminal payment -> no-op (idempotent)
- success -> order paid (+ confirmed if still pending)
- failed / cancelled -> stock restored once, order payment failed,
  order status left for the customer (retry or cancel)

Compensation always goes through order.stock_reserved, so a line item is
returned to inventory exactly once across payment failure, expiry and
cancellation.

Collaborators are injected (ledger, gateways, notifier); nothing here is a
process-wide singleton.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from notifications.services import NotificationSink
from orders.models import Order, OrderItem
from orders.services import order_lifecycle
from orders.services.exceptions import PaymentNotRetryable
from orders.services.pricing import PricingPolicy, compute_totals, line_total
from payments.gateways import (
    BaseGateway,
    GatewayError,
    GatewayNotConfigured,
    GatewayUnavailable,
    InvalidCallback,
)
from payments.models import Payment
from payments.services import payment_lifecycle
from products.models import Product, StockMovement
from products.services import InventoryLedger
from products.services.exceptions import InsufficientStock, ProductNotFound
from products.services.inventory import aggregate_lines

logger = logging.getLogger(__name__)


@dataclass
class PaymentAttemptResult:
    order: Order
    payment: Payment
    error: Optional[GatewayError] = None

    @property
    def payment_error(self) -> Optional[dict]:
        if self.error is None:
            return None
        return {
            "code": self.error.code,
            "detail": str(self.error),
            "retryable": self.error.retryable,
        }


def _new_reference() -> str:
    return f"PAY{uuid.uuid4().hex[:9].upper()}"


class ReconciliationEngine:
    def __init__(
        self,
        *,
        ledger: InventoryLedger,
        gateways: dict[str, BaseGateway],
        notifier: NotificationSink,
        pricing: PricingPolicy | None = None,
    ):
        self.ledger = ledger
        self.gateways = gateways
        self.notifier = notifier
        self.pricing = pricing

    def gateway_for(self, provider: str) -> BaseGateway:
        gateway = self.gateways.get(provider)
        if gateway is None:
            raise GatewayNotConfigured(f"No gateway registered for '{provider}'", provider=provider)
        return gateway

    # ============================================================
    # ORDER CREATION
    # ============================================================

    def _validate_lines(self, lines) -> list[tuple[Product, int]]:
        merged = aggregate_lines(lines)
        products = Product.objects.in_bulk([pid for pid, _ in merged])

        validated = []
        for product_id, qty in merged:
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise ProductNotFound(product_id)
            if qty > product.stock:
                raise InsufficientStock(
                    product_id=product.pk,
                    product_name=product.name,
                    requested=qty,
                    available=product.stock,
                )
            validated.append((product, qty))
        return validated

    def create_order(
        self,
        *,
        user,
        items,
        payment_method: str,
        payer_phone: str,
        shipping_address: dict | None = None,
        billing_address: dict | None = None,
        notes: str = "",
    ) -> PaymentAttemptResult:
        """
        items: iterable of {"product_id": ..., "quantity": ...}
        """
        gateway = self.gateway_for(payment_method)
        lines = [(item["product_id"], item["quantity"]) for item in items]
        if not lines:
            raise ValueError("An order needs at least one item")

        # 1) validate (read-only)
        validated = self._validate_lines(lines)

        # 2) price from the catalog at this instant
        totals = compute_totals(
            [(qty, product.unit_price) for product, qty in validated],
            policy=self.pricing,
        )
        policy = self.pricing or PricingPolicy.from_settings()

        # 3) order + snapshot + reservation + pending attempt, all or nothing
        with transaction.atomic():
            order = Order.objects.create(
                user=user if getattr(user, "is_authenticated", False) else None,
                payment_method=payment_method,
                payer_phone=payer_phone,
                subtotal_amount=totals.subtotal,
                shipping_amount=totals.shipping,
                tax_amount=totals.tax,
                discount_amount=totals.discount,
                total_amount=totals.total,
                currency=policy.currency,
                shipping_address=shipping_address or {},
                billing_address=billing_address or shipping_address or {},
                notes=notes or "",
                stock_reserved=True,
            )

            for product, qty in validated:
                OrderItem.objects.create(
                    order=order,
                    product=product,
                    product_name=product.name,
                    sku=product.sku,
                    quantity=qty,
                    unit_price=product.unit_price,
                    total_price=line_total(qty, product.unit_price),
                )

            self.ledger.reserve_many(
                [(product.pk, qty) for product, qty in validated],
                order=order,
                user=order.user,
            )

            payment = self._new_payment(order, transaction_id=gateway.preassign_handle())

        logger.info(
            "Order created",
            extra={"order_no": order.order_no, "total": str(order.total_amount), "provider": payment_method},
        )
        self.notifier.order_placed(order)

        # 4) provider push outside the reservation transaction
        return self._initiate(order=order, payment=payment, gateway=gateway)

    def _new_payment(self, order: Order, *, transaction_id: str | None = None) -> Payment:
        return Payment.objects.create(
            order=order,
            provider=order.payment_method,
            phone_number=order.payer_phone,
            amount=order.total_amount,
            currency=order.currency,
            reference=_new_reference(),
            transaction_id=transaction_id,
        )

    def _initiate(self, *, order: Order, payment: Payment, gateway: BaseGateway) -> PaymentAttemptResult:
        try:
            result = gateway.push_payment(
                phone=payment.phone_number,
                amount=payment.amount,
                reference=payment.reference,
                handle=payment.transaction_id,
            )
        except GatewayError as exc:
            logger.warning(
                "Payment initiation failed",
                extra={
                    "order_no": order.order_no,
                    "reference": payment.reference,
                    "provider": payment.provider,
                    "error": exc.code,
                },
            )
            order, payment = self._record_initiation_failure(payment_id=payment.pk, error=exc)
            return PaymentAttemptResult(order=order, payment=payment, error=exc)

        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment.pk)
            # With a pre-assigned handle the callback may already have landed;
            # keep its result and only add the initiation response.
            payment.transaction_id = result.handle
            payment.external_ref = payment.external_ref or result.external_ref[:128]
            payment.provider_response = {**(payment.provider_response or {}), "initiation": result.raw}
            payment.save(update_fields=["transaction_id", "external_ref", "provider_response", "updated_at"])

        logger.info(
            "Payment initiated",
            extra={"order_no": order.order_no, "reference": payment.reference, "transaction_id": result.handle},
        )
        order.refresh_from_db()
        return PaymentAttemptResult(order=order, payment=payment)

    @transaction.atomic
    def _record_initiation_failure(self, *, payment_id, error: GatewayError):
        payment = Payment.objects.select_for_update().get(pk=payment_id)
        order = Order.objects.select_for_update().get(pk=payment.order_id)

        # A transport failure may still have reached the provider. When the
        # handle was assigned before the push, its callback can match, so the
        # attempt stays pending until that callback or stale expiry.
        in_flight = isinstance(error, GatewayUnavailable) and bool(payment.transaction_id)

        if in_flight:
            logger.info(
                "Payment outcome unknown, awaiting callback",
                extra={"reference": payment.reference, "transaction_id": payment.transaction_id},
            )
        elif payment.status == Payment.STATUS_PENDING:
            payment_lifecycle.apply_transition(
                payment=payment,
                target_status=Payment.STATUS_FAILED,
                result_code=error.code,
                description=str(error),
                raw=error.raw,
            )

        # Stock stays reserved either way; only an explicit rejection is a
        # failed payment from the order's point of view.
        if not isinstance(error, GatewayUnavailable) and order.payment_status == Order.PAYMENT_PENDING:
            order.payment_status = Order.PAYMENT_FAILED
            order.save(update_fields=["payment_status", "updated_at"])

        return order, payment

    # ============================================================
    # PAYMENT RETRY
    # ============================================================

    def retry_payment(self, *, order_id, user=None, payment_method: str | None = None, payer_phone: str | None = None) -> PaymentAttemptResult:
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)

            if order.status != Order.STATUS_PENDING or order.payment_status == Order.PAYMENT_PAID:
                raise PaymentNotRetryable(
                    f"Order {order.order_no} does not accept payment (status: {order.status}/{order.payment_status})"
                )
            if order.payments.filter(status=Payment.STATUS_PENDING).exists():
                raise PaymentNotRetryable(f"Order {order.order_no} already has a payment in progress")

            fields = ["payment_status", "updated_at"]
            if payment_method:
                order.payment_method = payment_method
                fields.append("payment_method")
            if payer_phone:
                order.payer_phone = payer_phone
                fields.append("payer_phone")

            gateway = self.gateway_for(order.payment_method)

            if not order.stock_reserved:
                # released by an earlier failed/expired attempt
                self.ledger.reserve_many(order.reserved_lines(), order=order, user=user)
                order.stock_reserved = True
                fields.append("stock_reserved")

            order.payment_status = Order.PAYMENT_PENDING
            order.save(update_fields=fields)

            payment = self._new_payment(order, transaction_id=gateway.preassign_handle())

        logger.info("Payment retry", extra={"order_no": order.order_no, "reference": payment.reference})
        return self._initiate(order=order, payment=payment, gateway=gateway)

    # ============================================================
    # CALLBACKS
    # ============================================================

    def handle_callback(self, *, provider: str, payload) -> dict:
        """
        Consume a provider callback. Returns the acknowledgement body; never
        raises for payloads we cannot use.
        """
        gateway = self.gateway_for(provider)

        try:
            result = gateway.parse_callback(payload)
        except InvalidCallback as exc:
            logger.warning("Invalid payment callback", extra={"provider": provider, "error": str(exc)})
            return gateway.acknowledgement()

        if result.outcome is None:
            logger.info(
                "Payment still in progress",
                extra={"provider": provider, "transaction_id": result.handle, "result_code": result.result_code},
            )
            return gateway.acknowledgement()

        self._apply_outcome(provider=provider, result=result)
        return gateway.acknowledgement()

    @transaction.atomic
    def _apply_outcome(self, *, provider: str, result) -> Optional[Payment]:
        payment = (
            Payment.objects.select_for_update()
            .filter(provider=provider, transaction_id=result.handle)
            .first()
        )

        if payment is None:
            logger.warning("Callback for unknown transaction", extra={"provider": provider, "transaction_id": result.handle})
            return None

        if payment.is_terminal:
            logger.info(
                "Duplicate callback ignored",
                extra={"provider": provider, "transaction_id": result.handle, "status": payment.status},
            )
            return payment

        order = Order.objects.select_for_update().get(pk=payment.order_id)

        payment_lifecycle.apply_transition(
            payment=payment,
            target_status=result.outcome,
            result_code=result.result_code,
            description=result.description,
            external_ref=result.external_ref,
            raw=result.raw,
        )

        if result.outcome == Payment.STATUS_SUCCESS:
            self._on_payment_success(order)
        else:
            self._on_payment_failure(order)

        logger.info(
            "Payment finalized",
            extra={"order_no": order.order_no, "transaction_id": result.handle, "status": payment.status},
        )
        return payment

    def _on_payment_success(self, order: Order) -> None:
        order.payment_status = Order.PAYMENT_PAID
        fields = ["payment_status", "updated_at"]

        if order.status == Order.STATUS_PENDING:
            order.status = Order.STATUS_CONFIRMED
            order.confirmed_at = timezone.now()
            fields += ["status", "confirmed_at"]
            order.save(update_fields=fields)
            self.notifier.payment_confirmed(order)
            return

        if order.status == Order.STATUS_CANCELLED:
            # money arrived after cancellation
            order.refund_pending = True
            fields.append("refund_pending")
            order.save(update_fields=fields)
            self.notifier.refund_required(order)
            return

        order.save(update_fields=fields)

    def _release_stock(self, order: Order, *, reason: str, user=None) -> bool:
        if not order.stock_reserved:
            return False
        self.ledger.restore_many(order.reserved_lines(), reason=reason, order=order, user=user)
        order.stock_reserved = False
        return True

    def _on_payment_failure(self, order: Order) -> None:
        fields = ["updated_at"]
        if self._release_stock(order, reason=StockMovement.Reason.PAYMENT_FAILED):
            fields.append("stock_reserved")

        if order.payment_status != Order.PAYMENT_PAID:
            order.payment_status = Order.PAYMENT_FAILED
            fields.append("payment_status")

        order.save(update_fields=fields)

        if order.status != Order.STATUS_CANCELLED:
            self.notifier.payment_failed(order)

    # ============================================================
    # CANCELLATION / STATUS
    # ============================================================

    @transaction.atomic
    def cancel_order(self, *, order_id, user=None) -> Order:
        order = Order.objects.select_for_update().get(pk=order_id)
        order_lifecycle.validate_cancellable(order=order)

        fields = ["status", "cancelled_at", "updated_at"]
        if self._release_stock(order, reason=StockMovement.Reason.CANCELLATION, user=user):
            fields.append("stock_reserved")

        order.status = Order.STATUS_CANCELLED
        order.cancelled_at = timezone.now()

        if order.payment_status == Order.PAYMENT_PAID:
            order.refund_pending = True
            fields.append("refund_pending")

        order.save(update_fields=fields)

        logger.info("Order cancelled", extra={"order_no": order.order_no, "refund_pending": order.refund_pending})
        self.notifier.order_cancelled(order)
        if order.refund_pending:
            self.notifier.refund_required(order)
        return order

    def update_status(self, *, order_id, target_status: str, tracking_number: str = "", user=None) -> Order:
        if target_status == Order.STATUS_CANCELLED:
            return self.cancel_order(order_id=order_id, user=user)

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)
            order_lifecycle.validate_transition(order=order, target_status=target_status)

            order.status = target_status
            fields = ["status", "updated_at"]

            if tracking_number:
                order.tracking_number = tracking_number.strip()
                fields.append("tracking_number")
            elif target_status == Order.STATUS_SHIPPED and not order.tracking_number:
                order.tracking_number = f"TRK{uuid.uuid4().hex[:10].upper()}"
                fields.append("tracking_number")

            if target_status == Order.STATUS_CONFIRMED:
                if not order.stock_reserved:
                    # released by a failed/expired payment; a confirmed order
                    # must hold its stock again before it can ship
                    self.ledger.reserve_many(order.reserved_lines(), order=order, user=user)
                    order.stock_reserved = True
                    fields.append("stock_reserved")
                order.confirmed_at = timezone.now()
                fields.append("confirmed_at")
            elif target_status == Order.STATUS_DELIVERED:
                order.delivered_at = timezone.now()
                fields.append("delivered_at")

            order.save(update_fields=fields)

            logger.info("Order status updated", extra={"order_no": order.order_no, "status": target_status})
            if target_status == Order.STATUS_DELIVERED:
                self.notifier.order_delivered(order)

        return order

    # ============================================================
    # STALE PAYMENT EXPIRY
    # ============================================================

    def expire_stale_payments(self, *, older_than_minutes: int | None = None, now=None) -> int:
        if older_than_minutes is None:
            cfg = getattr(settings, "PAYMENTS", {}) or {}
            older_than_minutes = int(cfg.get("PENDING_TTL_MINUTES") or 30)

        cutoff = (now or timezone.now()) - timedelta(minutes=int(older_than_minutes))
        stale_ids = list(
            Payment.objects.filter(status=Payment.STATUS_PENDING, created_at__lt=cutoff).values_list("pk", flat=True)
        )

        expired = 0
        for payment_id in stale_ids:
            with transaction.atomic():
                payment = Payment.objects.select_for_update().get(pk=payment_id)
                if payment.is_terminal:
                    continue
                order = Order.objects.select_for_update().get(pk=payment.order_id)
                payment_lifecycle.apply_transition(
                    payment=payment,
                    target_status=Payment.STATUS_CANCELLED,
                    result_code="expired",
                    description=f"No provider result within {older_than_minutes} minutes",
                )
                self._on_payment_failure(order)
                expired += 1

        if expired:
            logger.info("Stale payments expired", extra={"count": expired})
        return expired
