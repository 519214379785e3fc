"""
======================================================
PATH: notifications/services.py
======================================================
NOTIFICATION SINK (FIRE-AND-FORGET)

Purpose:
- Best-effort customer/operator messages for order + payment events.
- Never blocks or fails the caller: sends are scheduled with
  transaction.on_commit and every failure is logged, not raised.

Rules:
- Messages are only sent once the state change they describe has committed.
- NOTIFICATIONS["ASYNC"] = True  -> delivered on a daemon thread
  NOTIFICATIONS["ASYNC"] = False -> delivered inline after commit (tests)
- No retries; no ordering guarantee relative to the HTTP response.
"""

from __future__ import annotations

import logging
import threading

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from notifications.sms import BaseSmsBackend, get_sms_backend

logger = logging.getLogger(__name__)


def _cfg() -> dict:
    return getattr(settings, "NOTIFICATIONS", {}) or {}


def _currency() -> str:
    return (getattr(settings, "ORDERS", {}) or {}).get("CURRENCY", "KES")


def _customer_email(order) -> str:
    user = getattr(order, "user", None)
    return (getattr(user, "email", "") or "").strip()


class NotificationSink:
    def __init__(self, *, run_async: bool | None = None, sms_backend: BaseSmsBackend | None = None):
        self.run_async = bool(_cfg().get("ASYNC", False)) if run_async is None else run_async
        self._sms_backend = sms_backend

    @property
    def sms_backend(self) -> BaseSmsBackend:
        if self._sms_backend is None:
            self._sms_backend = get_sms_backend()
        return self._sms_backend

    # ============================================================
    # DISPATCH
    # ============================================================

    def dispatch(self, label: str, fn, *args, **kwargs) -> None:
        def _deliver():
            try:
                fn(*args, **kwargs)
            except Exception:
                logger.exception("Notification failed", extra={"notification": label})

        def _schedule():
            if self.run_async:
                threading.Thread(target=_deliver, name=f"notify-{label}", daemon=True).start()
            else:
                _deliver()

        transaction.on_commit(_schedule)

    def _email(self, *, to: str, subject: str, body: str) -> None:
        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[to],
            fail_silently=False,
        )

    def _email_customer(self, label: str, order, *, subject: str, body: str) -> None:
        to = _customer_email(order)
        if not to:
            logger.info("No customer email; skipping", extra={"notification": label, "order_no": order.order_no})
            return
        self.dispatch(label, self._email, to=to, subject=subject, body=body)

    # ============================================================
    # ORDER EVENTS
    # ============================================================

    def order_placed(self, order) -> None:
        self._email_customer(
            "order_placed",
            order,
            subject=f"Order Received - {order.order_no}",
            body=(
                f"Your order {order.order_no} has been received.\n"
                f"Total Amount: {_currency()} {order.total_amount}\n"
                "Approve the payment prompt on your phone to complete it."
            ),
        )

    def payment_confirmed(self, order) -> None:
        self._email_customer(
            "payment_confirmed",
            order,
            subject=f"Order Confirmation - {order.order_no}",
            body=(
                f"Your order {order.order_no} has been confirmed.\n"
                f"Total Amount: {_currency()} {order.total_amount}\n"
                "We'll send you tracking information once your order ships."
            ),
        )
        if order.payer_phone:
            self.dispatch(
                "payment_confirmed_sms",
                self.sms_backend.send,
                to=order.payer_phone,
                message=f"Payment received for order {order.order_no}. Thank you!",
            )

    def payment_failed(self, order) -> None:
        self._email_customer(
            "payment_failed",
            order,
            subject=f"Payment Not Completed - {order.order_no}",
            body=(
                f"We could not confirm payment for order {order.order_no}.\n"
                "You can retry the payment from your order page."
            ),
        )

    def order_cancelled(self, order) -> None:
        self._email_customer(
            "order_cancelled",
            order,
            subject=f"Order Cancelled - {order.order_no}",
            body=f"Your order {order.order_no} has been cancelled.",
        )

    def order_delivered(self, order) -> None:
        self._email_customer(
            "order_delivered",
            order,
            subject=f"Your Order Has Been Delivered - {order.order_no}",
            body=(
                f"Your order {order.order_no} has been successfully delivered.\n"
                f"Tracking Number: {order.tracking_number or '-'}"
            ),
        )

    def refund_required(self, order) -> None:
        to = (_cfg().get("OPERATIONS_EMAIL") or "").strip()
        if not to:
            logger.warning("Refund required but OPERATIONS_EMAIL is not set", extra={"order_no": order.order_no})
            return
        self.dispatch(
            "refund_required",
            self._email,
            to=to,
            subject=f"Refund Required - {order.order_no}",
            body=(
                f"Paid order {order.order_no} was cancelled.\n"
                f"Amount to refund: {_currency()} {order.total_amount}\n"
                f"Payer phone: {order.payer_phone}"
            ),
        )

    # ============================================================
    # OTP
    # ============================================================

    def otp_issued(self, *, phone: str, code: str, ttl_minutes: int) -> None:
        self.dispatch(
            "otp_issued",
            self.sms_backend.send,
            to=phone,
            message=f"Your verification code is: {code}. Valid for {ttl_minutes} minutes.",
        )
