"""
PAYMENT LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions
for Payment records.

    pending -> success | failed | cancelled

All outcome states are terminal. A retry creates a new Payment.

DESIGN PRINCIPLES:
- No order or stock mutation here (the reconciliation engine cascades)
- Callers must hold the row lock (select_for_update)
"""

from django.utils import timezone

from payments.models import Payment

# ============================================================
# DOMAIN ERRORS
# ============================================================


class PaymentLifecycleError(Exception):
    pass


class InvalidPaymentTransition(PaymentLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Payment.STATUS_SUCCESS,
    Payment.STATUS_FAILED,
    Payment.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Payment.STATUS_PENDING: {
        Payment.STATUS_SUCCESS,
        Payment.STATUS_FAILED,
        Payment.STATUS_CANCELLED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, payment: Payment, target_status: str):
    if not can_transition(from_status=payment.status, to_status=target_status):
        raise InvalidPaymentTransition(
            f"Payment {payment.id} cannot transition from "
            f"'{payment.status}' to '{target_status}'"
        )


def apply_transition(
    *,
    payment: Payment,
    target_status: str,
    result_code: str = "",
    description: str = "",
    external_ref: str = "",
    raw=None,
) -> Payment:
    validate_transition(payment=payment, target_status=target_status)

    payment.status = target_status
    payment.completed_at = timezone.now()
    fields = ["status", "completed_at", "updated_at"]

    if result_code:
        payment.result_code = str(result_code)[:32]
        fields.append("result_code")
    if description:
        payment.result_description = description
        fields.append("result_description")
    if external_ref:
        payment.external_ref = str(external_ref)[:128]
        fields.append("external_ref")
    if raw is not None:
        payment.provider_response = {**(payment.provider_response or {}), "result": raw}
        fields.append("provider_response")

    payment.save(update_fields=fields)
    return payment
