from decimal import Decimal

from django.test import TestCase

from orders.models import Order
from payments.models import Payment
from payments.services.payment_lifecycle import (
    InvalidPaymentTransition,
    TERMINAL_STATES,
    apply_transition,
    can_transition,
)


class PaymentLifecycleTests(TestCase):
    def setUp(self):
        self.order = Order.objects.create(payment_method="mpesa", payer_phone="254712345678")
        self.payment = Payment.objects.create(
            order=self.order,
            provider="mpesa",
            phone_number="254712345678",
            amount=Decimal("1360.00"),
            reference="PAYTEST00001",
        )

    def test_pending_reaches_every_outcome(self):
        for target in (Payment.STATUS_SUCCESS, Payment.STATUS_FAILED, Payment.STATUS_CANCELLED):
            self.assertTrue(can_transition(from_status=Payment.STATUS_PENDING, to_status=target))

    def test_terminal_states_are_final(self):
        for terminal in TERMINAL_STATES:
            for target in (Payment.STATUS_PENDING, Payment.STATUS_SUCCESS, Payment.STATUS_FAILED):
                self.assertFalse(can_transition(from_status=terminal, to_status=target))

    def test_apply_transition_stamps_result(self):
        apply_transition(
            payment=self.payment,
            target_status=Payment.STATUS_FAILED,
            result_code="1",
            description="Insufficient balance",
            raw={"x": 1},
        )

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.STATUS_FAILED)
        self.assertEqual(self.payment.result_code, "1")
        self.assertEqual(self.payment.result_description, "Insufficient balance")
        self.assertEqual(self.payment.provider_response["result"], {"x": 1})
        self.assertIsNotNone(self.payment.completed_at)

    def test_terminal_payment_cannot_be_reopened(self):
        apply_transition(payment=self.payment, target_status=Payment.STATUS_SUCCESS)

        with self.assertRaises(InvalidPaymentTransition):
            apply_transition(payment=self.payment, target_status=Payment.STATUS_FAILED)
