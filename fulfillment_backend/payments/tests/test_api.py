from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from orders.models import Order
from payments.models import Payment
from payments.services import build_engine
from payments.tests.fakes import FakeAirtelGateway, FakeMpesaGateway, airtel_callback, mpesa_callback
from products.models import Product

User = get_user_model()


class PaymentApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(email="c@example.com", password="pass")
        self.other = User.objects.create_user(email="o@example.com", password="pass")
        self.product = Product.objects.create(
            sku="AVOC-1KG", name="Hass Avocado 1kg", unit_price=Decimal("180.00"), stock=10
        )

        self.gateways = {"mpesa": FakeMpesaGateway(), "airtel": FakeAirtelGateway()}
        patcher = mock.patch("payments.services.factory.build_gateways", return_value=self.gateways)
        patcher.start()
        self.addCleanup(patcher.stop)

    def place(self, method="mpesa"):
        return build_engine().create_order(
            user=self.customer,
            items=[{"product_id": self.product.pk, "quantity": 2}],
            payment_method=method,
            payer_phone="254712345678",
        )


class CallbackViewTests(PaymentApiTestCase):
    """
    GUARANTEES:
    - Always 200 + provider acknowledgement
    - No authentication required
    - Broken bodies never change state
    """

    def test_mpesa_success_callback(self):
        result = self.place()

        res = self.client.post(
            "/api/payments/mpesa/callback/",
            mpesa_callback(result.payment.transaction_id),
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"ResultCode": 0, "ResultDesc": "Accepted"})
        result.order.refresh_from_db()
        self.assertEqual(result.order.payment_status, Order.PAYMENT_PAID)

    def test_airtel_failure_callback_restores_stock(self):
        result = self.place(method="airtel")

        res = self.client.post(
            "/api/payments/airtel/callback/",
            airtel_callback(result.payment.transaction_id, status_code="TF"),
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"status": "success"})
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_non_json_body_is_acknowledged(self):
        result = self.place()

        res = self.client.post(
            "/api/payments/mpesa/callback/", data="not json{", content_type="application/json"
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["ResultCode"], 0)
        result.payment.refresh_from_db()
        self.assertEqual(result.payment.status, Payment.STATUS_PENDING)

    def test_unexpected_engine_error_is_still_acknowledged(self):
        with mock.patch(
            "payments.services.reconciliation.ReconciliationEngine.handle_callback",
            side_effect=RuntimeError("boom"),
        ):
            res = self.client.post("/api/payments/mpesa/callback/", {"Body": {}}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"ResultCode": 0, "ResultDesc": "Accepted"})

    def test_replay_via_http_is_idempotent(self):
        result = self.place()
        payload = mpesa_callback(result.payment.transaction_id, result_code=2001)

        for _ in range(3):
            res = self.client.post("/api/payments/mpesa/callback/", payload, format="json")
            self.assertEqual(res.status_code, 200)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)


class PaymentStatusViewTests(PaymentApiTestCase):
    def test_owner_sees_status(self):
        result = self.place()
        self.client.force_authenticate(self.customer)

        res = self.client.get(f"/api/payments/{result.payment.transaction_id}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["handle"], result.payment.transaction_id)
        self.assertEqual(res.data["status"], Payment.STATUS_PENDING)
        self.assertEqual(res.data["provider"], "mpesa")
        self.assertEqual(Decimal(res.data["amount"]), result.order.total_amount)
        self.assertIn("created_at", res.data)

    def test_other_customer_forbidden(self):
        result = self.place()
        self.client.force_authenticate(self.other)

        res = self.client.get(f"/api/payments/{result.payment.transaction_id}/")
        self.assertEqual(res.status_code, 403)

    def test_anonymous_rejected(self):
        result = self.place()
        res = self.client.get(f"/api/payments/{result.payment.transaction_id}/")
        self.assertEqual(res.status_code, 401)

    def test_unknown_handle(self):
        self.client.force_authenticate(self.customer)
        res = self.client.get("/api/payments/ws_CO_NOPE/")
        self.assertEqual(res.status_code, 404)


class ExpireStalePaymentsCommandTests(PaymentApiTestCase):
    def test_command_expires_and_releases_stock(self):
        result = self.place()
        Payment.objects.filter(pk=result.payment.pk).update(created_at=timezone.now() - timedelta(hours=2))

        out = StringIO()
        call_command("expire_stale_payments", "--minutes", "30", stdout=out)

        self.assertIn("Expired 1", out.getvalue())
        result.payment.refresh_from_db()
        self.assertEqual(result.payment.status, Payment.STATUS_CANCELLED)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
