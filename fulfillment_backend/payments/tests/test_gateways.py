import base64
import io
from decimal import Decimal
from unittest import mock
from urllib.error import HTTPError, URLError

from django.core.cache import cache
from django.test import TestCase, override_settings

from payments.gateways import (
    AirtelGateway,
    GatewayNotConfigured,
    GatewayRejected,
    GatewayUnavailable,
    InvalidCallback,
    MpesaGateway,
    normalize_msisdn,
)
from payments.gateways import http
from payments.services.factory import build_gateways

MPESA_CONFIG = {
    "ENVIRONMENT": "sandbox",
    "CONSUMER_KEY": "key",
    "CONSUMER_SECRET": "secret",
    "PASSKEY": "passkey",
    "SHORTCODE": "174379",
    "CALLBACK_URL": "https://example.com/cb/",
}

AIRTEL_CONFIG = {
    "ENVIRONMENT": "staging",
    "CLIENT_ID": "client",
    "CLIENT_SECRET": "secret",
    "COUNTRY": "KE",
}


class MsisdnTests(TestCase):
    def test_formats(self):
        for raw in ("0712345678", "+254712345678", "254712345678", "712345678", "0712 345-678"):
            self.assertEqual(normalize_msisdn(raw), "254712345678")
        self.assertEqual(normalize_msisdn("0110000000"), "254110000000")

    def test_invalid(self):
        for raw in ("", "12345", "0812345678", None):
            with self.assertRaises(ValueError):
                normalize_msisdn(raw)


class MpesaGatewayTests(TestCase):
    def setUp(self):
        cache.clear()
        self.gateway = MpesaGateway(MPESA_CONFIG, timeout=5)

    def _fake_http(self, push_response):
        calls = []

        def fake(method, url, **kwargs):
            calls.append((method, url, kwargs))
            if "oauth" in url:
                return {"access_token": "tok-1", "expires_in": "3599"}
            return push_response

        return fake, calls

    def test_push_builds_stk_request(self):
        fake, calls = self._fake_http(
            {
                "MerchantRequestID": "29115-1",
                "CheckoutRequestID": "ws_CO_123",
                "ResponseCode": "0",
                "ResponseDescription": "Success. Request accepted for processing",
                "CustomerMessage": "Success. Request accepted for processing",
            }
        )
        with mock.patch.object(http, "request_json", side_effect=fake):
            result = self.gateway.push_payment(
                phone="0712345678", amount=Decimal("1360.40"), reference="PAYABC"
            )

        self.assertEqual(result.handle, "ws_CO_123")
        self.assertEqual(result.external_ref, "29115-1")
        self.assertTrue(result.initiated)

        token_call, push_call = calls
        self.assertEqual(token_call[0], "GET")
        expected_basic = base64.b64encode(b"key:secret").decode()
        self.assertEqual(token_call[2]["headers"]["Authorization"], f"Basic {expected_basic}")

        body = push_call[2]["body"]
        self.assertEqual(push_call[1], "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest")
        self.assertEqual(push_call[2]["headers"]["Authorization"], "Bearer tok-1")
        self.assertEqual(push_call[2]["timeout"], 5)
        self.assertEqual(body["Amount"], 1361)
        self.assertEqual(body["PhoneNumber"], "254712345678")
        self.assertEqual(body["BusinessShortCode"], "174379")
        password = base64.b64decode(body["Password"]).decode()
        self.assertEqual(password, f"174379passkey{body['Timestamp']}")

    def test_token_is_cached(self):
        fake, calls = self._fake_http({"CheckoutRequestID": "ws_CO_1", "ResponseCode": "0"})
        with mock.patch.object(http, "request_json", side_effect=fake):
            self.gateway.push_payment(phone="0712345678", amount=Decimal("10"), reference="A")
            self.gateway.push_payment(phone="0712345678", amount=Decimal("10"), reference="B")

        oauth_calls = [c for c in calls if "oauth" in c[1]]
        self.assertEqual(len(oauth_calls), 1)

    def test_non_zero_response_code_is_rejection(self):
        fake, _ = self._fake_http({"ResponseCode": "1", "ResponseDescription": "Rejected"})
        with mock.patch.object(http, "request_json", side_effect=fake):
            with self.assertRaises(GatewayRejected):
                self.gateway.push_payment(phone="0712345678", amount=Decimal("10"), reference="A")

    def test_missing_config(self):
        gateway = MpesaGateway({**MPESA_CONFIG, "PASSKEY": ""})
        with self.assertRaises(GatewayNotConfigured):
            gateway.push_payment(phone="0712345678", amount=Decimal("10"), reference="A")

    def test_parse_callback_outcomes(self):
        def payload(code):
            return {"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_9", "ResultCode": code, "ResultDesc": "x"}}}

        self.assertEqual(self.gateway.parse_callback(payload(0)).outcome, "success")
        self.assertEqual(self.gateway.parse_callback(payload(1032)).outcome, "cancelled")
        self.assertEqual(self.gateway.parse_callback(payload(1037)).outcome, "cancelled")
        self.assertEqual(self.gateway.parse_callback(payload(1)).outcome, "failed")
        self.assertEqual(self.gateway.parse_callback(payload("weird")).outcome, "failed")

        no_code = {"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_9"}}}
        self.assertEqual(self.gateway.parse_callback(no_code).outcome, "failed")

    def test_parse_callback_rejects_garbage(self):
        for payload in (None, "text", {}, {"Body": []}, {"Body": {"stkCallback": {}}}):
            with self.assertRaises(InvalidCallback):
                self.gateway.parse_callback(payload)


class AirtelGatewayTests(TestCase):
    def setUp(self):
        cache.clear()
        self.gateway = AirtelGateway(AIRTEL_CONFIG)

    def test_push_payment(self):
        calls = []

        def fake(method, url, **kwargs):
            calls.append((method, url, kwargs))
            if url.endswith("/auth/oauth2/token"):
                return {"access_token": "air-tok", "expires_in": 180}
            txn_id = kwargs["body"]["transaction"]["id"]
            return {
                "data": {"transaction": {"id": txn_id, "status": "Success."}},
                "status": {"code": "200", "message": "SUCCESS", "result_code": "ESB000010", "success": True},
            }

        with mock.patch.object(http, "request_json", side_effect=fake):
            result = self.gateway.push_payment(phone="0733123456", amount=Decimal("500.00"), reference="PAYX")

        push = calls[1]
        self.assertEqual(push[1], "https://openapiuat.airtel.africa/merchant/v1/payments/")
        self.assertEqual(push[2]["headers"]["X-Country"], "KE")
        self.assertEqual(push[2]["headers"]["X-Currency"], "KES")
        self.assertEqual(push[2]["body"]["subscriber"]["msisdn"], "733123456")
        self.assertEqual(result.handle, push[2]["body"]["transaction"]["id"])

    def test_push_sends_preassigned_handle(self):
        bodies = []

        def fake(method, url, **kwargs):
            if url.endswith("/auth/oauth2/token"):
                return {"access_token": "air-tok", "expires_in": 180}
            bodies.append(kwargs["body"])
            return {"status": {"success": True, "message": "SUCCESS"}}

        handle = self.gateway.preassign_handle()
        with mock.patch.object(http, "request_json", side_effect=fake):
            result = self.gateway.push_payment(
                phone="0733123456", amount=Decimal("5"), reference="PAYX", handle=handle
            )

        self.assertEqual(len(handle), 20)
        self.assertEqual(bodies[0]["transaction"]["id"], handle)
        self.assertEqual(result.handle, handle)

    def test_unsuccessful_status_is_rejection(self):
        def fake(method, url, **kwargs):
            if url.endswith("/auth/oauth2/token"):
                return {"access_token": "air-tok", "expires_in": 180}
            return {"status": {"success": False, "message": "Invalid MSISDN"}}

        with mock.patch.object(http, "request_json", side_effect=fake):
            with self.assertRaises(GatewayRejected):
                self.gateway.push_payment(phone="0733123456", amount=Decimal("5"), reference="PAYX")

    def test_parse_callback(self):
        def payload(code):
            return {"transaction": {"id": "AT1", "status_code": code, "airtel_money_id": "MP1"}}

        self.assertEqual(self.gateway.parse_callback(payload("TS")).outcome, "success")
        self.assertEqual(self.gateway.parse_callback(payload("TF")).outcome, "failed")
        self.assertEqual(self.gateway.parse_callback(payload("TE")).outcome, "cancelled")
        self.assertIsNone(self.gateway.parse_callback(payload("TIP")).outcome)
        self.assertEqual(self.gateway.parse_callback(payload("ZZ")).outcome, "failed")
        self.assertEqual(self.gateway.parse_callback(payload("TS")).external_ref, "MP1")

        with self.assertRaises(InvalidCallback):
            self.gateway.parse_callback({"transaction": {"status_code": "TS"}})


class _FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class RequestJsonTests(TestCase):
    def test_json_response(self):
        with mock.patch.object(http, "urlopen", return_value=_FakeResponse(b'{"ok": true}')) as urlopen:
            data = http.request_json("GET", "https://example.com", provider="mpesa", timeout=7)

        self.assertEqual(data, {"ok": True})
        self.assertEqual(urlopen.call_args.kwargs["timeout"], 7)

    def _http_error(self, code):
        return HTTPError(
            "https://example.com", code, "err", hdrs=None, fp=io.BytesIO(b'{"errorMessage": "Bad Request"}')
        )

    def test_4xx_is_rejection(self):
        with mock.patch.object(http, "urlopen", side_effect=self._http_error(400)):
            with self.assertRaises(GatewayRejected):
                http.request_json("POST", "https://example.com", provider="mpesa", body={})

    def test_5xx_is_unavailable(self):
        with mock.patch.object(http, "urlopen", side_effect=self._http_error(503)):
            with self.assertRaises(GatewayUnavailable):
                http.request_json("POST", "https://example.com", provider="mpesa", body={})

    def test_network_errors_are_unavailable(self):
        for exc in (URLError("no route"), TimeoutError("timed out")):
            with mock.patch.object(http, "urlopen", side_effect=exc):
                with self.assertRaises(GatewayUnavailable):
                    http.request_json("GET", "https://example.com", provider="airtel")

    def test_non_json_is_unavailable(self):
        with mock.patch.object(http, "urlopen", return_value=_FakeResponse(b"<html>")):
            with self.assertRaises(GatewayUnavailable):
                http.request_json("GET", "https://example.com", provider="airtel")


class GatewayFactoryTests(TestCase):
    @override_settings(PAYMENTS={"TIMEOUT_SECONDS": 12, "MPESA": MPESA_CONFIG, "AIRTEL": AIRTEL_CONFIG})
    def test_builds_both_providers_from_settings(self):
        gateways = build_gateways()

        self.assertIsInstance(gateways["mpesa"], MpesaGateway)
        self.assertIsInstance(gateways["airtel"], AirtelGateway)
        self.assertEqual(gateways["mpesa"].timeout, 12)
        self.assertEqual(gateways["airtel"].config["CLIENT_ID"], "client")
