"""
Test doubles for the gateway adapters.

They keep the real callback parsing / acknowledgement of each provider and
only replace the outbound push.
"""

import itertools

from payments.gateways import AirtelGateway, MpesaGateway, PushResult

_counter = itertools.count(1)


class _FakePushMixin:
    def __init__(self, *, error=None):
        super().__init__({})
        self.error = error
        self.pushes = []

    def push_payment(self, *, phone, amount, reference, handle=None):
        self.pushes.append({"phone": phone, "amount": amount, "reference": reference, "handle": handle})
        if self.error is not None:
            raise self.error
        handle = handle or f"{self.handle_prefix}{next(_counter):06d}"
        return PushResult(handle=handle, initiated=True, external_ref=f"ext-{handle}", raw={"fake": True})


class FakeMpesaGateway(_FakePushMixin, MpesaGateway):
    handle_prefix = "ws_CO_TEST"


class FakeAirtelGateway(_FakePushMixin, AirtelGateway):
    handle_prefix = "AIRTELTEST"

    def preassign_handle(self):
        return f"{self.handle_prefix}{next(_counter):06d}"


class RecordingNotifier:
    """Collects notification events instead of sending them."""

    def __init__(self):
        self.events = []

    def __getattr__(self, name):
        def _record(*args, **kwargs):
            order = args[0] if args else kwargs.get("order")
            self.events.append((name, getattr(order, "order_no", None)))

        return _record

    def names(self):
        return [name for name, _ in self.events]


def mpesa_callback(handle, result_code=0, desc="The service request is processed successfully.", receipt="QK12ABC"):
    body = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": handle,
        "ResultCode": result_code,
        "ResultDesc": desc,
    }
    if result_code == 0:
        body["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": 1360},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "PhoneNumber", "Value": 254712345678},
            ]
        }
    return {"Body": {"stkCallback": body}}


def airtel_callback(handle, status_code="TS", message="Paid"):
    return {
        "transaction": {
            "id": handle,
            "message": message,
            "status_code": status_code,
            "airtel_money_id": "MP210603.1234.L06941",
        }
    }
