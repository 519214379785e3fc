# payments/gateways/exceptions.py

"""
PAYMENT GATEWAY ERRORS

- GatewayUnavailable: transient (network error, timeout, provider 5xx).
  The order stays retryable.
- GatewayRejected: the provider explicitly declined the push (4xx or a
  non-success response code). The attempt is marked failed.
- InvalidCallback: payload we cannot map to a payment. Acknowledged and
  logged by the webhook views, never raised to the provider.
"""


class GatewayError(Exception):
    code = "gateway_error"
    retryable = False

    def __init__(self, message: str = "", *, provider: str = "", raw=None):
        self.provider = provider
        self.raw = raw if raw is not None else {}
        super().__init__(message or self.code)


class GatewayUnavailable(GatewayError):
    code = "gateway_unavailable"
    retryable = True


class GatewayRejected(GatewayError):
    code = "gateway_rejected"
    retryable = True


class GatewayNotConfigured(GatewayError):
    code = "gateway_not_configured"


class InvalidCallback(GatewayError):
    code = "invalid_callback"
