# orders/serializers/commands.py

"""
Write-side payloads. Transport validation only; business rules live in
the reconciliation engine.
"""

from rest_framework import serializers

from orders.models import Order
from payments.gateways import normalize_msisdn


def _validate_phone(value: str) -> str:
    try:
        return normalize_msisdn(value)
    except ValueError as exc:
        raise serializers.ValidationError(str(exc))


class OrderLineInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    items = OrderLineInputSerializer(many=True, allow_empty=False)
    shipping_address = serializers.DictField(required=False, default=dict)
    billing_address = serializers.DictField(required=False, default=dict)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES)
    payer_phone = serializers.CharField(max_length=20)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_payer_phone(self, value):
        return _validate_phone(value)


class PaymentRetrySerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, required=False)
    payer_phone = serializers.CharField(max_length=20, required=False)

    def validate_payer_phone(self, value):
        return _validate_phone(value)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    tracking_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
