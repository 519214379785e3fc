# orders/serializers/order.py

from rest_framework import serializers

from orders.models import Order, OrderItem
from payments.serializers import PaymentSerializer


class OrderItemSerializer(serializers.ModelSerializer):
    """
    Line-item snapshot (read-only). Prices are the ones captured at
    order time, never the live catalog.
    """

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "sku",
            "quantity",
            "unit_price",
            "total_price",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    latest_payment = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_no",
            "status",
            "payment_status",
            "payment_method",
            "payer_phone",
            "subtotal_amount",
            "shipping_amount",
            "tax_amount",
            "discount_amount",
            "total_amount",
            "currency",
            "shipping_address",
            "billing_address",
            "notes",
            "tracking_number",
            "refund_pending",
            "items",
            "latest_payment",
            "created_at",
            "confirmed_at",
            "delivered_at",
            "cancelled_at",
        ]
        read_only_fields = fields

    def get_latest_payment(self, obj):
        payment = obj.payments.order_by("-created_at").first()
        if payment is None:
            return None
        return PaymentSerializer(payment).data
