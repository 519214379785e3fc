# payments/serializers/payment.py

from rest_framework import serializers

from payments.models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment status (read-only). `handle` is the provider transaction handle.
    """

    handle = serializers.CharField(source="transaction_id", read_only=True, allow_null=True)
    order_no = serializers.CharField(source="order.order_no", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "handle",
            "order",
            "order_no",
            "provider",
            "phone_number",
            "amount",
            "currency",
            "status",
            "reference",
            "external_ref",
            "result_code",
            "result_description",
            "created_at",
            "updated_at",
            "completed_at",
        ]
        read_only_fields = fields
