# payments/views/status.py

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.models import Payment
from payments.serializers import PaymentSerializer
from users.permissions import IsOrderOwnerOrAdmin


class PaymentStatusView(APIView):
    """Payment status by provider transaction handle."""

    permission_classes = [IsOrderOwnerOrAdmin]

    @extend_schema(responses={200: PaymentSerializer, 404: OpenApiResponse(description="Unknown handle")})
    def get(self, request, transaction_id):
        payment = get_object_or_404(
            Payment.objects.select_related("order"),
            transaction_id=transaction_id,
        )
        self.check_object_permissions(request, payment)
        return Response(PaymentSerializer(payment).data)
