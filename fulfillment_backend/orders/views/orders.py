# orders/views/orders.py

"""
======================================================
PATH: orders/views/orders.py
======================================================
ORDER API

- POST   orders/                      create + reserve + push payment
- GET    orders/                      list (own orders; admins see all)
- GET    orders/<uuid>/               detail
- POST   orders/<uuid>/cancel/        cancel (stock restored once)
- POST   orders/<uuid>/pay/           retry payment
- PATCH  orders/<uuid>/status/        admin lifecycle transition
- GET    orders/track/<tracking>/     tracking timeline

Views validate transport only; everything else is the reconciliation
engine's job.
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.filters import OrderFilter
from orders.models import Order
from orders.serializers import (
    OrderCreateSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
    PaymentRetrySerializer,
)
from orders.services.exceptions import OrderError
from orders.services.order_lifecycle import timeline
from orders.views.errors import domain_error_response
from payments.gateways import GatewayNotConfigured
from payments.serializers import PaymentSerializer
from payments.services import build_engine
from products.services.exceptions import InventoryError
from users.models import User
from users.permissions import IsAdmin, IsOrderOwnerOrAdmin


def _order_queryset():
    return (
        Order.objects
        .select_related("user")
        .prefetch_related("items", "payments")
    )


def _attempt_response(result, *, http_status: int):
    return Response(
        {
            "order": OrderSerializer(result.order).data,
            "payment": PaymentSerializer(result.payment).data,
            "payment_error": result.payment_error,
        },
        status=http_status,
    )


class OrderListCreateView(generics.ListAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    filterset_class = OrderFilter

    def get_queryset(self):
        qs = _order_queryset()
        if getattr(self.request.user, "role", None) == User.ROLE_ADMIN:
            return qs
        return qs.filter(user=self.request.user)

    @extend_schema(
        request=OrderCreateSerializer,
        responses={
            201: OpenApiResponse(description="Order created; payment initiated or payment_error set"),
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="Product not found"),
            409: OpenApiResponse(description="Insufficient stock"),
        },
        description="Create an order, reserve stock and push a mobile-money payment request",
    )
    def post(self, request):
        s = OrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = build_engine().create_order(
                user=request.user,
                items=data["items"],
                payment_method=data["payment_method"],
                payer_phone=data["payer_phone"],
                shipping_address=data.get("shipping_address"),
                billing_address=data.get("billing_address"),
                notes=data.get("notes", ""),
            )
        except (InventoryError, GatewayNotConfigured) as exc:
            return domain_error_response(exc)

        return _attempt_response(result, http_status=status.HTTP_201_CREATED)


class OrderDetailView(generics.RetrieveAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsOrderOwnerOrAdmin]
    lookup_url_kwarg = "order_id"

    def get_queryset(self):
        return _order_queryset()


class _OrderCommandView(APIView):
    permission_classes = [IsOrderOwnerOrAdmin]

    def get_order(self, request, order_id) -> Order:
        order = get_object_or_404(Order, pk=order_id)
        self.check_object_permissions(request, order)
        return order


class OrderCancelView(_OrderCommandView):
    @extend_schema(
        request=None,
        responses={200: OrderSerializer, 409: OpenApiResponse(description="Order not cancellable")},
        description="Cancel an order and return its stock",
    )
    def post(self, request, order_id):
        order = self.get_order(request, order_id)

        try:
            order = build_engine().cancel_order(order_id=order.pk, user=request.user)
        except OrderError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)


class OrderPayView(_OrderCommandView):
    @extend_schema(
        request=PaymentRetrySerializer,
        responses={
            201: OpenApiResponse(description="New payment attempt created"),
            409: OpenApiResponse(description="Order does not accept payment / insufficient stock"),
        },
        description="Start a new payment attempt for a pending order",
    )
    def post(self, request, order_id):
        order = self.get_order(request, order_id)

        s = PaymentRetrySerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = build_engine().retry_payment(
                order_id=order.pk,
                user=request.user,
                payment_method=s.validated_data.get("payment_method"),
                payer_phone=s.validated_data.get("payer_phone"),
            )
        except (OrderError, InventoryError, GatewayNotConfigured) as exc:
            return domain_error_response(exc)

        return _attempt_response(result, http_status=status.HTTP_201_CREATED)


class OrderStatusView(APIView):
    permission_classes = [IsAdmin]

    @extend_schema(
        request=OrderStatusUpdateSerializer,
        responses={200: OrderSerializer, 409: OpenApiResponse(description="Transition not allowed")},
        description="Move an order through its lifecycle (admin only)",
    )
    def patch(self, request, order_id):
        order = get_object_or_404(Order, pk=order_id)

        s = OrderStatusUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            order = build_engine().update_status(
                order_id=order.pk,
                target_status=s.validated_data["status"],
                tracking_number=s.validated_data.get("tracking_number", ""),
                user=request.user,
            )
        except (OrderError, InventoryError) as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)


class OrderTrackView(APIView):
    permission_classes = [IsOrderOwnerOrAdmin]

    @extend_schema(responses={200: dict, 404: OpenApiResponse(description="Unknown tracking number")})
    def get(self, request, tracking_number):
        order = get_object_or_404(Order, tracking_number=tracking_number)
        self.check_object_permissions(request, order)

        return Response(
            {
                "order_no": order.order_no,
                "tracking_number": order.tracking_number,
                "status": order.status,
                "payment_status": order.payment_status,
                "timeline": timeline(order),
            }
        )
