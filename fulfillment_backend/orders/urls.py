# orders/urls.py

from django.urls import path

from orders.views import (
    OrderCancelView,
    OrderDetailView,
    OrderListCreateView,
    OrderPayView,
    OrderStatusView,
    OrderTrackView,
)

app_name = "orders"

urlpatterns = [
    path("", OrderListCreateView.as_view(), name="order-list"),
    path("track/<str:tracking_number>/", OrderTrackView.as_view(), name="order-track"),
    path("<uuid:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<uuid:order_id>/cancel/", OrderCancelView.as_view(), name="order-cancel"),
    path("<uuid:order_id>/pay/", OrderPayView.as_view(), name="order-pay"),
    path("<uuid:order_id>/status/", OrderStatusView.as_view(), name="order-status"),
]
