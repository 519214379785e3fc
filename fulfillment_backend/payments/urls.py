# payments/urls.py

from django.urls import path

from payments.views import AirtelCallbackView, MpesaCallbackView, PaymentStatusView

app_name = "payments"

urlpatterns = [
    path("mpesa/callback/", MpesaCallbackView.as_view(), name="mpesa-callback"),
    path("airtel/callback/", AirtelCallbackView.as_view(), name="airtel-callback"),
    path("<str:transaction_id>/", PaymentStatusView.as_view(), name="payment-status"),
]
