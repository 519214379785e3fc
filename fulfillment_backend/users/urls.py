# users/urls.py

from django.urls import path

from .views import OtpSendView, OtpVerifyView

app_name = "users"

urlpatterns = [
    path("otp/send/", OtpSendView.as_view(), name="otp-send"),
    path("otp/verify/", OtpVerifyView.as_view(), name="otp-verify"),
]
