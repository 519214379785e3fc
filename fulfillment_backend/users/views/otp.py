# users/views/otp.py

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from users.models import OneTimePasscode
from users.services import InvalidOtpError, issue_otp, verify_otp


class OtpThrottle(AnonRateThrottle):
    scope = "otp"


# ---------------------------
# SERIALIZERS (LOCAL, SIMPLE)
# ---------------------------


class OtpSendSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
    purpose = serializers.ChoiceField(choices=OneTimePasscode.PURPOSE_CHOICES)


class OtpVerifySerializer(OtpSendSerializer):
    code = serializers.CharField(min_length=6, max_length=6)


# ---------------------------
# VIEWS
# ---------------------------


class OtpSendView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [OtpThrottle]

    @extend_schema(
        request=OtpSendSerializer,
        responses={200: dict, 400: OpenApiResponse(description="Validation error")},
        description="Send a one-time passcode by SMS",
    )
    def post(self, request):
        s = OtpSendSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            issue_otp(phone=s.validated_data["phone"], purpose=s.validated_data["purpose"])
        except InvalidOtpError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({"message": "OTP sent successfully"}, status=status.HTTP_200_OK)


class OtpVerifyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [OtpThrottle]

    @extend_schema(
        request=OtpVerifySerializer,
        responses={200: dict, 400: OpenApiResponse(description="Invalid or expired OTP")},
        description="Verify (and consume) a one-time passcode",
    )
    def post(self, request):
        s = OtpVerifySerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            verify_otp(phone=data["phone"], code=data["code"], purpose=data["purpose"])
        except InvalidOtpError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({"message": "OTP verified successfully"}, status=status.HTTP_200_OK)
