from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from notifications import sms
from users.models import OneTimePasscode
from users.services import InvalidOtpError, issue_otp, verify_otp

PHONE = "254712345678"


class OtpServiceTests(TestCase):
    def setUp(self):
        sms.outbox.clear()

    def test_issue_sends_code_by_sms(self):
        with self.captureOnCommitCallbacks(execute=True):
            otp = issue_otp(phone=PHONE, purpose=OneTimePasscode.PURPOSE_LOGIN)

        self.assertEqual(len(otp.code), 6)
        self.assertTrue(otp.code.isdigit())
        self.assertEqual(sms.outbox[0]["to"], PHONE)
        self.assertIn(otp.code, sms.outbox[0]["message"])

    def test_verify_is_single_use(self):
        otp = issue_otp(phone=PHONE, purpose=OneTimePasscode.PURPOSE_LOGIN)

        verify_otp(phone=PHONE, code=otp.code, purpose=OneTimePasscode.PURPOSE_LOGIN)

        with self.assertRaises(InvalidOtpError):
            verify_otp(phone=PHONE, code=otp.code, purpose=OneTimePasscode.PURPOSE_LOGIN)

    def test_purpose_scoped(self):
        otp = issue_otp(phone=PHONE, purpose=OneTimePasscode.PURPOSE_LOGIN)

        with self.assertRaises(InvalidOtpError):
            verify_otp(phone=PHONE, code=otp.code, purpose=OneTimePasscode.PURPOSE_PASSWORD_RESET)

    def test_expired_rejected(self):
        otp = issue_otp(phone=PHONE, purpose=OneTimePasscode.PURPOSE_LOGIN)
        OneTimePasscode.objects.filter(pk=otp.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        with self.assertRaises(InvalidOtpError):
            verify_otp(phone=PHONE, code=otp.code, purpose=OneTimePasscode.PURPOSE_LOGIN)

    def test_reissue_replaces_previous_code(self):
        first = issue_otp(phone=PHONE, purpose=OneTimePasscode.PURPOSE_LOGIN)
        second = issue_otp(phone=PHONE, purpose=OneTimePasscode.PURPOSE_LOGIN)

        self.assertFalse(OneTimePasscode.objects.filter(pk=first.pk).exists())
        verify_otp(phone=PHONE, code=second.code, purpose=OneTimePasscode.PURPOSE_LOGIN)

    def test_unknown_purpose(self):
        with self.assertRaises(InvalidOtpError):
            issue_otp(phone=PHONE, purpose="teleport")

    def test_local_and_international_forms_match(self):
        otp = issue_otp(phone="0712 345 678", purpose=OneTimePasscode.PURPOSE_LOGIN)
        self.assertEqual(otp.phone, PHONE)

        verified = verify_otp(phone="+254712345678", code=otp.code, purpose=OneTimePasscode.PURPOSE_LOGIN)
        self.assertEqual(verified.pk, otp.pk)

    def test_invalid_phone_rejected(self):
        with self.assertRaises(InvalidOtpError):
            issue_otp(phone="12345", purpose=OneTimePasscode.PURPOSE_LOGIN)
        with self.assertRaises(InvalidOtpError):
            verify_otp(phone="", code="123456", purpose=OneTimePasscode.PURPOSE_LOGIN)


class OtpApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_send_and_verify(self):
        res = self.client.post("/api/auth/otp/send/", {"phone": PHONE, "purpose": "login"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["message"], "OTP sent successfully")

        code = OneTimePasscode.objects.get(phone=PHONE).code
        res = self.client.post(
            "/api/auth/otp/verify/", {"phone": PHONE, "purpose": "login", "code": code}, format="json"
        )
        self.assertEqual(res.status_code, 200)

        res = self.client.post(
            "/api/auth/otp/verify/", {"phone": PHONE, "purpose": "login", "code": code}, format="json"
        )
        self.assertEqual(res.status_code, 400)

    def test_verify_with_other_phone_format(self):
        self.client.post("/api/auth/otp/send/", {"phone": "0712345678", "purpose": "login"}, format="json")
        code = OneTimePasscode.objects.get(phone=PHONE).code

        res = self.client.post(
            "/api/auth/otp/verify/", {"phone": PHONE, "purpose": "login", "code": code}, format="json"
        )
        self.assertEqual(res.status_code, 200)

    def test_bad_payload(self):
        res = self.client.post("/api/auth/otp/send/", {"phone": PHONE, "purpose": "nope"}, format="json")
        self.assertEqual(res.status_code, 400)
