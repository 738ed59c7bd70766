import shutil
import tempfile

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from orders.models import Order


User = get_user_model()
MEDIA_ROOT = tempfile.mkdtemp(prefix="orders-test-")


def make_customer(email="cust@example.com"):
    user = User.objects.create_user(email, email, "pass1234")
    token, _ = Token.objects.get_or_create(user=user)
    return user, token


def ecu_file(name="stock.bin", size=16):
    return SimpleUploadedFile(name, b"\x7f" * size, content_type="application/octet-stream")


@override_settings(
    MEDIA_ROOT=MEDIA_ROOT,
    ORDERS_IDENTITY_MODE="token",
    ORDERS_NOTIFY_ASYNC=False,
    ORDERS_ADMIN_EMAILS=["shop@example.com"],
)
class OrderUploadTests(APITestCase):
    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.url = reverse("order-upload")
        self.user, self.token = make_customer()

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")

    def test_upload_creates_order_and_notifies_shop(self):
        self.auth(self.token)
        payload = {
            "file": ecu_file(),
            "brand": "VW",
            "model": "Golf",
            "year": "2016",
            "comments": "Please keep cruise control",
            "requested_options": "dpf_off",
            "egr_off": "on",
        }
        res = self.client.post(self.url, payload, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertTrue(res.data["ok"])

        order = res.data["order"]
        self.assertEqual(res.data["order_id"], order["order_id"])
        self.assertTrue(order["order_id"].startswith("ord_"))
        self.assertEqual(order["status"], "uploaded")
        self.assertEqual(order["owner_identity"], "cust@example.com")
        self.assertEqual(order["requested_options"], ["dpf_off", "egr_off"])
        self.assertEqual(order["vehicle_meta"], {"brand": "VW", "model": "Golf", "year": "2016"})
        self.assertEqual(order["original_file"]["name"], "stock.bin")
        self.assertEqual(order["payment"]["payment_status"], "unpaid")
        self.assertEqual(res.data["download_url"], order["original_file"]["url"])

        self.assertTrue(res.data["notified"])
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["shop@example.com"])
        self.assertTrue(Order.objects.filter(order_id=order["order_id"]).exists())

    def test_option_checkbox_can_switch_an_option_off(self):
        self.auth(self.token)
        payload = {"file": ecu_file(), "requested_options": '["dpf_off", "egr_off"]', "egr_off": "0"}
        res = self.client.post(self.url, payload, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["order"]["requested_options"], ["dpf_off"])

    def test_legacy_form_fields_are_accepted(self):
        self.auth(self.token)
        payload = {
            "file": ecu_file(),
            "modsSelected": '["dpf_off","egr_off"]',
            "notes": "please hurry",
        }
        res = self.client.post(self.url, payload, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["order"]["requested_options"], ["dpf_off", "egr_off"])
        self.assertEqual(res.data["order"]["comments"], "please hurry")

    def test_legacy_option_list_is_validated(self):
        self.auth(self.token)
        payload = {"file": ecu_file(), "modsSelected": '["warp_drive"]'}
        res = self.client.post(self.url, payload, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("modsSelected", res.data["errors"])

    def test_unknown_option_is_rejected(self):
        self.auth(self.token)
        res = self.client.post(
            self.url, {"file": ecu_file(), "requested_options": "turbo_max"}, format="multipart"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "validation_error")
        self.assertIn("requested_options", res.data["errors"])
        self.assertEqual(Order.objects.count(), 0)

    def test_missing_file_is_rejected(self):
        self.auth(self.token)
        res = self.client.post(self.url, {"brand": "VW"}, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("file", res.data["errors"])

    def test_unsupported_extension_returns_415(self):
        self.auth(self.token)
        res = self.client.post(self.url, {"file": ecu_file("notes.txt")}, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)
        self.assertEqual(res.data["kind"], "unsupported_type")
        self.assertEqual(Order.objects.count(), 0)

    @override_settings(ORDERS_MAX_UPLOAD_BYTES=8)
    def test_oversized_file_returns_413(self):
        self.auth(self.token)
        res = self.client.post(self.url, {"file": ecu_file(size=16)}, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
        self.assertEqual(res.data["kind"], "too_large")

    def test_requires_authentication(self):
        res = self.client.post(self.url, {"file": ecu_file()}, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(res.data["kind"], "unauthorized")
        self.assertFalse(res.data["ok"])

    def test_invalid_token_is_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
        res = self.client.post(self.url, {"file": ecu_file()}, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(ORDERS_IDENTITY_MODE="open")
    def test_open_mode_uses_submitted_email(self):
        res = self.client.post(
            self.url, {"file": ecu_file(), "email": "Walkin@Example.com"}, format="multipart"
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["order"]["owner_identity"], "walkin@example.com")

    @override_settings(ORDERS_IDENTITY_MODE="open")
    def test_open_mode_without_email_is_rejected(self):
        res = self.client.post(self.url, {"file": ecu_file()}, format="multipart")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
