from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from orders.models import Order
from users.permissions import IsAdmin, IsOrderOwnerOrAdmin, can_access_order

User = get_user_model()


class RolePermissionTests(TestCase):
    """
    GUARANTEES:
    - Customers only reach their own orders
    - Admins reach every order
    - Anonymous users denied everywhere
    """

    def setUp(self):
        self.factory = APIRequestFactory()
        self.admin = User.objects.create_user(email="admin@example.com", password="pass", role="admin")
        self.customer = User.objects.create_user(email="c@example.com", password="pass")
        self.stranger = User.objects.create_user(email="s@example.com", password="pass")
        self.order = Order.objects.create(user=self.customer, payment_method="mpesa", payer_phone="254712345678")

    def _request_for(self, user):
        request = self.factory.get("/")
        request.user = user
        return request

    def test_default_role_is_customer(self):
        self.assertEqual(self.customer.role, User.ROLE_CUSTOMER)

    def test_is_admin(self):
        self.assertTrue(IsAdmin().has_permission(self._request_for(self.admin), None))
        self.assertFalse(IsAdmin().has_permission(self._request_for(self.customer), None))
        self.assertFalse(IsAdmin().has_permission(self._request_for(AnonymousUser()), None))

    def test_order_access(self):
        self.assertTrue(can_access_order(self.customer, self.order))
        self.assertTrue(can_access_order(self.admin, self.order))
        self.assertFalse(can_access_order(self.stranger, self.order))
        self.assertFalse(can_access_order(AnonymousUser(), self.order))

    def test_object_permission_follows_order_relation(self):
        class _Child:
            order = self.order

        perm = IsOrderOwnerOrAdmin()
        self.assertTrue(perm.has_object_permission(self._request_for(self.customer), None, _Child()))
        self.assertFalse(perm.has_object_permission(self._request_for(self.stranger), None, _Child()))
