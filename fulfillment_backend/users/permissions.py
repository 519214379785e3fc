# users/permissions.py

from rest_framework.permissions import BasePermission

from users.models import User


# ---------------- BASE ROLE PERMISSION ----------------
class HasRole(BasePermission):
    """
    Base permission to check user role safely.
    """

    allowed_roles = set()

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and getattr(user, "role", None) in self.allowed_roles
        )


# ---------------- ROLE PERMISSIONS ----------------
class IsAdmin(HasRole):
    allowed_roles = {User.ROLE_ADMIN}


# ---------------- OBJECT OWNERSHIP ----------------
def can_access_order(user, order) -> bool:
    """
    Customers only see their own orders; admins see every order.
    """
    if not user or not user.is_authenticated:
        return False
    if getattr(user, "role", None) == User.ROLE_ADMIN:
        return True
    return order.user_id is not None and order.user_id == user.id


class IsOrderOwnerOrAdmin(BasePermission):
    """
    Object-level rule for Order (or anything exposing `.order`).
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        order = getattr(obj, "order", obj)
        return can_access_order(request.user, order)
