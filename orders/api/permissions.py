"""Orders API permissions.

The admin gate compares a shared secret from the ``X-Admin-Secret`` header
against ``ORDERS_ADMIN_SECRET``. It is independent of customer identity: an
admin request never needs to match the order owner.
"""

import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission

from orders.exceptions import Unauthorized
from .authentication import resolve_identity

ADMIN_HEADER = "X-Admin-Secret"


def admin_secret_matches(supplied: str | None) -> bool:
    expected = settings.ORDERS_ADMIN_SECRET or ""
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode(), supplied.encode())


def is_admin_request(request) -> bool:
    """True for a valid admin secret, False when none is sent.

    A secret that is sent but wrong is rejected rather than treated as a
    customer request.
    """
    supplied = request.headers.get(ADMIN_HEADER)
    if supplied is None:
        return False
    if not admin_secret_matches(supplied):
        raise Unauthorized("Invalid admin credential.")
    return True


class HasAdminSecret(BasePermission):
    """Allow the request only with the correct admin secret."""

    message = "Admin credential missing or invalid."

    def has_permission(self, request, view):
        if not admin_secret_matches(request.headers.get(ADMIN_HEADER)):
            raise Unauthorized(self.message)
        return True


class IsCustomer(BasePermission):
    """Requires a resolvable customer identity (token or open mode)."""

    def has_permission(self, request, view):
        resolve_identity(request)
        return True
