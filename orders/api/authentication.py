"""Customer identity.

In ``token`` mode customers authenticate with DRF tokens sent as
``Authorization: Bearer <key>`` and are identified by their email. In
``open`` mode (explicit demo mode, no verification at all) the identity is
whatever email the request carries in ``X-Customer-Email`` or an ``email``
field.
"""

from django.conf import settings
from rest_framework.authentication import TokenAuthentication

from orders.exceptions import Unauthorized, ValidationError


class BearerTokenAuthentication(TokenAuthentication):
    """DRF token authentication using the ``Bearer`` keyword."""

    keyword = "Bearer"


def identity_of(user) -> str:
    return (user.email or user.get_username()).strip().lower()


def open_mode() -> bool:
    return settings.ORDERS_IDENTITY_MODE == "open"


def resolve_identity(request) -> str:
    """Return the requesting customer's identity or fail."""
    if open_mode():
        body = request.data if isinstance(request.data, dict) else {}
        value = (
            request.headers.get("X-Customer-Email")
            or body.get("email")
            or request.query_params.get("email")
        )
        if not value:
            raise ValidationError("An 'email' is required to identify the customer.")
        return str(value).strip().lower()

    user = request.user
    if not user or not user.is_authenticated:
        raise Unauthorized("Authentication credentials were not provided.")
    return identity_of(user)
