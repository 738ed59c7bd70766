"""Project-wide DRF exception handler.

Adds ``ok: false`` and a stable ``kind`` to every error body so clients can
branch on the failure without parsing messages.
"""

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions
from rest_framework.views import exception_handler

from orders.exceptions import OrderError

logger = logging.getLogger(__name__)


def error_kind(exc) -> str:
    if isinstance(exc, OrderError):
        return exc.default_code
    if isinstance(exc, (exceptions.ValidationError, exceptions.ParseError)):
        return "validation_error"
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        return "unauthorized"
    if isinstance(exc, (exceptions.PermissionDenied, DjangoPermissionDenied)):
        return "forbidden"
    if isinstance(exc, (exceptions.NotFound, Http404)):
        return "not_found"
    if isinstance(exc, exceptions.UnsupportedMediaType):
        return "unsupported_type"
    if isinstance(exc, exceptions.APIException):
        return exc.default_code
    return "error"


def order_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    kind = error_kind(exc)
    data = response.data
    if isinstance(data, dict) and set(data) == {"detail"}:
        body = {"ok": False, "kind": kind, "detail": data["detail"]}
    else:
        body = {"ok": False, "kind": kind, "detail": "Invalid input.", "errors": data}
    if response.status_code >= 500:
        logger.error("request failed (%s): %s", kind, exc)
    response.data = body
    return response
