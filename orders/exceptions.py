"""Order service error taxonomy.

Every failure the core can report is an ``APIException`` with a stable
``default_code``; the project exception handler exposes that code as the
machine-readable ``kind`` of the error body.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class OrderError(APIException):
    """Base class for all order service failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Order operation failed."
    default_code = "order_error"


class NotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Order not found."
    default_code = "not_found"


class DuplicateKey(OrderError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "An order with this id already exists."
    default_code = "duplicate_key"


class InvalidTransition(OrderError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This status change is not allowed."
    default_code = "invalid_transition"


class TerminalState(InvalidTransition):
    default_detail = "The order is in a terminal state."
    default_code = "terminal_state"


class InvalidState(OrderError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The order is not in a state that allows this operation."
    default_code = "invalid_state"


class Forbidden(OrderError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have access to this order."
    default_code = "forbidden"


class Unauthorized(OrderError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Missing or invalid credentials."
    default_code = "unauthorized"


class Conflict(OrderError):
    """Concurrent write detected; the caller may retry."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The order was modified concurrently, please retry."
    default_code = "conflict"


class ValidationError(OrderError):
    default_detail = "Invalid input."
    default_code = "validation_error"


class TooLarge(ValidationError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "File is too large."
    default_code = "too_large"


class UnsupportedType(ValidationError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    default_detail = "File type is not supported."
    default_code = "unsupported_type"


class UpstreamUnavailable(OrderError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "An upstream service is unavailable."
    default_code = "upstream_unavailable"
