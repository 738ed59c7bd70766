"""Blob storage for original and modified control-unit files.

Thin wrapper over Django's ``default_storage``; files live under
``uploads/<order_id>/`` with sanitised names.
"""

import logging
import os
import re

from django.conf import settings
from django.core.files.storage import default_storage

from .exceptions import NotFound, TooLarge, UnsupportedType, UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def safe_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", os.path.basename(name or ""))


def store(
    order_id: str,
    uploaded,
    max_size: int | None = None,
    allowed_extensions=None,
    fallback_name: str = "file.bin",
) -> dict:
    """Save an uploaded file and return its reference ``{name, url, size}``."""
    if uploaded is None:
        raise ValidationError("Missing file 'file'.")
    max_size = settings.ORDERS_MAX_UPLOAD_BYTES if max_size is None else max_size
    allowed = [e.lower() for e in (allowed_extensions or settings.ORDERS_ALLOWED_EXTENSIONS)]

    original_name = uploaded.name or fallback_name
    size = uploaded.size
    if size is None or size > max_size:
        raise TooLarge(f"File exceeds {max_size} bytes.")
    ext = os.path.splitext(original_name)[1].lower()
    if allowed and ext not in allowed:
        raise UnsupportedType(f"Extension '{ext or '(none)'}' is not allowed.")

    target = f"uploads/{order_id}/{safe_name(original_name) or fallback_name}"
    try:
        stored_name = default_storage.save(target, uploaded)
    except OSError as exc:
        logger.error("storing %s failed: %s", target, exc)
        raise UpstreamUnavailable("File storage is unavailable.") from exc
    logger.info("stored %s (%s bytes)", stored_name, size)
    return {
        "name": original_name,
        "stored_name": stored_name,
        "url": default_storage.url(stored_name),
        "size": size,
    }


def retrieve(stored_name: str):
    """Open a stored file for reading; ``NotFound`` if it is gone."""
    if not stored_name or not default_storage.exists(stored_name):
        raise NotFound("File not found.")
    return default_storage.open(stored_name, "rb")


def discard(stored_name: str) -> None:
    """Remove a stored file that no order ended up referencing."""
    if stored_name and default_storage.exists(stored_name):
        default_storage.delete(stored_name)
        logger.info("discarded %s", stored_name)
