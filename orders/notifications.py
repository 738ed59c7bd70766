"""Outbound mail for order events.

Mail is best effort: a failed send is logged and reported as ``False`` and
never undoes or blocks the order change that triggered it. With
``ORDERS_NOTIFY_ASYNC`` the send is handed to a small thread pool and the
call returns ``True`` once queued.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from html import escape

from django.conf import settings
from django.core.mail import send_mail

from .models import Order

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="order-mail")

SUBJECTS = {
    "received": "New order {order_id}",
    "paid": "Payment received for order {order_id}",
    "ready": "Your modified file for order {order_id} is ready",
}


def recipients_for(order: Order, event: str) -> list[str]:
    admins = list(settings.ORDERS_ADMIN_EMAILS)
    owner = [order.owner_identity] if "@" in order.owner_identity else []
    if event == "received":
        return admins
    if event == "paid":
        return owner + [a for a in admins if a not in owner]
    if event == "ready":
        return owner
    return []


def render(order: Order, event: str) -> str:
    meta = order.vehicle_meta or {}
    vehicle = " ".join(str(meta.get(k, "")) for k in ("brand", "model", "year", "engine")).strip()
    rows = [
        ("Order", order.order_id),
        ("Status", order.status),
        ("Vehicle", vehicle or "-"),
        ("Options", ", ".join(order.requested_options or []) or "-"),
    ]
    if event == "ready" and order.result_file:
        rows.append(("File", order.result_file.get("url", "")))
    body = "".join(
        f"<tr><td><b>{escape(label)}</b></td><td>{escape(str(value))}</td></tr>"
        for label, value in rows
    )
    return f"<html><body><table>{body}</table></body></html>"


def send_email(to_addrs: list[str], subject: str, html: str) -> bool:
    if not to_addrs:
        logger.warning("No recipients for email '%s'; skipping.", subject)
        return False
    try:
        send_mail(
            subject,
            "",
            settings.DEFAULT_FROM_EMAIL,
            to_addrs,
            html_message=html,
        )
    except Exception as exc:
        logger.error("Failed sending email '%s': %s", subject, exc)
        return False
    logger.info("Email sent: %s -> %s", subject, to_addrs)
    return True


def notify_order_event(order: Order, event: str) -> bool:
    """Send the mail for ``event``; queue it when async delivery is on."""
    subject_tpl = SUBJECTS.get(event)
    if subject_tpl is None:
        return False
    to_addrs = recipients_for(order, event)
    subject = subject_tpl.format(order_id=order.order_id)
    html = render(order, event)
    if settings.ORDERS_NOTIFY_ASYNC:
        _executor.submit(send_email, to_addrs, subject, html)
        return bool(to_addrs)
    return send_email(to_addrs, subject, html)
