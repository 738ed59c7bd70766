"""Order lifecycle.

The only code allowed to change an order's status, payment record or result
file. Every operation runs as one ``OrderStore.update`` so the state check and
the write happen against the same committed record.

Status machine::

    uploaded --payment confirmed--> paid --result attached--> ready --confirmed--> delivered
    uploaded --result attached (admin override)--> ready
    any non-terminal --rejected--> rejected

``delivered`` and ``rejected`` are terminal.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from django.utils import timezone

from .exceptions import (
    DuplicateKey,
    Forbidden,
    InvalidState,
    InvalidTransition,
    TerminalState,
    ValidationError,
)
from .models import Order
from .store import OrderStore

logger = logging.getLogger(__name__)

Status = Order.Status

# forward ordering; rejected sits outside it
STATUS_RANK = {
    Status.UPLOADED: 0,
    Status.PAID: 1,
    Status.READY: 2,
    Status.DELIVERED: 3,
}
TERMINAL_STATES = frozenset({Status.DELIVERED, Status.REJECTED})

# older clients used a payment-unaware vocabulary
LEGACY_STATUS_ALIASES = {
    "pending": Status.UPLOADED,
    "in_progress": Status.UPLOADED,
}

MAX_COMMENTS_LENGTH = 1000
MAX_FEEDBACK_LENGTH = 2000
RATING_MIN, RATING_MAX = 0, 5

Notifier = Callable[[Order, str], bool]


def canonical_status(value: str) -> str:
    """Map a legacy or canonical status name onto the canonical vocabulary."""
    value = (value or "").strip().lower()
    if value in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[value]
    if value in Status.values:
        return value
    raise ValidationError(f"Unknown status '{value}'.")


def new_order_id() -> str:
    """ord_<UTC timestamp to the millisecond>_<8 hex chars>."""
    now = timezone.now()
    stamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
    return f"ord_{stamp}_{uuid.uuid4().hex[:8]}"


def clamp_rating(value: int) -> int:
    return max(RATING_MIN, min(RATING_MAX, int(value)))


@dataclass
class Outcome:
    """Result of a lifecycle operation.

    ``changed`` is False for idempotent no-ops; ``notified`` is None when no
    notification was due.
    """

    order: Order
    changed: bool
    notified: Optional[bool] = None


class LifecycleManager:
    """Applies lifecycle transitions to orders held in an ``OrderStore``."""

    def __init__(self, store: OrderStore | None = None, notifier: Notifier | None = None):
        self.store = store or OrderStore()
        self.notifier = notifier

    # --- creation ---

    def create_order(
        self,
        owner_identity: str,
        original_file: dict,
        vehicle_meta: dict | None = None,
        requested_options: list | None = None,
        comments: str = "",
        order_id: str | None = None,
    ) -> Outcome:
        if not owner_identity:
            raise ValidationError("An owner identity is required.")
        if not original_file or not original_file.get("name"):
            raise ValidationError("An original file is required.")
        if len(comments or "") > MAX_COMMENTS_LENGTH:
            raise ValidationError(f"Comments must be at most {MAX_COMMENTS_LENGTH} characters.")

        def build(oid):
            return Order(
                order_id=oid,
                owner_identity=owner_identity,
                vehicle_meta=dict(vehicle_meta or {}),
                requested_options=sorted(set(requested_options or [])),
                comments=comments or "",
                original_file=dict(original_file),
                status=Status.UPLOADED,
            )

        try:
            order = self.store.create(build(order_id or new_order_id()))
        except DuplicateKey:
            if order_id:
                raise
            # generated ids should never collide; one fresh id is enough
            order = self.store.create(build(new_order_id()))
        return Outcome(order, True, self._notify(order, "received"))

    # --- transitions ---

    def confirm_payment(self, order_id: str, provider: str, external_payment_id: str) -> Outcome:
        """Record an approved payment; repeated confirmations are no-ops."""
        if provider not in Order.Provider.values or provider == Order.Provider.NONE:
            raise ValidationError(f"Unknown payment provider '{provider}'.")

        def mutate(order: Order):
            if order.status == Status.REJECTED:
                raise TerminalState(f"Order {order_id} was rejected.")
            if order.payment_status == Order.PaymentStatus.APPROVED:
                if (order.payment_provider, order.external_payment_id) != (
                    provider,
                    external_payment_id,
                ):
                    logger.warning(
                        "order %s already paid via %s:%s, ignoring %s:%s",
                        order_id,
                        order.payment_provider,
                        order.external_payment_id,
                        provider,
                        external_payment_id,
                    )
                return None
            order.payment_provider = provider
            order.external_payment_id = external_payment_id or ""
            order.payment_status = Order.PaymentStatus.APPROVED
            if order.status == Status.UPLOADED:
                order.status = Status.PAID
            return order

        return self._apply(order_id, mutate, "paid")

    def attach_result(self, order_id: str, result_file: dict, admin_override: bool = False) -> Outcome:
        """Attach the engineer's file; moves ``paid`` (or, as admin, ``uploaded``) to ``ready``."""
        if not result_file or not result_file.get("name"):
            raise ValidationError("A result file is required.")

        def mutate(order: Order):
            if order.status == Status.REJECTED:
                raise TerminalState(f"Order {order_id} was rejected.")
            if order.status == Status.UPLOADED and not admin_override:
                raise InvalidTransition(f"Order {order_id} has not been paid yet.")
            order.result_file = {**result_file, "uploaded_at": timezone.now().isoformat()}
            if STATUS_RANK[order.status] < STATUS_RANK[Status.READY]:
                order.status = Status.READY
            return order

        return self._apply(order_id, mutate, "ready")

    def confirm_delivery(self, order_id: str, identity: str | None = None, admin: bool = False) -> Outcome:
        def mutate(order: Order):
            if not admin and order.owner_identity != identity:
                raise Forbidden("Only the order owner may confirm delivery.")
            if order.status in TERMINAL_STATES:
                raise TerminalState(f"Order {order_id} is already {order.status}.")
            if order.status != Status.READY:
                raise InvalidTransition(f"Order {order_id} is {order.status}, not ready.")
            order.status = Status.DELIVERED
            return order

        return self._apply(order_id, mutate, "delivered")

    def reject(self, order_id: str) -> Outcome:
        def mutate(order: Order):
            if order.status in TERMINAL_STATES:
                raise TerminalState(f"Order {order_id} is already {order.status}.")
            order.status = Status.REJECTED
            # a result reference only exists for ready/delivered orders
            order.result_file = {}
            return order

        return self._apply(order_id, mutate, "rejected")

    def set_status(self, order_id: str, status: str) -> Outcome:
        """Administrative status change by name."""
        target = canonical_status(status)
        if target == Status.DELIVERED:
            return self.confirm_delivery(order_id, admin=True)
        if target == Status.REJECTED:
            return self.reject(order_id)
        if target == Status.UPLOADED:
            # legacy "pending"/"in_progress": accepted only where nothing moves
            def mutate(order: Order):
                if order.status in TERMINAL_STATES:
                    raise TerminalState(f"Order {order_id} is already {order.status}.")
                if order.status != Status.UPLOADED:
                    raise InvalidTransition(f"Order {order_id} cannot go back to uploaded.")
                return None

            return self._apply(order_id, mutate, None)
        raise InvalidTransition(
            f"Status '{target}' is reached through payment or result upload, not set directly."
        )

    # --- side mutations ---

    def set_rating(self, order_id: str, identity: str, rating: int, feedback: str | None = None) -> Outcome:
        if feedback is not None and len(feedback) > MAX_FEEDBACK_LENGTH:
            raise ValidationError(f"Feedback must be at most {MAX_FEEDBACK_LENGTH} characters.")
        value = clamp_rating(rating)

        def mutate(order: Order):
            if order.owner_identity != identity:
                raise Forbidden("Only the order owner may rate this order.")
            if order.status not in (Status.READY, Status.DELIVERED):
                raise InvalidState(f"Order {order_id} cannot be rated while {order.status}.")
            order.rating = value
            if feedback is not None:
                order.feedback = feedback
            return order

        return self._apply(order_id, mutate, None)

    def purge(self, order_id: str) -> Order:
        return self.store.delete(order_id)

    # --- helpers ---

    def _apply(self, order_id: str, mutate, event: str | None) -> Outcome:
        seen = {}

        def tracked(order: Order):
            seen["from"] = order.status
            result = mutate(order)
            seen["written"] = result is not None
            return result

        # notifications run after update() returns, outside the row lock
        order = self.store.update(order_id, tracked)
        outcome = Outcome(order, seen.get("written", False))
        if outcome.changed:
            logger.info("order %s: %s -> %s", order_id, seen["from"], order.status)
            if event:
                outcome.notified = self._notify(order, event)
        else:
            logger.info("order %s: no change (%s)", order_id, order.status)
        return outcome

    def _notify(self, order: Order, event: str) -> Optional[bool]:
        if self.notifier is None:
            return None
        return self.notifier(order, event)
