"""Order store.

Keyed persistence of Order records on top of the Django ORM. Each write is a
single database transaction; ``update`` holds a row lock for the duration of
load-transform-persist and additionally compares the record ``version`` when
writing back, so a concurrent writer on a backend without row locks is
detected as a ``Conflict`` instead of being silently merged.
"""

import copy
import logging
import time
from datetime import timedelta
from typing import Callable, Iterable, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import Conflict, DuplicateKey, NotFound
from .models import Order

logger = logging.getLogger(__name__)

# Fields a mutator may change. Everything else is fixed at creation.
MUTABLE_FIELDS = (
    "status",
    "payment_provider",
    "external_payment_id",
    "payment_status",
    "result_file",
    "rating",
    "feedback",
)

Mutator = Callable[[Order], Optional[Order]]


def next_timestamp(previous=None):
    """Return ``now``, nudged forward so it is strictly after ``previous``."""
    now = timezone.now()
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


class OrderStore:
    """Durable keyed collection of orders with atomic read-modify-write."""

    def __init__(self, retries: int | None = None, backoff: float | None = None):
        self.retries = settings.ORDERS_CONFLICT_RETRIES if retries is None else retries
        self.backoff = (
            settings.ORDERS_CONFLICT_BACKOFF_SECONDS if backoff is None else backoff
        )

    # --- create / read ---

    def create(self, order: Order) -> Order:
        """Insert a new order; ``DuplicateKey`` if its ``order_id`` is taken."""
        now = next_timestamp()
        order.created_at = order.created_at or now
        order.updated_at = order.updated_at or order.created_at
        order.version = 0
        try:
            with transaction.atomic():
                order.save(force_insert=True)
        except IntegrityError as exc:
            raise DuplicateKey(f"Order {order.order_id} already exists.") from exc
        logger.info("order created: %s owner=%s", order.order_id, order.owner_identity)
        return order

    def get(self, order_id: str) -> Order:
        try:
            return Order.objects.get(order_id=order_id)
        except Order.DoesNotExist:
            raise NotFound(f"Order {order_id} not found.")

    def list(
        self,
        owner: str | None = None,
        status: str | None = None,
        ordering: Iterable[str] = ("-created_at", "-id"),
    ):
        """Return a re-iterable queryset of matching orders, newest first."""
        qs = Order.objects.all()
        if owner is not None:
            qs = qs.filter(owner_identity=owner)
        if status is not None:
            qs = qs.filter(status=status)
        return qs.order_by(*ordering)

    # --- write ---

    def update(self, order_id: str, mutator: Mutator) -> Order:
        """Apply ``mutator`` to the current record and persist it atomically.

        The mutator receives a private copy of the record and returns the new
        record, or ``None`` to leave the stored record untouched. A detected
        concurrent write is retried ``self.retries`` times before ``Conflict``
        reaches the caller.
        """
        attempt = 0
        while True:
            try:
                return self._update_once(order_id, mutator)
            except Conflict:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning(
                    "conflict on order %s, retry %s/%s", order_id, attempt, self.retries
                )
                time.sleep(self.backoff * attempt)

    def _update_once(self, order_id: str, mutator: Mutator) -> Order:
        with transaction.atomic():
            current = self._get_locked(order_id)
            draft = mutator(copy.deepcopy(current))
            if draft is None:
                return current

            values = {name: getattr(draft, name) for name in MUTABLE_FIELDS}
            values["version"] = current.version + 1
            values["updated_at"] = next_timestamp(current.updated_at)
            written = Order.objects.filter(pk=current.pk, version=current.version).update(
                **values
            )
            if written != 1:
                raise Conflict(f"Order {order_id} changed while it was being updated.")

        saved = copy.deepcopy(current)
        for name, value in values.items():
            setattr(saved, name, value)
        return saved

    def delete(self, order_id: str) -> Order:
        """Remove the order and return the snapshot it had before deletion."""
        with transaction.atomic():
            current = self._get_locked(order_id)
            snapshot = copy.deepcopy(current)
            current.delete()
        logger.info("order deleted: %s", order_id)
        return snapshot

    def _get_locked(self, order_id: str) -> Order:
        try:
            return Order.objects.select_for_update().get(order_id=order_id)
        except Order.DoesNotExist:
            raise NotFound(f"Order {order_id} not found.")
