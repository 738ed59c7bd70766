"""Payment reconciliation.

Provider confirmations arrive asynchronously, may be redelivered, and may
come out of order. Every one of them funnels into ``reconcile``, which only
ever calls the lifecycle's ``confirm_payment``: interim statuses are dropped,
repeated approvals are no-ops, and a stale non-approved event can never undo
an approval because nothing here moves a payment backwards.

Events that cannot be tied to an order are logged and acknowledged; they are
never reported back to the provider as errors, which would only make it
redeliver them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from orders.exceptions import (
    InvalidState,
    NotFound,
    TerminalState,
    UpstreamUnavailable,
    ValidationError,
)
from orders.lifecycle import LifecycleManager
from orders.models import Order
from .providers import PaymentIntent, PaymentProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """What happened to one confirmation.

    ``reconciled`` is True only when the order was changed by this event.
    """

    reason: str
    reconciled: bool = False
    order: Optional[Order] = None
    notified: Optional[bool] = None


class PaymentCoordinator:
    def __init__(
        self,
        lifecycle: LifecycleManager | None = None,
        registry: Callable[[str], PaymentProvider] = get_provider,
    ):
        self.lifecycle = lifecycle or LifecycleManager()
        self.registry = registry

    # --- outbound ---

    def create_intent(self, provider_id: str, order_id: str, amount, currency: str) -> PaymentIntent:
        provider = self.registry(provider_id)
        order = self.lifecycle.store.get(order_id)
        if order.status == Order.Status.REJECTED:
            raise TerminalState(f"Order {order_id} was rejected.")
        if order.payment_status == Order.PaymentStatus.APPROVED:
            raise InvalidState(f"Order {order_id} is already paid.")
        intent = provider.create_intent(order_id, amount, currency)
        logger.info("intent %s:%s created for order %s", provider_id, intent.reference, order_id)
        return intent

    def capture(self, provider_id: str, reference: str, order_id: str | None = None) -> ReconcileResult:
        """Capture/verify ``reference`` with the provider, then reconcile it.

        Provider failures surface to the caller as ``UpstreamUnavailable``.
        """
        provider = self.registry(provider_id)
        notification = provider.capture_or_verify(reference)
        if order_id and notification.order_ref and notification.order_ref != order_id:
            raise ValidationError(
                f"Payment {reference} belongs to order {notification.order_ref}, not {order_id}."
            )
        return self.reconcile(
            provider_id,
            notification.external_payment_id,
            notification.order_ref or order_id,
            notification.raw_status,
            provider=provider,
        )

    # --- inbound ---

    def handle_notification(self, provider_id: str, payload: Dict[str, Any]) -> ReconcileResult:
        """Process a webhook body. Never raises for unusable events."""
        try:
            provider = self.registry(provider_id)
            notification = provider.parse_notification(payload or {})
        except NotFound:
            logger.warning("unreconciled event: unknown provider '%s'", provider_id)
            return ReconcileResult("unknown_provider")
        except UpstreamUnavailable as exc:
            logger.error("unreconciled %s event, verification failed: %s", provider_id, exc)
            return ReconcileResult("verification_failed")
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("unreconciled %s event, malformed payload: %s", provider_id, exc)
            return ReconcileResult("malformed")

        if notification is None:
            logger.info("ignored %s event without a payment: %s", provider_id, _summary(payload))
            return ReconcileResult("ignored")
        return self.reconcile(
            provider_id,
            notification.external_payment_id,
            notification.order_ref,
            notification.raw_status,
            provider=provider,
        )

    def reconcile(
        self,
        provider_id: str,
        external_payment_id: str,
        order_id: str | None,
        raw_status: str,
        provider: PaymentProvider | None = None,
    ) -> ReconcileResult:
        """Merge one confirmation into the order; idempotent per order."""
        if provider is None:
            try:
                provider = self.registry(provider_id)
            except NotFound:
                logger.warning("unreconciled event: unknown provider '%s'", provider_id)
                return ReconcileResult("unknown_provider")

        if not provider.is_approved(raw_status):
            logger.info(
                "discarded %s status '%s' for payment %s (order %s)",
                provider_id, raw_status, external_payment_id, order_id,
            )
            return ReconcileResult("not_approved")

        if not order_id:
            logger.warning(
                "unreconciled %s payment %s: no order reference", provider_id, external_payment_id
            )
            return ReconcileResult("unknown_order")

        try:
            outcome = self.lifecycle.confirm_payment(order_id, provider_id, external_payment_id)
        except NotFound:
            logger.warning(
                "unreconciled %s payment %s: order %s not found",
                provider_id, external_payment_id, order_id,
            )
            return ReconcileResult("unknown_order")
        except TerminalState:
            logger.error(
                "unreconciled %s payment %s: order %s is rejected",
                provider_id, external_payment_id, order_id,
            )
            return ReconcileResult("terminal")

        if not outcome.changed:
            logger.info(
                "duplicate %s confirmation %s for order %s",
                provider_id, external_payment_id, order_id,
            )
            return ReconcileResult("duplicate", order=outcome.order)
        logger.info(
            "order %s paid via %s:%s", order_id, provider_id, external_payment_id
        )
        return ReconcileResult("paid", True, outcome.order, outcome.notified)


def _summary(payload) -> str:
    if not isinstance(payload, dict):
        return type(payload).__name__
    keys = ("type", "topic", "action", "event_type", "resource_type")
    return ", ".join(f"{k}={payload[k]}" for k in keys if k in payload) or "no type"
