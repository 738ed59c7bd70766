"""Payment provider contract.

An adapter knows how to talk to one provider: open a payable intent for an
order, capture or verify it, and turn the provider's webhook payload into a
``PaymentNotification``. The coordinator only ever sees this interface.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import requests
from django.conf import settings

from orders.exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    provider: str
    reference: str
    approval_url: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True)
class PaymentNotification:
    provider: str
    external_payment_id: str
    order_ref: Optional[str]
    raw_status: str


def format_amount(amount) -> str:
    return str(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class PaymentProvider(ABC):
    provider_id: str = ""
    # lower-case provider statuses that mean the money is secured
    approved_statuses: frozenset = frozenset()

    def __init__(self, session: requests.Session | None = None, timeout: int | None = None):
        self.session = session or requests.Session()
        self.timeout = settings.PAYMENTS_HTTP_TIMEOUT if timeout is None else timeout

    @abstractmethod
    def create_intent(self, order_ref: str, amount, currency: str) -> PaymentIntent:
        """Create a payable intent and return where the customer approves it."""

    @abstractmethod
    def capture_or_verify(self, reference: str) -> PaymentNotification:
        """Capture (or look up) ``reference`` and report its final status."""

    @abstractmethod
    def parse_notification(self, payload: Dict[str, Any]) -> Optional[PaymentNotification]:
        """Translate a webhook payload; ``None`` if it carries no payment."""

    def is_approved(self, raw_status: str) -> bool:
        return (raw_status or "").strip().lower() in self.approved_statuses

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s %s failed: %s", self.provider_id, method, url, exc)
            raise UpstreamUnavailable(f"{self.provider_id} is unreachable.") from exc

        logger.debug("%s response: %s %s", self.provider_id, resp.status_code, resp.text)
        if resp.status_code >= 400:
            logger.error(
                "%s %s %s returned %s: %s",
                self.provider_id, method, url, resp.status_code, resp.text[:500],
            )
            raise UpstreamUnavailable(f"{self.provider_id} returned HTTP {resp.status_code}.")
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamUnavailable(f"{self.provider_id} returned a non-JSON response.") from exc
