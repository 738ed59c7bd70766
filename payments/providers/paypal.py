"""PayPal adapter (Orders v2 REST API).

The PayPal order id is the external payment id throughout: it is returned by
``create_intent``, captured by ``capture_or_verify`` and looked up again for
every webhook, so the status that reaches the coordinator always comes from
PayPal itself rather than from the webhook body.
"""

from typing import Any, Dict, Optional

from django.conf import settings

from orders.exceptions import UpstreamUnavailable
from .base import PaymentIntent, PaymentNotification, PaymentProvider, format_amount


class PayPalProvider(PaymentProvider):
    provider_id = "paypal"
    approved_statuses = frozenset({"completed"})

    def __init__(self, client_id=None, client_secret=None, api_base=None, **kwargs):
        super().__init__(**kwargs)
        self.client_id = client_id if client_id is not None else settings.PAYPAL_CLIENT_ID
        self.client_secret = (
            client_secret if client_secret is not None else settings.PAYPAL_CLIENT_SECRET
        )
        self.api_base = (api_base or settings.PAYPAL_API_BASE).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        if not self.client_id or not self.client_secret:
            raise UpstreamUnavailable("PayPal is not configured.")
        data = self._request(
            "POST",
            f"{self.api_base}/v1/oauth2/token",
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
        )
        return {
            "Authorization": f"Bearer {data['access_token']}",
            "Content-Type": "application/json",
        }

    def create_intent(self, order_ref: str, amount, currency: str) -> PaymentIntent:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": order_ref,
                    "custom_id": order_ref,
                    "amount": {"currency_code": currency.upper(), "value": format_amount(amount)},
                }
            ],
            "application_context": {
                "return_url": settings.PAYMENTS_RETURN_URL,
                "cancel_url": settings.PAYMENTS_RETURN_URL,
            },
        }
        data = self._request(
            "POST", f"{self.api_base}/v2/checkout/orders", json=body, headers=self._headers()
        )
        approve = next(
            (
                link.get("href", "")
                for link in data.get("links", [])
                if link.get("rel") in ("approve", "payer-action")
            ),
            "",
        )
        return PaymentIntent(self.provider_id, data["id"], approve, data)

    def capture_or_verify(self, reference: str) -> PaymentNotification:
        headers = self._headers()
        data = self._request(
            "GET", f"{self.api_base}/v2/checkout/orders/{reference}", headers=headers
        )
        # only an approved order can be captured; anything else is reported as is
        if (data.get("status") or "").upper() == "APPROVED":
            data = self._request(
                "POST",
                f"{self.api_base}/v2/checkout/orders/{reference}/capture",
                json={},
                headers=headers,
            )
        return self._notification_from_order(data, reference)

    def parse_notification(self, payload: Dict[str, Any]) -> Optional[PaymentNotification]:
        resource = payload.get("resource") or {}
        resource_type = (payload.get("resource_type") or "").lower()
        if resource_type == "capture":
            related = (resource.get("supplementary_data") or {}).get("related_ids") or {}
            paypal_order_id = related.get("order_id")
        elif resource_type == "checkout-order":
            paypal_order_id = resource.get("id")
        else:
            return None
        if not paypal_order_id:
            return None
        data = self._request(
            "GET", f"{self.api_base}/v2/checkout/orders/{paypal_order_id}", headers=self._headers()
        )
        return self._notification_from_order(data, paypal_order_id)

    def _notification_from_order(self, data: Dict[str, Any], reference: str) -> PaymentNotification:
        units = data.get("purchase_units") or [{}]
        unit = units[0]
        order_ref = unit.get("reference_id") or unit.get("custom_id")
        if not order_ref:
            captures = (unit.get("payments") or {}).get("captures") or []
            order_ref = captures[0].get("custom_id") if captures else None
        return PaymentNotification(
            provider=self.provider_id,
            external_payment_id=data.get("id") or reference,
            order_ref=order_ref,
            raw_status=data.get("status") or "",
        )
