"""Mercado Pago adapter (Checkout Pro).

Intents are checkout preferences carrying the order id as
``external_reference``. Webhooks only name a payment id, so every
notification is verified against ``/v1/payments/{id}``.
"""

from typing import Any, Dict, Optional

from django.conf import settings

from orders.exceptions import UpstreamUnavailable
from .base import PaymentIntent, PaymentNotification, PaymentProvider


class MercadoPagoProvider(PaymentProvider):
    provider_id = "mercadopago"
    approved_statuses = frozenset({"approved"})

    def __init__(self, access_token=None, api_base=None, **kwargs):
        super().__init__(**kwargs)
        self.access_token = (
            access_token if access_token is not None else settings.MERCADOPAGO_ACCESS_TOKEN
        )
        self.api_base = (api_base or settings.MERCADOPAGO_API_BASE).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        if not self.access_token:
            raise UpstreamUnavailable("Mercado Pago is not configured.")
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def create_intent(self, order_ref: str, amount, currency: str) -> PaymentIntent:
        body = {
            "items": [
                {
                    "title": f"Order {order_ref}",
                    "quantity": 1,
                    "unit_price": float(amount),
                    "currency_id": currency.upper(),
                }
            ],
            "external_reference": order_ref,
            "back_urls": {
                "success": settings.PAYMENTS_RETURN_URL,
                "pending": settings.PAYMENTS_RETURN_URL,
                "failure": settings.PAYMENTS_RETURN_URL,
            },
        }
        if settings.PAYMENTS_NOTIFICATION_BASE_URL:
            body["notification_url"] = (
                settings.PAYMENTS_NOTIFICATION_BASE_URL.rstrip("/")
                + f"/api/payments/{self.provider_id}/webhook/"
            )
        data = self._request(
            "POST", f"{self.api_base}/checkout/preferences", json=body, headers=self._headers()
        )
        approval = data.get("init_point") or data.get("sandbox_init_point") or ""
        return PaymentIntent(self.provider_id, str(data["id"]), approval, data)

    def capture_or_verify(self, reference: str) -> PaymentNotification:
        data = self._request(
            "GET", f"{self.api_base}/v1/payments/{reference}", headers=self._headers()
        )
        return PaymentNotification(
            provider=self.provider_id,
            external_payment_id=str(data.get("id") or reference),
            order_ref=data.get("external_reference") or None,
            raw_status=data.get("status") or "",
        )

    def parse_notification(self, payload: Dict[str, Any]) -> Optional[PaymentNotification]:
        kind = payload.get("type") or payload.get("topic") or ""
        if not kind and str(payload.get("action", "")).startswith("payment."):
            kind = "payment"
        if kind != "payment":
            return None
        data = payload.get("data")
        payment_id = (
            (data.get("id") if isinstance(data, dict) else None)
            or payload.get("data.id")
            or payload.get("id")
        )
        if not payment_id:
            return None
        return self.capture_or_verify(str(payment_id))
