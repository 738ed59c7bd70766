"""Payment provider registry.

Adding a provider means writing one more ``PaymentProvider`` subclass and
listing it here; the coordinator does not change.
"""

from django.conf import settings

from orders.exceptions import NotFound
from .base import PaymentIntent, PaymentNotification, PaymentProvider
from .mercadopago import MercadoPagoProvider
from .paypal import PayPalProvider

PROVIDERS = {
    PayPalProvider.provider_id: PayPalProvider,
    MercadoPagoProvider.provider_id: MercadoPagoProvider,
}


def enabled_providers() -> list[str]:
    return [p for p in settings.PAYMENTS_ENABLED_PROVIDERS if p in PROVIDERS]


def get_provider(provider_id: str) -> PaymentProvider:
    if provider_id not in enabled_providers():
        raise NotFound(f"Unknown payment provider '{provider_id}'.")
    return PROVIDERS[provider_id]()


__all__ = [
    "PaymentIntent",
    "PaymentNotification",
    "PaymentProvider",
    "PayPalProvider",
    "MercadoPagoProvider",
    "enabled_providers",
    "get_provider",
]
