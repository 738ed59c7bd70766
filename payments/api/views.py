"""Payments API views.

Customers open an intent for their own order and, after approving it at the
provider, ask for it to be captured. Providers post webhooks, which are
always acknowledged with 200 unless the order was being written concurrently.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.api.authentication import resolve_identity
from orders.api.permissions import IsCustomer
from orders.api.serializers import OrderOutputSerializer
from orders.api.views import get_lifecycle
from orders.exceptions import Forbidden
from payments.coordinator import PaymentCoordinator
from .serializers import PaymentCaptureSerializer, PaymentIntentSerializer

logger = logging.getLogger(__name__)


def get_coordinator() -> PaymentCoordinator:
    return PaymentCoordinator(get_lifecycle())


def _require_owner(request, coordinator: PaymentCoordinator, order_id: str) -> None:
    order = coordinator.lifecycle.store.get(order_id)
    if order.owner_identity != resolve_identity(request):
        raise Forbidden("You do not have access to this order.")


class PaymentIntentAPIView(APIView):
    """POST /api/payments/{provider}/intent/ -> approval reference for the customer."""

    permission_classes = [IsCustomer]

    def post(self, request, provider: str):
        ser = PaymentIntentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        coordinator = get_coordinator()
        _require_owner(request, coordinator, data["order_id"])
        intent = coordinator.create_intent(
            provider, data["order_id"], data["amount"], data["currency"]
        )
        return Response(
            {
                "ok": True,
                "provider": intent.provider,
                "reference": intent.reference,
                "approval_url": intent.approval_url,
            },
            status=status.HTTP_201_CREATED,
        )


class PaymentCaptureAPIView(APIView):
    """POST /api/payments/{provider}/capture/ -> capture/verify and reconcile."""

    permission_classes = [IsCustomer]

    def post(self, request, provider: str):
        ser = PaymentCaptureSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        coordinator = get_coordinator()
        _require_owner(request, coordinator, data["order_id"])
        result = coordinator.capture(provider, data["reference"], order_id=data["order_id"])
        order = result.order or coordinator.lifecycle.store.get(data["order_id"])
        body = {
            "ok": True,
            "result": result.reason,
            "reconciled": result.reconciled,
            "order": OrderOutputSerializer(order).data,
        }
        if result.notified is not None:
            body["notified"] = result.notified
        return Response(body, status=status.HTTP_200_OK)


class PaymentWebhookAPIView(APIView):
    """POST /api/payments/{provider}/webhook/: provider notification endpoint."""

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request, provider: str):
        payload = {k: v for k, v in request.query_params.items()}
        try:
            data = request.data
        except ParseError as exc:
            logger.warning("unreconciled %s event, unreadable body: %s", provider, exc)
            return Response(
                {"ok": True, "received": True, "result": "malformed"},
                status=status.HTTP_200_OK,
            )
        if hasattr(data, "dict"):
            data = data.dict()
        if isinstance(data, dict):
            payload.update(data)
        result = get_coordinator().handle_notification(provider, payload)
        return Response(
            {"ok": True, "received": True, "result": result.reason},
            status=status.HTTP_200_OK,
        )
