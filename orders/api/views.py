"""Orders API views.

Customers upload a file to open an order, follow their own orders, confirm
delivery and rate the result. Administrative endpoints (list all, status
change, result upload, purge) sit behind the admin secret gate and never
require the owner's identity. Every state change goes through the lifecycle
manager; views only translate HTTP into lifecycle calls.
"""

from django.http import FileResponse
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from orders import storage
from orders.exceptions import Forbidden, OrderError
from orders.lifecycle import LifecycleManager, new_order_id
from orders.models import Order
from orders.notifications import notify_order_event
from orders.store import OrderStore
from .authentication import resolve_identity
from .permissions import HasAdminSecret, IsCustomer, is_admin_request
from .serializers import (
    OrderCreateSerializer,
    OrderOutputSerializer,
    OrderStatusSerializer,
    RatingSerializer,
    ResultUploadSerializer,
)


# ----------------------------- helpers (module-level) -----------------------------

def get_lifecycle() -> LifecycleManager:
    return LifecycleManager(OrderStore(), notifier=notify_order_event)


def _order_payload(outcome, **extra):
    data = {"ok": True, "order": OrderOutputSerializer(outcome.order).data}
    if outcome.notified is not None:
        data["notified"] = outcome.notified
    data.update(extra)
    return data


def _owned_or_admin(request, order_id: str) -> Order:
    """Load the order for its owner or for an admin; Forbidden otherwise."""
    if is_admin_request(request):
        return OrderStore().get(order_id)
    identity = resolve_identity(request)
    order = OrderStore().get(order_id)
    if order.owner_identity != identity:
        raise Forbidden("You do not have access to this order.")
    return order


def _list_response(serializer_class, queryset):
    return Response(
        {"ok": True, "orders": serializer_class(queryset, many=True).data},
        status=status.HTTP_200_OK,
    )


# --------------------------------------- views ---------------------------------------

class OrderUploadAPIView(APIView):
    """POST /api/upload/: open an order with the customer's original file."""

    permission_classes = [IsCustomer]
    parser_classes = (MultiPartParser, FormParser)

    def post(self, request, *args, **kwargs):
        identity = resolve_identity(request)
        ser = OrderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        lifecycle = get_lifecycle()
        order_id = new_order_id()
        original = storage.store(order_id, data["file"], fallback_name="original.bin")
        try:
            outcome = lifecycle.create_order(
                owner_identity=identity,
                original_file=original,
                vehicle_meta=data["vehicle_meta"],
                requested_options=data["requested_options"],
                comments=data.get("comments", ""),
                order_id=order_id,
            )
        except OrderError:
            storage.discard(original["stored_name"])
            raise
        return Response(
            _order_payload(
                outcome,
                order_id=outcome.order.order_id,
                download_url=original["url"],
            ),
            status=status.HTTP_201_CREATED,
        )


class AdminOrderListAPIView(generics.ListAPIView):
    """GET /api/orders/: every order, newest first (admin only).

    Optional query parameters: ``status`` and ``owner``.
    """

    permission_classes = [HasAdminSecret]
    serializer_class = OrderOutputSerializer

    def get_queryset(self):
        params = self.request.query_params
        status_value = params.get("status") or None
        if status_value and status_value not in Order.Status.values:
            raise ValidationError({"status": f"Allowed values: {', '.join(Order.Status.values)}."})
        owner = params.get("owner") or None
        return OrderStore().list(owner=owner.strip().lower() if owner else None, status=status_value)

    def list(self, request, *args, **kwargs):
        return _list_response(self.get_serializer_class(), self.get_queryset())


class MyOrderListAPIView(generics.ListAPIView):
    """GET /api/my-orders/: the requesting customer's orders."""

    permission_classes = [IsCustomer]
    serializer_class = OrderOutputSerializer

    def get_queryset(self):
        return OrderStore().list(owner=resolve_identity(self.request))

    def list(self, request, *args, **kwargs):
        return _list_response(self.get_serializer_class(), self.get_queryset())


class OrderDetailAPIView(APIView):
    """GET: order snapshot (owner or admin). DELETE: purge (admin only)."""

    def get_permissions(self):
        if self.request.method == "DELETE":
            return [HasAdminSecret()]
        return []

    def get(self, request, order_id: str):
        order = _owned_or_admin(request, order_id)
        return Response(
            {"ok": True, "order": OrderOutputSerializer(order).data}, status=status.HTTP_200_OK
        )

    def delete(self, request, order_id: str):
        snapshot = get_lifecycle().purge(order_id)
        return Response(
            {"ok": True, "order": OrderOutputSerializer(snapshot).data}, status=status.HTTP_200_OK
        )


class OrderStatusAPIView(APIView):
    """POST /api/orders/{id}/status/: administrative status change."""

    permission_classes = [HasAdminSecret]
    parser_classes = (JSONParser, FormParser, MultiPartParser)

    def post(self, request, order_id: str):
        ser = OrderStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        outcome = get_lifecycle().set_status(order_id, ser.validated_data["status"])
        return Response(_order_payload(outcome), status=status.HTTP_200_OK)


class ResultUploadAPIView(APIView):
    """POST /api/orders/{id}/upload-mod/: store the modified file and mark the order ready.

    This is the administrative override: it does not require a prior payment.
    """

    permission_classes = [HasAdminSecret]
    parser_classes = (MultiPartParser, FormParser)

    def post(self, request, order_id: str):
        ser = ResultUploadSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lifecycle = get_lifecycle()
        previous = (lifecycle.store.get(order_id).result_file or {}).get("stored_name")
        result = storage.store(order_id, ser.validated_data["file"], fallback_name="modified.bin")
        try:
            outcome = lifecycle.attach_result(order_id, result, admin_override=True)
        except OrderError:
            storage.discard(result["stored_name"])
            raise
        if previous and previous != result["stored_name"]:
            storage.discard(previous)
        return Response(_order_payload(outcome), status=status.HTTP_200_OK)


class ConfirmDeliveryAPIView(APIView):
    """POST /api/orders/{id}/confirm-delivery/: ready -> delivered (owner or admin)."""

    def post(self, request, order_id: str):
        lifecycle = get_lifecycle()
        if is_admin_request(request):
            outcome = lifecycle.confirm_delivery(order_id, admin=True)
        else:
            outcome = lifecycle.confirm_delivery(order_id, identity=resolve_identity(request))
        return Response(_order_payload(outcome), status=status.HTTP_200_OK)


class OrderRatingAPIView(APIView):
    """POST /api/orders/{id}/rating/: owner-only rating and feedback."""

    permission_classes = [IsCustomer]

    def post(self, request, order_id: str):
        identity = resolve_identity(request)
        ser = RatingSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        outcome = get_lifecycle().set_rating(
            order_id,
            identity,
            ser.validated_data["rating"],
            ser.validated_data.get("feedback"),
        )
        return Response(_order_payload(outcome), status=status.HTTP_200_OK)


class OrderFileDownloadAPIView(APIView):
    """GET /api/orders/{id}/download/{kind}/: stream the original or result file."""

    FILE_FIELDS = {"original": "original_file", "result": "result_file"}

    def get(self, request, order_id: str, kind: str):
        field = self.FILE_FIELDS.get(kind)
        if field is None:
            raise ValidationError({"kind": "Allowed values: original, result."})
        order = _owned_or_admin(request, order_id)
        ref = getattr(order, field) or {}
        handle = storage.retrieve(ref.get("stored_name", ""))
        return FileResponse(handle, as_attachment=True, filename=ref.get("name") or "file.bin")
