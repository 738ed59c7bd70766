from django.db.models import Avg
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.models import Order


class HealthAPIView(APIView):
    """GET /api/ok/ -> liveness probe for the hosting platform."""

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"ok": True, "msg": "API ready"}, status=status.HTTP_200_OK)


class BaseInfoAPIView(APIView):
    """
    GET /api/base-info/

    Returns public aggregate statistics:
    - order_count: total number of orders
    - delivered_count: number of delivered orders
    - average_rating: average of non-zero ratings (rounded to 1 decimal)
    - rating_count: number of rated orders

    Authentication: none
    Permissions: AllowAny
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        """
        Compute and return the aggregate counters. If no order is rated,
        average_rating is 0.0 (not null).
        """
        rated = Order.objects.filter(rating__gt=0)
        avg = rated.aggregate(avg=Avg("rating"))["avg"] or 0.0
        data = {
            "order_count": Order.objects.count(),
            "delivered_count": Order.objects.filter(status=Order.Status.DELIVERED).count(),
            "average_rating": round(float(avg), 1),
            "rating_count": rated.count(),
        }
        return Response(data, status=status.HTTP_200_OK)
