from django.urls import path

from .views import (
    AdminOrderListAPIView,
    ConfirmDeliveryAPIView,
    MyOrderListAPIView,
    OrderDetailAPIView,
    OrderFileDownloadAPIView,
    OrderRatingAPIView,
    OrderStatusAPIView,
    OrderUploadAPIView,
    ResultUploadAPIView,
)

urlpatterns = [
    path("upload/", OrderUploadAPIView.as_view(), name="order-upload"),
    path("orders/", AdminOrderListAPIView.as_view(), name="order-list"),
    path("my-orders/", MyOrderListAPIView.as_view(), name="my-orders"),
    path("orders/<str:order_id>/", OrderDetailAPIView.as_view(), name="order-detail"),
    path("orders/<str:order_id>/status/", OrderStatusAPIView.as_view(), name="order-status"),
    path("orders/<str:order_id>/upload-mod/", ResultUploadAPIView.as_view(), name="order-upload-mod"),
    path(
        "orders/<str:order_id>/confirm-delivery/",
        ConfirmDeliveryAPIView.as_view(),
        name="order-confirm-delivery",
    ),
    path("orders/<str:order_id>/rating/", OrderRatingAPIView.as_view(), name="order-rating"),
    path(
        "orders/<str:order_id>/download/<str:kind>/",
        OrderFileDownloadAPIView.as_view(),
        name="order-download",
    ),
]
