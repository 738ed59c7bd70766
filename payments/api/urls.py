from django.urls import path

from .views import PaymentCaptureAPIView, PaymentIntentAPIView, PaymentWebhookAPIView

urlpatterns = [
    path("<str:provider>/intent/", PaymentIntentAPIView.as_view(), name="payment-intent"),
    path("<str:provider>/capture/", PaymentCaptureAPIView.as_view(), name="payment-capture"),
    path("<str:provider>/webhook/", PaymentWebhookAPIView.as_view(), name="payment-webhook"),
]
