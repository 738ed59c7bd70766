from django.urls import path

from .views import BaseInfoAPIView, HealthAPIView

urlpatterns = [
    path("ok/", HealthAPIView.as_view(), name="health"),
    path("base-info/", BaseInfoAPIView.as_view(), name="base-info"),
]
