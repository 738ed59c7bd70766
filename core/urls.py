"""Root URL configuration.

All API routes live under /api/; uploaded artifacts are served from MEDIA_URL
while DEBUG is on.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("common.api.urls")),
    path("api/", include("orders.api.urls")),
    path("api/payments/", include("payments.api.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
