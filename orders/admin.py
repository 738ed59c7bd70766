from django.contrib import admin
from django.utils.html import format_html

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-mostly order browser:
    - list: id, owner, status badge, payment, rating, created
    - filter: status, payment provider, created (date hierarchy)
    - status, payment and result are read-only; they change only through the API
    """
    list_display = (
        "order_id",
        "owner_identity",
        "status_badge",
        "payment_provider",
        "payment_status",
        "rating",
        "created_at",
        "updated_at",
    )
    list_filter = ("status", "payment_provider", "payment_status", "created_at")
    date_hierarchy = "created_at"
    ordering = ("-created_at", "-id")
    search_fields = ("order_id", "owner_identity", "external_payment_id")

    readonly_fields = (
        "order_id",
        "owner_identity",
        "vehicle_meta",
        "requested_options",
        "comments",
        "original_file",
        "result_file",
        "status",
        "payment_provider",
        "external_payment_id",
        "payment_status",
        "rating",
        "feedback",
        "version",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def status_badge(self, obj):
        color = {
            "uploaded": "#9ca3af",
            "paid": "#0ea5e9",
            "ready": "#f59e0b",
            "delivered": "#22c55e",
            "rejected": "#ef4444",
        }.get(obj.status, "#9ca3af")
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:999px;'
            'font-size:12px;font-weight:600;color:#fff;background:{};">{}</span>',
            color,
            obj.status,
        )
    status_badge.short_description = "status"
    status_badge.admin_order_field = "status"
