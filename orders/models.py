"""Orders app models.

Defines the Order model: one customer request spanning the uploaded control
unit file, the payment and the engineer's modified file. Status, payment and
result fields are written only through ``orders.lifecycle``.
"""

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Order(models.Model):
    """A customer's tuning request for a single control-unit file."""

    class Status(models.TextChoices):
        UPLOADED = "uploaded", "uploaded"
        PAID = "paid", "paid"
        READY = "ready", "ready"
        DELIVERED = "delivered", "delivered"
        REJECTED = "rejected", "rejected"

    class Provider(models.TextChoices):
        NONE = "none", "none"
        PAYPAL = "paypal", "paypal"
        MERCADOPAGO = "mercadopago", "mercadopago"

    class PaymentStatus(models.TextChoices):
        UNPAID = "unpaid", "unpaid"
        APPROVED = "approved", "approved"

    order_id = models.CharField(max_length=64, unique=True, editable=False)
    owner_identity = models.CharField(max_length=254, db_index=True)

    vehicle_meta = models.JSONField(default=dict, blank=True)
    requested_options = models.JSONField(default=list, blank=True)
    comments = models.TextField(blank=True, default="")

    # {"name": ..., "url": ..., "size": ...}
    original_file = models.JSONField(default=dict, blank=True)
    result_file = models.JSONField(default=dict, blank=True)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.UPLOADED
    )
    payment_provider = models.CharField(
        max_length=20, choices=Provider.choices, default=Provider.NONE
    )
    external_payment_id = models.CharField(max_length=128, blank=True, default="")
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID
    )

    rating = models.PositiveSmallIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(5)]
    )
    feedback = models.TextField(blank=True, default="", max_length=2000)

    # bumped on every committed write; used for compare-and-swap in the store
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ("-created_at", "-id")

    def __str__(self) -> str:
        """Readable representation for admin and debugging."""
        return f"Order<{self.order_id} {self.status}>"
