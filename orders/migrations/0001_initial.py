import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("order_id", models.CharField(editable=False, max_length=64, unique=True)),
                ("owner_identity", models.CharField(db_index=True, max_length=254)),
                ("vehicle_meta", models.JSONField(blank=True, default=dict)),
                ("requested_options", models.JSONField(blank=True, default=list)),
                ("comments", models.TextField(blank=True, default="")),
                ("original_file", models.JSONField(blank=True, default=dict)),
                ("result_file", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("uploaded", "uploaded"),
                            ("paid", "paid"),
                            ("ready", "ready"),
                            ("delivered", "delivered"),
                            ("rejected", "rejected"),
                        ],
                        default="uploaded",
                        max_length=20,
                    ),
                ),
                (
                    "payment_provider",
                    models.CharField(
                        choices=[
                            ("none", "none"),
                            ("paypal", "paypal"),
                            ("mercadopago", "mercadopago"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                ("external_payment_id", models.CharField(blank=True, default="", max_length=128)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("unpaid", "unpaid"), ("approved", "approved")],
                        default="unpaid",
                        max_length=20,
                    ),
                ),
                (
                    "rating",
                    models.PositiveSmallIntegerField(
                        default=0,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                ("feedback", models.TextField(blank=True, default="", max_length=2000)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "ordering": ("-created_at", "-id"),
            },
        ),
    ]
