"""Payments API serializers."""

from decimal import Decimal

from rest_framework import serializers


class PaymentIntentSerializer(serializers.Serializer):
    """Amount is taken as given; there is no price list to check it against."""

    order_id = serializers.CharField(max_length=64)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.01"))
    currency = serializers.CharField(min_length=3, max_length=3)

    def validate_currency(self, value):
        if not value.isalpha():
            raise serializers.ValidationError("Currency must be a 3-letter code.")
        return value.upper()


class PaymentCaptureSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=64)
    reference = serializers.CharField(max_length=128)
