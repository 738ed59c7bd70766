"""Orders API serializers.

Input serializers normalise what the upload form sends (flat vehicle fields,
option flags in any of the encodings older front ends used) into the shapes
the lifecycle expects. The output serializer returns a complete order.
"""

import json

from rest_framework import serializers

from orders.lifecycle import LEGACY_STATUS_ALIASES, MAX_COMMENTS_LENGTH, MAX_FEEDBACK_LENGTH
from orders.models import Order

KNOWN_OPTIONS = (
    "dpf_off",
    "egr_off",
    "adblue_off",
    "dtc_off",
    "lambda_off",
    "speed_limiter_off",
    "start_stop_off",
    "stage1",
    "stage2",
    "immo_off",
    "hot_start",
    "pops_bangs",
)

VEHICLE_FIELDS = (
    "brand",
    "model",
    "year",
    "engine",
    "fuel",
    "transmission",
    "ecu",
    "phone",
    "country",
)

TRUE_VALUES = {"1", "true", "yes", "on", "y", "t"}
FALSE_VALUES = {"0", "false", "no", "off", "n", "f", ""}


def parse_flag(value) -> bool:
    """Interpret booleans, numbers and checkbox strings as a flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise serializers.ValidationError(f"'{value}' is not a valid flag value.")


class RequestedOptionsField(serializers.Field):
    """Accepts a list, a ``{name: flag}`` mapping, a JSON string or a comma list."""

    default_error_messages = {
        "unknown": "Unknown option(s): {names}.",
        "invalid": "Options must be a list, an object of flags or a comma separated string.",
    }

    def to_internal_value(self, data):
        if isinstance(data, str):
            text = data.strip()
            if text.startswith("[") or text.startswith("{"):
                try:
                    data = json.loads(text)
                except ValueError:
                    self.fail("invalid")
            else:
                data = [p for p in (s.strip() for s in text.split(",")) if p]

        if isinstance(data, dict):
            names = [name for name, flag in data.items() if parse_flag(flag)]
        elif isinstance(data, (list, tuple)):
            names = [str(name).strip() for name in data]
        else:
            self.fail("invalid")

        names = {n.lower() for n in names if n}
        unknown = names - set(KNOWN_OPTIONS)
        if unknown:
            self.fail("unknown", names=", ".join(sorted(unknown)))
        return sorted(names)

    def to_representation(self, value):
        return list(value or [])


class OrderCreateSerializer(serializers.Serializer):
    """Input for POST /api/upload/ (multipart form)."""

    file = serializers.FileField()
    email = serializers.EmailField(required=False)
    comments = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=MAX_COMMENTS_LENGTH
    )
    requested_options = RequestedOptionsField(required=False)

    def to_internal_value(self, data):
        attrs = super().to_internal_value(data)

        options = set(attrs.get("requested_options") or [])
        # older upload forms send the option list as modsSelected and comments as notes
        legacy_options = data.get("modsSelected")
        if legacy_options not in (None, ""):
            try:
                options.update(RequestedOptionsField().to_internal_value(legacy_options))
            except serializers.ValidationError as exc:
                raise serializers.ValidationError({"modsSelected": exc.detail})
        notes = data.get("notes")
        if notes and not attrs.get("comments"):
            notes = str(notes).strip()
            if len(notes) > MAX_COMMENTS_LENGTH:
                raise serializers.ValidationError(
                    {"notes": f"Ensure this field has no more than {MAX_COMMENTS_LENGTH} characters."}
                )
            attrs["comments"] = notes

        # option checkboxes may also arrive as individual form fields
        for name in KNOWN_OPTIONS:
            if name in data:
                try:
                    flag = parse_flag(data.get(name))
                except serializers.ValidationError as exc:
                    raise serializers.ValidationError({name: exc.detail})
                if flag:
                    options.add(name)
                else:
                    options.discard(name)
        attrs["requested_options"] = sorted(options)

        meta = {}
        for name in VEHICLE_FIELDS:
            value = data.get(name)
            if value not in (None, ""):
                meta[name] = str(value).strip()[:100]
        attrs["vehicle_meta"] = meta
        return attrs


class OrderOutputSerializer(serializers.ModelSerializer):
    """Read serializer for returning a complete order representation."""

    payment = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "order_id",
            "owner_identity",
            "vehicle_meta",
            "requested_options",
            "comments",
            "original_file",
            "result_file",
            "status",
            "payment",
            "rating",
            "feedback",
            "created_at",
            "updated_at",
        ]

    def get_payment(self, obj):
        return {
            "provider": obj.payment_provider,
            "external_payment_id": obj.external_payment_id,
            "payment_status": obj.payment_status,
        }


class OrderStatusSerializer(serializers.Serializer):
    """Admin status change; accepts the legacy names as well."""

    status = serializers.ChoiceField(
        choices=list(Order.Status.values) + list(LEGACY_STATUS_ALIASES)
    )


class ResultUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class RatingSerializer(serializers.Serializer):
    """Rating outside 0..5 is clamped by the lifecycle, not rejected."""

    rating = serializers.IntegerField()
    feedback = serializers.CharField(
        required=False, allow_blank=True, max_length=MAX_FEEDBACK_LENGTH
    )
