"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking
from .payments import PaymentResult


class BookingCreateSerializer(serializers.Serializer):
    """Booking request of a guest: ``{propertyId, start, end, guests, idempotencyKey}``."""

    propertyId = serializers.IntegerField(min_value=1)
    start = serializers.DateField()
    end = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, default=1)
    idempotencyKey = serializers.CharField(max_length=100, required=False)

    def validate(self, attrs):  # type: ignore
        if not attrs.get("idempotencyKey"):
            request = self.context.get("request")
            header_key = request.headers.get("Idempotency-Key") if request is not None else None
            if not header_key:
                raise serializers.ValidationError(
                    {"idempotencyKey": "Provide idempotencyKey or the Idempotency-Key header."}
                )
            attrs["idempotencyKey"] = header_key[:100]
        return attrs


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    guest_id = serializers.ReadOnlyField(source="guest.id")
    property_id = serializers.ReadOnlyField(source="property.id")
    property_title = serializers.ReadOnlyField(source="property.title")
    nights = serializers.ReadOnlyField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "guest_id",
            "property_id",
            "property_title",
            "check_in",
            "check_out",
            "nights",
            "guests_count",
            "status",
            "price_breakdown",
            "total_price",
            "currency",
            "payment_reference",
            "expires_at",
            "confirmed_at",
            "checked_in_at",
            "completed_at",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class PaymentCallbackSerializer(serializers.Serializer):
    """Payment gateway callback: ``{bookingId, result: paid|failed, reference}``."""

    bookingId = serializers.IntegerField(min_value=1)
    result = serializers.ChoiceField(choices=PaymentResult.OUTCOMES)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def to_payment_result(self) -> PaymentResult:
        data = self.validated_data
        return PaymentResult(
            booking_id=data["bookingId"],
            outcome=data["result"],
            reference=data["reference"],
            reason=data["reason"],
        )
