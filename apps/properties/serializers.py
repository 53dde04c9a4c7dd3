"""Serializers for the properties domain."""

from __future__ import annotations

from datetime import timedelta

from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import DateSlot, PricingRule, Property
from .slots import horizon_end

DEFAULT_AVAILABILITY_WINDOW = 30


class DateSlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = DateSlot
        fields = ["date", "status", "price"]
        read_only_fields = fields


class OwnerDateSlotSerializer(serializers.ModelSerializer):
    """Owner view of a day, including who holds it"""

    class Meta:
        model = DateSlot
        fields = ["date", "status", "price", "source", "booking", "note"]
        read_only_fields = fields


class AvailabilityQuerySerializer(serializers.Serializer):
    """Query string of the availability endpoint (``from`` / ``to``)"""

    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def to_internal_value(self, data):  # type: ignore
        data = {
            "start": data.get("from") or data.get("start"),
            "end": data.get("to") or data.get("end"),
        }
        return super().to_internal_value({key: value for key, value in data.items() if value})

    def validate(self, attrs):  # type: ignore
        today = timezone.localdate()
        start = attrs.get("start") or today
        end = attrs.get("end") or start + timedelta(days=DEFAULT_AVAILABILITY_WINDOW)
        if start >= end:
            raise serializers.ValidationError("'to' must be after 'from'.")
        # Only today..horizon is ever materialised.
        attrs["start"] = max(start, today)
        attrs["end"] = min(end, horizon_end(today))
        return attrs


class StayRangeSerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["start"] >= attrs["end"]:
            raise serializers.ValidationError("End date must be after start date.")
        return attrs


class PriceQuoteRequestSerializer(StayRangeSerializer):
    guests = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):  # type: ignore
        attrs = super().validate(attrs)
        if attrs["start"] < timezone.localdate():
            raise serializers.ValidationError({"start": "Check-in cannot be in the past."})
        if attrs["end"] > horizon_end():
            raise serializers.ValidationError({"end": "Dates are beyond the bookable horizon."})
        property_obj: Property | None = self.context.get("property")
        if property_obj is None:
            return attrs
        nights = (attrs["end"] - attrs["start"]).days
        if nights < property_obj.min_nights or nights > property_obj.max_nights:
            raise serializers.ValidationError(
                f"Stays must be between {property_obj.min_nights} and {property_obj.max_nights} nights."
            )
        if attrs["guests"] > property_obj.capacity:
            raise serializers.ValidationError(
                {"guests": f"This property accepts at most {property_obj.capacity} guests."}
            )
        return attrs


class BlockRequestSerializer(StayRangeSerializer):
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class PricingRuleSerializer(serializers.ModelSerializer):
    class Meta:
        model = PricingRule
        fields = [
            "id",
            "kind",
            "start_date",
            "end_date",
            "value",
            "priority",
            "is_active",
            "min_rate",
            "max_rate",
            "description",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def _current(self, attrs, name):  # type: ignore
        if name in attrs:
            return attrs[name]
        return getattr(self.instance, name, None)

    def validate(self, attrs):  # type: ignore
        start = self._current(attrs, "start_date")
        end = self._current(attrs, "end_date")
        if start and end and start >= end:
            raise serializers.ValidationError("End date must be after start date.")
        min_rate = self._current(attrs, "min_rate")
        max_rate = self._current(attrs, "max_rate")
        if min_rate is not None and max_rate is not None and min_rate > max_rate:
            raise serializers.ValidationError({"max_rate": "Maximum rate cannot be below the minimum rate."})
        kind = self._current(attrs, "kind")
        value = self._current(attrs, "value")
        if value is not None and value < 0:
            raise serializers.ValidationError({"value": "Value cannot be negative."})
        if kind == PricingRule.Kind.DISCOUNT_PERCENT and value is not None and value > 100:
            raise serializers.ValidationError({"value": "A discount cannot exceed 100%."})
        return attrs
