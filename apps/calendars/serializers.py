"""Serializers for external calendar links."""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.core.validators import URLValidator  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import CalendarConflict, ExternalCalendarLink


class ExternalCalendarLinkSerializer(serializers.ModelSerializer):
    # CharField: webcal:// is accepted and rewritten before URL validation
    url = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    export_url = serializers.SerializerMethodField()

    class Meta:
        model = ExternalCalendarLink
        fields = [
            "id",
            "name",
            "url",
            "direction",
            "conflict_policy",
            "status",
            "last_synced_at",
            "last_error",
            "failure_count",
            "next_sync_at",
            "export_url",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "status",
            "last_synced_at",
            "last_error",
            "failure_count",
            "next_sync_at",
            "export_url",
            "created_at",
        ]

    def get_export_url(self, obj: ExternalCalendarLink) -> str | None:
        if not obj.exports:
            return None
        path = f"/api/v1/properties/{obj.property_id}/calendar.ics?token={obj.export_token}"
        request = self.context.get("request")
        return request.build_absolute_uri(path) if request is not None else path

    def validate_url(self, value: str) -> str:
        if value.startswith("webcal://"):
            value = "https://" + value[len("webcal://"):]
        if not value:
            return value
        if not value.startswith("https://"):
            raise serializers.ValidationError("Calendar feeds must be served over HTTPS.")
        try:
            URLValidator(schemes=["https"])(value)
        except DjangoValidationError:
            raise serializers.ValidationError("Enter a valid URL.") from None
        return value

    def validate(self, attrs):  # type: ignore
        direction = attrs.get("direction", ExternalCalendarLink.Direction.IMPORT)
        if direction in ExternalCalendarLink.IMPORT_DIRECTIONS and not attrs.get("url"):
            raise serializers.ValidationError({"url": "An import link needs the feed URL."})
        return attrs


class CalendarConflictSerializer(serializers.ModelSerializer):
    class Meta:
        model = CalendarConflict
        fields = ["id", "booking", "uid", "start_date", "end_date", "policy", "resolved", "created_at"]
        read_only_fields = fields
