"""Admin registrations for external calendars."""

from __future__ import annotations

from django.contrib import admin

from .models import CalendarConflict, ExternalCalendarEvent, ExternalCalendarLink


class ExternalCalendarEventInline(admin.TabularInline):
    model = ExternalCalendarEvent
    extra = 0
    fields = ("uid", "start_date", "end_date", "summary")
    readonly_fields = fields


@admin.register(ExternalCalendarLink)
class ExternalCalendarLinkAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "property",
        "direction",
        "conflict_policy",
        "status",
        "failure_count",
        "last_synced_at",
        "next_sync_at",
    )
    list_filter = ("direction", "conflict_policy", "status")
    search_fields = ("name", "url", "property__title")
    readonly_fields = ("export_token", "last_synced_at", "last_error", "failure_count", "created_at", "updated_at")
    inlines = (ExternalCalendarEventInline,)


@admin.register(CalendarConflict)
class CalendarConflictAdmin(admin.ModelAdmin):
    list_display = ("link", "booking", "uid", "start_date", "end_date", "policy", "resolved")
    list_filter = ("policy", "resolved")
    search_fields = ("uid", "booking__booking_code")
