"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "property",
        "guest",
        "status",
        "check_in",
        "check_out",
        "total_price",
        "currency",
        "created_at",
    )
    list_filter = ("status", "cancellation_source", "check_in")
    search_fields = ("booking_code", "property__title", "guest__email", "idempotency_key")
    readonly_fields = (
        "booking_code",
        "idempotency_key",
        "price_breakdown",
        "total_price",
        "currency",
        "created_at",
        "updated_at",
        "confirmed_at",
        "checked_in_at",
        "completed_at",
        "cancelled_at",
    )

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
