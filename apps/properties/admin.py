"""Admin registrations for properties domain."""

from __future__ import annotations

from django.contrib import admin

from .models import DateSlot, PricingRule, Property


class PricingRuleInline(admin.TabularInline):
    model = PricingRule
    extra = 0
    fields = ("kind", "start_date", "end_date", "value", "priority", "description")


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "owner",
        "status",
        "booking_mode",
        "base_price",
        "currency",
        "capacity",
    )
    list_filter = ("status", "booking_mode", "currency")
    search_fields = ("title", "owner__email")
    inlines = (PricingRuleInline,)
    readonly_fields = ("created_at", "updated_at")


@admin.register(DateSlot)
class DateSlotAdmin(admin.ModelAdmin):
    list_display = ("property", "date", "status", "price", "source", "booking")
    list_filter = ("status",)
    search_fields = ("property__title", "source")
    date_hierarchy = "date"
    raw_id_fields = ("property", "booking")
