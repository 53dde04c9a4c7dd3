"""Filters for booking listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Booking.Status.choices)
    property = django_filters.NumberFilter(field_name="property_id")
    check_in_after = django_filters.DateFilter(field_name="check_in", lookup_expr="gte")
    check_out_before = django_filters.DateFilter(field_name="check_out", lookup_expr="lte")

    class Meta:
        model = Booking
        fields = ["status", "property", "check_in_after", "check_out_before"]
