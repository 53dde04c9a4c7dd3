"""
Conflict Detector

Read-only answers to "is anything already holding these nights?". All
range logic uses the half-open form: a stay checking out on a day does not
collide with one checking in on that same day.
"""

from __future__ import annotations

from datetime import date

from django.db.models import Q  # type: ignore

from apps.properties.models import DateSlot
from shared.domain.value_objects import DateRange, collapse_dates

from .models import Booking


def ranges_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """``[start1, end1)`` and ``[start2, end2)`` share at least one night"""
    return start1 < end2 and start2 < end1


def _active_bookings(property_id: int, start: date, end: date, exclude_booking_id: int | None = None):
    queryset = Booking.objects.filter(
        property_id=property_id,
        status__in=Booking.ACTIVE_STATUSES,
    ).filter(Q(check_in__lt=end) & Q(check_out__gt=start))
    if exclude_booking_id is not None:
        queryset = queryset.exclude(pk=exclude_booking_id)
    return queryset


def overlaps(property_id: int, start: date, end: date, exclude_booking_id: int | None = None) -> bool:
    """True when an active booking of the property overlaps ``[start, end)``"""
    return _active_bookings(property_id, start, end, exclude_booking_id).exists()


def blocking_bookings(property_id: int, start: date, end: date) -> list[Booking]:
    return list(_active_bookings(property_id, start, end).order_by("check_in"))


def conflicting_ranges(
    property_id: int,
    start: date,
    end: date,
    exclude_booking_id: int | None = None,
) -> list[DateRange]:
    """
    Ranges inside ``[start, end)`` that cannot be reserved.

    Covers active bookings and every non-available day, clipped to the
    requested window and merged into contiguous runs.
    """
    days: set[date] = set()
    for booking in _active_bookings(property_id, start, end, exclude_booking_id):
        days.update(DateRange(max(booking.check_in, start), min(booking.check_out, end)).nights())
    held = DateSlot.objects.filter(
        property_id=property_id,
        date__gte=start,
        date__lt=end,
    ).exclude(status=DateSlot.Status.AVAILABLE)
    if exclude_booking_id is not None:
        held = held.exclude(booking_id=exclude_booking_id)
    days.update(held.values_list("date", flat=True))
    return collapse_dates(days)
