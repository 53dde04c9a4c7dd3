"""DateSlot store.

Read/write contract over the per-property, per-day availability rows.
Rows are materialised lazily inside a rolling horizon. All status changes
are conditional updates keyed on the expected prior status, so a writer
that lost a race sees fewer updated rows than it asked for instead of
overwriting someone else's hold.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from django.conf import settings  # type: ignore
from django.db import NotSupportedError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.value_objects import DateRange, collapse_dates

from .models import DateSlot, Property
from .pricing import nightly_rates

logger = logging.getLogger(__name__)

Status = DateSlot.Status


def horizon_end(today: date | None = None) -> date:
    """First day past the bookable window"""
    today = today or timezone.localdate()
    return today + timedelta(days=settings.BOOKINGS["AVAILABILITY_HORIZON_DAYS"])


def materialize(property_obj: Property, start: date, end: date) -> int:
    """Create missing rows for [start, end). Returns the number created."""
    if start >= end:
        return 0
    existing = set(
        DateSlot.objects.filter(property=property_obj, date__gte=start, date__lt=end)
        .values_list("date", flat=True)
    )
    missing = [night for night in DateRange(start, end).nights() if night not in existing]
    if not missing:
        return 0
    rates = {rate.night: rate.rate for rate in nightly_rates(property_obj, min(missing), max(missing) + timedelta(days=1))}
    DateSlot.objects.bulk_create(
        [
            DateSlot(
                property=property_obj,
                date=night,
                status=Status.AVAILABLE,
                price=rates.get(night),
                source=DateSlot.SOURCE_RULE,
            )
            for night in missing
        ],
        ignore_conflicts=True,
    )
    return len(missing)


def lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def lock_property(property_id: int) -> Property:
    """Fetch the property row, holding its lock for the rest of the transaction"""
    return lock_queryset_if_possible(Property.objects.all()).get(pk=property_id)


def slots_between(property_obj: Property, start: date, end: date, *, lock: bool = False):
    """Ordered slots for [start, end), materialising missing days first"""
    materialize(property_obj, start, end)
    queryset = DateSlot.objects.filter(property=property_obj, date__gte=start, date__lt=end).order_by("date")
    if lock:
        queryset = lock_queryset_if_possible(queryset)
    return queryset


def claim(property_obj: Property, start: date, end: date, booking, status: str = Status.PENDING) -> int:
    """
    Move every AVAILABLE day of [start, end) to ``status`` held by ``booking``.

    Returns the number of rows that changed. Anything less than the number
    of nights means another writer holds part of the range; the caller must
    roll back.
    """
    materialize(property_obj, start, end)
    return DateSlot.objects.filter(
        property=property_obj,
        date__gte=start,
        date__lt=end,
        status=Status.AVAILABLE,
    ).update(status=status, booking=booking, source=DateSlot.SOURCE_RULE, note="")


def promote(booking, from_status: str, to_status: str) -> int:
    """Change the status of the days a booking holds (e.g. pending -> booked)"""
    return DateSlot.objects.filter(booking=booking, status=from_status).update(status=to_status)


def release(booking) -> list[date]:
    """Return a booking's days to AVAILABLE. Returns the freed dates."""
    freed = list(DateSlot.objects.filter(booking=booking).values_list("date", flat=True))
    if freed:
        DateSlot.objects.filter(booking=booking).update(
            status=Status.AVAILABLE,
            booking=None,
            source=DateSlot.SOURCE_RULE,
            note="",
        )
    return sorted(freed)


def block(
    property_obj: Property,
    days: Iterable[date],
    *,
    source: str,
    note: str = "",
) -> list[date]:
    """
    Block the given days if they are AVAILABLE.

    Days held by bookings or already blocked are left untouched. Returns
    the days that were actually blocked.
    """
    days = sorted(set(days))
    if not days:
        return []
    for day_range in collapse_dates(days):
        materialize(property_obj, day_range.start_date, day_range.end_date)
    candidates = list(
        DateSlot.objects.filter(property=property_obj, date__in=days, status=Status.AVAILABLE)
        .values_list("date", flat=True)
    )
    if candidates:
        DateSlot.objects.filter(
            property=property_obj,
            date__in=candidates,
            status=Status.AVAILABLE,
        ).update(status=Status.BLOCKED, source=source, note=note[:255])
    return sorted(candidates)


def unblock(property_obj: Property, days: Iterable[date], *, source: str | None = None) -> list[date]:
    """Free BLOCKED days, optionally only those tagged with ``source``"""
    queryset = DateSlot.objects.filter(property=property_obj, date__in=list(days), status=Status.BLOCKED)
    if source is not None:
        queryset = queryset.filter(source=source)
    freed = sorted(queryset.values_list("date", flat=True))
    if freed:
        queryset.update(status=Status.AVAILABLE, source=DateSlot.SOURCE_RULE, note="")
    return freed


def retag(property_obj: Property, old_source: str, new_source: str) -> int:
    """Change the source tag of blocked days (used when a calendar link is removed)"""
    return DateSlot.objects.filter(
        property=property_obj,
        source=old_source,
        status=Status.BLOCKED,
    ).update(source=new_source)


def refresh_prices(property_obj: Property, start: date | None = None, end: date | None = None) -> int:
    """Recompute the effective price of materialised days from today on"""
    today = timezone.localdate()
    start = max(start or today, today)
    queryset = DateSlot.objects.filter(property=property_obj, date__gte=start)
    if end is not None:
        queryset = queryset.filter(date__lt=end)
    dates = list(queryset.order_by("date").values_list("date", flat=True))
    if not dates:
        return 0
    rates = {rate.night: rate.rate for rate in nightly_rates(property_obj, dates[0], dates[-1] + timedelta(days=1))}
    slots = list(queryset)
    for slot in slots:
        slot.price = rates[slot.date]
    DateSlot.objects.bulk_update(slots, ["price"])
    return len(slots)
