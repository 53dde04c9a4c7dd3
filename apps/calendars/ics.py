"""
iCalendar codec

Parses imported feeds into all-day ranges and renders the export feed.
Events are reduced to half-open date ranges ``[start, end)``: a DTEND on
a date means that day is free again, a DTEND with a time of day keeps
that day occupied.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore
from icalendar import Calendar, Event  # type: ignore

from shared.domain.value_objects import DateRange

from .exceptions import LinkMalformed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportedEvent:
    uid: str
    start: date
    end: date
    summary: str = ""

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start, self.end)


def _as_date(value, *, is_end: bool = False) -> date:
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        day = value.date()
        if is_end and value.time() != datetime.min.time():
            day += timedelta(days=1)
        return day
    if isinstance(value, date):
        return value
    raise ValueError(f"Unsupported date value: {value!r}")


def _fallback_uid(start: date, end: date, summary: str) -> str:
    digest = hashlib.sha1(f"{start}|{end}|{summary}".encode("utf-8")).hexdigest()
    return f"generated-{digest[:20]}"


def _event_range(component) -> tuple[date, date] | None:
    dtstart = component.get("DTSTART")
    if dtstart is None:
        return None
    start = _as_date(dtstart.dt)
    dtend = component.get("DTEND")
    if dtend is not None:
        end = _as_date(dtend.dt, is_end=True)
    elif component.get("DURATION") is not None:
        end = _as_date(dtstart.dt + component.get("DURATION").dt, is_end=True)
    else:
        end = start + timedelta(days=1)
    if end <= start:
        end = start + timedelta(days=1)
    return start, end


def parse_feed(payload: bytes | str) -> list[ImportedEvent]:
    """
    Parse an iCalendar document into imported events.

    Cancelled and undated events are skipped. Raises LinkMalformed when the
    payload is not a VCALENDAR.
    """
    try:
        calendar = Calendar.from_ical(payload)
    except (ValueError, IndexError, KeyError) as exc:
        raise LinkMalformed(f"Invalid iCalendar data: {exc}") from exc
    if getattr(calendar, "name", None) != "VCALENDAR":
        raise LinkMalformed("Feed does not contain a VCALENDAR.")

    events: dict[str, ImportedEvent] = {}
    for component in calendar.walk("VEVENT"):
        if str(component.get("STATUS", "")).upper() == "CANCELLED":
            continue
        try:
            bounds = _event_range(component)
        except ValueError as exc:
            logger.info("Skipping event with unreadable dates: %s", exc)
            continue
        if bounds is None:
            continue
        start, end = bounds
        summary = str(component.get("SUMMARY", ""))[:255]
        uid = str(component.get("UID") or "").strip()[:255] or _fallback_uid(start, end, summary)
        events[uid] = ImportedEvent(uid=uid, start=start, end=end, summary=summary)
    return sorted(events.values(), key=lambda event: (event.start, event.uid))


def booking_uid(booking) -> str:
    return f"booking-{booking.booking_code}@stayline"


def serialize_feed(property_obj, bookings: Iterable) -> bytes:
    """One all-day VEVENT per booking; guest details are never published."""
    calendar = Calendar()
    calendar.add("prodid", settings.CALENDARS["PRODID"])
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("x-wr-calname", property_obj.title)

    stamp = timezone.now()
    for booking in bookings:
        event = Event()
        event.add("uid", booking_uid(booking))
        event.add("dtstamp", stamp)
        event.add("dtstart", booking.check_in)
        event.add("dtend", booking.check_out)
        event.add("summary", "Reserved")
        event.add("status", "CONFIRMED" if booking.slot_status == "booked" else "TENTATIVE")
        calendar.add_component(event)
    return calendar.to_ical()
