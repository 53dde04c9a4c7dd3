"""iCalendar parsing and rendering."""

from datetime import date, timedelta

import pytest
from django.utils import timezone

from apps.bookings import services
from apps.calendars import ics
from apps.calendars.exceptions import LinkMalformed
from shared.testing import ical_feed


def test_all_day_events_are_half_open():
    payload = ical_feed(("abc@host", date(2030, 3, 1), date(2030, 3, 4), "Blocked"))

    [event] = ics.parse_feed(payload)

    assert (event.uid, event.start, event.end, event.summary) == ("abc@host", date(2030, 3, 1), date(2030, 3, 4), "Blocked")
    assert len(event.date_range) == 3


def test_cancelled_events_are_skipped():
    payload = ical_feed(
        ("keep", date(2030, 3, 1), date(2030, 3, 2)),
        ("drop", date(2030, 3, 5), date(2030, 3, 6)),
        status={"drop": "CANCELLED"},
    )

    assert [event.uid for event in ics.parse_feed(payload)] == ["keep"]


def test_timed_end_keeps_the_last_day_occupied():
    payload = (
        b"BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//x//y//EN\r\n"
        b"BEGIN:VEVENT\r\nUID:timed\r\nDTSTAMP:20240101T000000Z\r\n"
        b"DTSTART:20300301T150000\r\nDTEND:20300303T110000\r\nEND:VEVENT\r\n"
        b"BEGIN:VEVENT\r\nUID:single\r\nDTSTAMP:20240101T000000Z\r\n"
        b"DTSTART;VALUE=DATE:20300310\r\nEND:VEVENT\r\n"
        b"END:VCALENDAR\r\n"
    )

    events = {event.uid: event for event in ics.parse_feed(payload)}

    assert (events["timed"].start, events["timed"].end) == (date(2030, 3, 1), date(2030, 3, 4))
    assert (events["single"].start, events["single"].end) == (date(2030, 3, 10), date(2030, 3, 11))


def test_events_without_uid_get_a_stable_one():
    payload = (
        b"BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//x//y//EN\r\n"
        b"BEGIN:VEVENT\r\nDTSTAMP:20240101T000000Z\r\n"
        b"DTSTART;VALUE=DATE:20300301\r\nDTEND;VALUE=DATE:20300302\r\nSUMMARY:Owner stay\r\nEND:VEVENT\r\n"
        b"END:VCALENDAR\r\n"
    )

    first = ics.parse_feed(payload)
    second = ics.parse_feed(payload)

    assert first[0].uid.startswith("generated-")
    assert first[0].uid == second[0].uid


def test_garbage_is_rejected():
    with pytest.raises(LinkMalformed):
        ics.parse_feed(b"<html>not a calendar</html>")


@pytest.mark.django_db
def test_export_round_trips_through_the_parser(listing, guest):
    check_in = timezone.localdate() + timedelta(days=12)
    booking = services.create_booking(
        property_id=listing.id,
        guest=guest,
        check_in=check_in,
        check_out=check_in + timedelta(days=3),
        guests_count=1,
        idempotency_key="export-me",
    )

    [event] = ics.parse_feed(ics.serialize_feed(listing, [booking]))

    assert event.uid == ics.booking_uid(booking)
    assert (event.start, event.end) == (booking.check_in, booking.check_out)
    assert guest.email.encode() not in ics.serialize_feed(listing, [booking])
