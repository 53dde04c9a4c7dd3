"""Factories used by the test-suite."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from itertools import count

from django.utils import timezone

from apps.properties.models import Property
from apps.users.models import User

_sequence = count(1)


def next_weekday(weekday: int, after: date | None = None) -> date:
    """First day with ``weekday`` (0=Mon) strictly after ``after`` (default: a week from today)."""
    day = (after or timezone.localdate() + timedelta(days=7)) + timedelta(days=1)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


def create_user(role: str = User.Role.GUEST, **extra) -> User:
    n = next(_sequence)
    return User.objects.create_user(
        email=extra.pop("email", f"user{n}@example.com"),
        password="StrongPass123",
        role=role,
        **extra,
    )


def create_property(owner: User, **extra) -> Property:
    defaults = {
        "title": "Sea Point apartment",
        "base_price": Decimal("1000.00"),
        "currency": "ZAR",
        "capacity": 4,
        "cleaning_fee": Decimal("0.00"),
        "min_nights": 1,
        "max_nights": 30,
    }
    defaults.update(extra)
    return Property.objects.create(owner=owner, **defaults)


def ical_feed(*events, status: dict | None = None) -> bytes:
    """
    Minimal all-day iCalendar document.

    ``events`` are ``(uid, start, end)`` or ``(uid, start, end, summary)``
    tuples; ``status`` maps a uid to its STATUS value.
    """
    status = status or {}
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Example Host//Calendar//EN"]
    for uid, start, end, *rest in events:
        lines += [
            "BEGIN:VEVENT",
            f"UID:{uid}",
            "DTSTAMP:20240101T000000Z",
            f"DTSTART;VALUE=DATE:{start:%Y%m%d}",
            f"DTEND;VALUE=DATE:{end:%Y%m%d}",
            f"SUMMARY:{rest[0] if rest else 'Reserved'}",
        ]
        if uid in status:
            lines.append(f"STATUS:{status[uid]}")
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")
