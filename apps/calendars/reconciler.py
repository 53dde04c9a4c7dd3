"""
External Calendar Reconciler

Keeps the DateSlot calendar in step with imported iCal feeds and renders
the export feed.

Import cycle for one link:
1. fetch and parse the feed outside any transaction
2. under the property lock, diff ``(uid, range)`` against the stored
   events of the link
3. removed events free only days still tagged with the link's source,
   unless another link still imports them; added events block available
   days (``block`` / ``notify`` policies)
4. a day held by a local booking is never touched; the overlap is
   recorded as a CalendarConflict instead

Failures are isolated per link: the link goes to ``error`` with an
exponential retry delay and nothing else changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List

import requests
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from apps.bookings.models import Booking
from apps.properties import slots
from apps.properties.events import AvailabilityChanged
from apps.properties.models import DateSlot, Property
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange, collapse_dates

from . import ics
from .events import CalendarConflictDetected
from .exceptions import CalendarSyncError, LinkMalformed, LinkUnreachable
from .models import CalendarConflict, ExternalCalendarEvent, ExternalCalendarLink

logger = logging.getLogger(__name__)

Policy = ExternalCalendarLink.ConflictPolicy

MAX_FEED_BYTES = 5 * 1024 * 1024


@dataclass
class SyncResult:
    added: int = 0
    removed: int = 0
    blocked_days: int = 0
    freed_days: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            'added': self.added,
            'removed': self.removed,
            'blocked_days': self.blocked_days,
            'freed_days': self.freed_days,
            'conflicts': self.conflicts,
            'errors': list(self.errors),
        }


def _calendar_settings() -> dict:
    return settings.CALENDARS


def backoff_delay(failure_count: int) -> timedelta:
    """BACKOFF_BASE * 2^(n-1) for the n-th consecutive failure, capped"""
    config = _calendar_settings()
    exponent = max(failure_count - 1, 0)
    seconds = min(config['BACKOFF_BASE_SECONDS'] * (2 ** exponent), config['BACKOFF_MAX_SECONDS'])
    return timedelta(seconds=seconds)


def fetch_feed(link: ExternalCalendarLink) -> bytes:
    url = link.url
    if url.startswith('webcal://'):
        url = 'https://' + url[len('webcal://'):]
    try:
        response = requests.get(
            url,
            timeout=_calendar_settings()['FETCH_TIMEOUT_SECONDS'],
            headers={'Accept': 'text/calendar, */*;q=0.5'},
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise LinkUnreachable(f"Could not fetch {link.name}: {exc}") from exc
    content = response.content
    if len(content) > MAX_FEED_BYTES:
        raise LinkMalformed(f"Feed of {link.name} is larger than {MAX_FEED_BYTES} bytes.")
    return content


def _bookable_days(day_range: DateRange) -> list[date]:
    """Days of the range that fall inside today..horizon"""
    start = max(day_range.start_date, timezone.localdate())
    end = min(day_range.end_date, slots.horizon_end())
    if start >= end:
        return []
    return list(DateRange(start, end).nights())


def _mark_failed(link: ExternalCalendarLink, exc: CalendarSyncError) -> None:
    link.failure_count += 1
    link.status = ExternalCalendarLink.Status.ERROR
    link.last_error = str(exc)[:2000]
    link.next_sync_at = timezone.now() + backoff_delay(link.failure_count)
    link.save(update_fields=['failure_count', 'status', 'last_error', 'next_sync_at', 'updated_at'])
    logger.warning(
        "Calendar link %s (%s) failed %s time(s): %s; next attempt at %s",
        link.pk,
        exc.code,
        link.failure_count,
        exc,
        link.next_sync_at.isoformat(),
    )


def _mark_synced(link: ExternalCalendarLink) -> None:
    now = timezone.now()
    link.failure_count = 0
    link.status = ExternalCalendarLink.Status.CONNECTED
    link.last_error = ''
    link.last_synced_at = now
    link.next_sync_at = now + timedelta(minutes=_calendar_settings()['SYNC_INTERVAL_MINUTES'])
    link.save(
        update_fields=['failure_count', 'status', 'last_error', 'last_synced_at', 'next_sync_at', 'updated_at']
    )


def _record_conflicts(
    link: ExternalCalendarLink,
    event: ExternalCalendarEvent,
) -> int:
    overlapping = Booking.objects.filter(
        property_id=link.property_id,
        status__in=Booking.ACTIVE_STATUSES,
    ).filter(Q(check_in__lt=event.end_date) & Q(check_out__gt=event.start_date))
    recorded = 0
    for booking in overlapping:
        conflict, created = CalendarConflict.objects.get_or_create(
            link=link,
            booking=booking,
            uid=event.uid,
            start_date=event.start_date,
            end_date=event.end_date,
            defaults={'event': event, 'policy': link.conflict_policy},
        )
        if not created:
            continue
        recorded += 1
        link.add_event(
            CalendarConflictDetected(
                aggregate_id=link.pk,
                link_id=link.pk,
                property_id=link.property_id,
                booking_id=booking.pk,
                uid=event.uid,
                start_date=event.start_date,
                end_date=event.end_date,
                policy=link.conflict_policy,
            )
        )
    return recorded


def _apply_diff(link: ExternalCalendarLink, incoming: list[ics.ImportedEvent], result: SyncResult) -> None:
    with DjangoUnitOfWork() as uow:
        property_obj = slots.lock_property(link.property_id)
        source = link.slot_source
        stored = {event.uid: event for event in link.imported_events.all()}
        wanted = {event.uid: event for event in incoming}

        removed = [
            event for uid, event in stored.items()
            if uid not in wanted
            or (event.start_date, event.end_date) != (wanted[uid].start, wanted[uid].end)
        ]
        added = [
            event for uid, event in wanted.items()
            if uid not in stored
            or (stored[uid].start_date, stored[uid].end_date) != (event.start, event.end)
        ]

        still_covered: set[date] = set()
        for event in incoming:
            still_covered.update(event.date_range.nights())

        freed: list[date] = []
        removed_days: set[date] = set()
        for event in removed:
            removed_days.update(event.date_range.nights())
        if removed:
            ExternalCalendarEvent.objects.filter(pk__in=[event.pk for event in removed]).delete()
            freed = slots.unblock(property_obj, removed_days - still_covered, source=source)
            # Another link may still import some of the freed days.
            reblocked = set(reapply_imported_blocks(property_obj, freed))
            freed = [day for day in freed if day not in reblocked]

        blocked: list[date] = []
        for imported in added:
            event = ExternalCalendarEvent.objects.create(
                link=link,
                uid=imported.uid,
                start_date=imported.start,
                end_date=imported.end,
                summary=imported.summary,
            )
            if link.conflict_policy == Policy.IGNORE:
                continue
            blocked.extend(
                slots.block(
                    property_obj,
                    _bookable_days(imported.date_range),
                    source=source,
                    note=imported.summary or link.name,
                )
            )
            result.conflicts += _record_conflicts(link, event)

        result.added = len(added)
        result.removed = len(removed)
        result.blocked_days = len(blocked)
        result.freed_days = len(freed)

        changed = sorted(set(blocked) | set(freed))
        if changed:
            uow.add_event(
                AvailabilityChanged(
                    aggregate_id=property_obj.pk,
                    property_id=property_obj.pk,
                    ranges=collapse_dates(changed),
                    reason='calendar_import',
                )
            )
        uow.collect_events(link)
        _mark_synced(link)


def sync_import(link: ExternalCalendarLink) -> SyncResult:
    """
    Pull one imported feed and reconcile it. Never raises for feed problems.

    Running it twice against an unchanged feed changes nothing.
    """
    result = SyncResult()
    if not link.imports:
        result.errors.append('Link does not import events.')
        return result

    ExternalCalendarLink.objects.filter(pk=link.pk).update(status=ExternalCalendarLink.Status.SYNCING)
    try:
        incoming = ics.parse_feed(fetch_feed(link))
        _apply_diff(link, incoming, result)
    except CalendarSyncError as exc:
        _mark_failed(link, exc)
        result.errors.append(str(exc))
        return result
    except Exception as exc:
        # The diff rolled back; the link must not stay in ``syncing``.
        logger.error("Unexpected error syncing calendar link %s: %s", link.pk, exc, exc_info=True)
        link.clear_events()
        link.refresh_from_db()
        error = CalendarSyncError(f"Unexpected error: {exc}")
        _mark_failed(link, error)
        result.errors.append(str(error))
        return result

    logger.info(
        "Synced calendar link %s: +%s/-%s events, %s days blocked, %s freed, %s conflicts",
        link.pk,
        result.added,
        result.removed,
        result.blocked_days,
        result.freed_days,
        result.conflicts,
    )
    return result


BLOCKING_POLICIES = (Policy.BLOCK, Policy.NOTIFY)


def _imported_events(property_obj: Property, start: date, end: date, policies=BLOCKING_POLICIES):
    return ExternalCalendarEvent.objects.filter(
        link__property=property_obj,
        link__conflict_policy__in=policies,
        link__direction__in=ExternalCalendarLink.IMPORT_DIRECTIONS,
        start_date__lt=end,
        end_date__gt=start,
    ).select_related('link').order_by('link_id', 'start_date')


def imported_block_ranges(property_obj: Property, start: date, end: date) -> list[DateRange]:
    """Parts of ``[start, end)`` covered by imports under the ``block`` policy"""
    days: set[date] = set()
    for event in _imported_events(property_obj, start, end, policies=(Policy.BLOCK,)):
        days.update(DateRange(max(event.start_date, start), min(event.end_date, end)).nights())
    return collapse_dates(days)


def reapply_imported_blocks(property_obj: Property, days: Iterable[date]) -> list[date]:
    """
    Block freed days that an import still covers.

    A day carries a single source tag, so when one blocker lets go of a day
    (a cancelled booking, a dropped event, a released manual block) any other
    ``block`` or ``notify`` import covering it takes it over.
    """
    days = sorted(set(days))
    if not days:
        return []
    days = [day for day in days if day >= timezone.localdate()]
    if not days:
        return []
    reblocked: list[date] = []
    for event in _imported_events(property_obj, days[0], days[-1] + timedelta(days=1)):
        covered = [day for day in days if event.start_date <= day < event.end_date]
        reblocked.extend(
            slots.block(
                property_obj,
                covered,
                source=event.link.slot_source,
                note=event.summary or event.link.name,
            )
        )
    return sorted(reblocked)


def export_feed(property_obj: Property) -> bytes:
    """ICS document of the property's active bookings. Read-only."""
    bookings = Booking.objects.filter(
        property=property_obj,
        status__in=Booking.ACTIVE_STATUSES,
    ).order_by('check_in')
    return ics.serialize_feed(property_obj, bookings)


def unlink(link: ExternalCalendarLink, clear: bool = False) -> int:
    """
    Remove a link. Its blocked days stay blocked as manual blocks unless
    ``clear`` is set. Returns the number of days affected.
    """
    with DjangoUnitOfWork() as uow:
        property_obj = slots.lock_property(link.property_id)
        source = link.slot_source
        link_id = link.pk
        if clear:
            days = DateSlot.objects.filter(property=property_obj, source=source).values_list('date', flat=True)
            freed = slots.unblock(property_obj, list(days), source=source)
            link.delete()
            reblocked = set(reapply_imported_blocks(property_obj, freed))
            freed = [day for day in freed if day not in reblocked]
            if freed:
                uow.add_event(
                    AvailabilityChanged(
                        aggregate_id=property_obj.pk,
                        property_id=property_obj.pk,
                        ranges=collapse_dates(freed),
                        reason='calendar_unlinked',
                    )
                )
            affected = len(freed)
        else:
            affected = slots.retag(property_obj, source, DateSlot.SOURCE_MANUAL)
            link.delete()
    logger.info("Calendar link %s removed (clear=%s, %s days affected)", link_id, clear, affected)
    return affected
