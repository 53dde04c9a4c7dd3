"""Celery tasks for external calendar synchronisation."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore

from . import reconciler
from .models import ExternalCalendarLink

logger = logging.getLogger(__name__)


@shared_task(name="calendars.sync_calendar_link")
def sync_calendar_link(link_id: int) -> dict:
    link = ExternalCalendarLink.objects.filter(pk=link_id).first()
    if link is None:
        logger.info("Calendar link %s no longer exists", link_id)
        return {"errors": ["missing"]}
    return reconciler.sync_import(link).to_dict()


@shared_task(name="calendars.sync_due_links")
def sync_due_links() -> dict[str, int]:
    """
    Sync every import link whose next attempt is due.

    A failing link only postpones itself; the others still run. Runs every
    15 minutes through Celery Beat.
    """
    now = timezone.now()
    synced_count = 0
    failed_count = 0

    links = ExternalCalendarLink.objects.filter(
        direction__in=ExternalCalendarLink.IMPORT_DIRECTIONS,
    ).filter(Q(next_sync_at__isnull=True) | Q(next_sync_at__lte=now))

    for link in links:
        try:
            result = reconciler.sync_import(link)
        except Exception as e:
            failed_count += 1
            logger.error("Error syncing calendar link %s: %s", link.pk, e, exc_info=True)
            continue
        if result.ok:
            synced_count += 1
        else:
            failed_count += 1

    if synced_count or failed_count:
        logger.info("Calendar sync: %s links synced, %s failed", synced_count, failed_count)

    return {"synced": synced_count, "failed": failed_count}
