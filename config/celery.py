import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("stayline")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Cancel bookings whose payment hold ran out - every minute
    "expire-unpaid-bookings": {
        "task": "bookings.expire_unpaid_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Move confirmed bookings to CHECKED_IN on arrival day - hourly
    "start-checked-in-bookings": {
        "task": "bookings.start_checked_in_bookings",
        "schedule": crontab(minute=0),
    },
    # Complete stays after checkout - hourly
    "complete-finished-bookings": {
        "task": "bookings.complete_finished_bookings",
        "schedule": crontab(minute=15),
    },
    # Pull external calendars that are due (respects per-link backoff)
    "sync-due-calendar-links": {
        "task": "calendars.sync_due_links",
        "schedule": crontab(minute="*/15"),
    },
}
