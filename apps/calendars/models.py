"""External calendar links, their imported events and detected conflicts."""

from __future__ import annotations

import builtins
import secrets

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import EventRecorder
from shared.domain.value_objects import DateRange


def generate_export_token() -> str:
    return secrets.token_urlsafe(24)


class ExternalCalendarLink(EventRecorder, models.Model):
    """An iCal feed connected to a property."""

    class Direction(models.TextChoices):
        IMPORT = "import", _("Import")
        EXPORT = "export", _("Export")
        BIDIRECTIONAL = "bidirectional", _("Import and export")

    class ConflictPolicy(models.TextChoices):
        BLOCK = "block", _("Block dates and reject overlapping bookings")
        NOTIFY = "notify", _("Block free dates and warn on overlaps")
        IGNORE = "ignore", _("Record events only")

    class Status(models.TextChoices):
        CONNECTED = "connected", _("Connected")
        SYNCING = "syncing", _("Syncing")
        ERROR = "error", _("Error")

    IMPORT_DIRECTIONS = (Direction.IMPORT, Direction.BIDIRECTIONAL)
    EXPORT_DIRECTIONS = (Direction.EXPORT, Direction.BIDIRECTIONAL)

    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="calendar_links",
    )
    name = models.CharField(max_length=100)
    url = models.URLField(max_length=1000, blank=True)
    direction = models.CharField(max_length=20, choices=Direction.choices, default=Direction.IMPORT)
    conflict_policy = models.CharField(
        max_length=20,
        choices=ConflictPolicy.choices,
        default=ConflictPolicy.BLOCK,
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.CONNECTED)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True)
    failure_count = models.PositiveIntegerField(default=0)
    next_sync_at = models.DateTimeField(null=True, blank=True)
    export_token = models.CharField(max_length=64, unique=True, default=generate_export_token, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("External calendar link")
        verbose_name_plural = _("External calendar links")
        ordering = ["property", "id"]
        indexes = [
            models.Index(fields=["direction", "next_sync_at"], name="calendars_e_directi_2c81d4_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.direction}) for {self.property_id}"

    @builtins.property
    def imports(self) -> bool:
        return self.direction in self.IMPORT_DIRECTIONS

    @builtins.property
    def exports(self) -> bool:
        return self.direction in self.EXPORT_DIRECTIONS

    @builtins.property
    def slot_source(self) -> str:
        from apps.properties.models import DateSlot

        return DateSlot.external_source(self.pk)


class ExternalCalendarEvent(models.Model):
    """Local image of one event of an imported feed, used to diff the next sync."""

    link = models.ForeignKey(
        ExternalCalendarLink,
        on_delete=models.CASCADE,
        related_name="imported_events",
    )
    uid = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField()
    summary = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("External calendar event")
        verbose_name_plural = _("External calendar events")
        ordering = ["start_date"]
        constraints = [
            models.UniqueConstraint(fields=["link", "uid"], name="unique_link_event_uid"),
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="external_event_valid_dates",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.uid} [{self.start_date} - {self.end_date})"

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)


class CalendarConflict(models.Model):
    """An imported event that overlaps a local booking. Shown to the owner."""

    link = models.ForeignKey(
        ExternalCalendarLink,
        on_delete=models.CASCADE,
        related_name="conflicts",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="calendar_conflicts",
    )
    event = models.ForeignKey(
        ExternalCalendarEvent,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="conflicts",
    )
    uid = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField()
    policy = models.CharField(max_length=20, choices=ExternalCalendarLink.ConflictPolicy.choices)
    resolved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Calendar conflict")
        verbose_name_plural = _("Calendar conflicts")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["link", "booking", "uid", "start_date", "end_date"],
                name="unique_calendar_conflict",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.uid} vs booking {self.booking_id}"
