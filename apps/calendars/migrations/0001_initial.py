import django.db.models.deletion
from django.db import migrations, models

import apps.calendars.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
        ("properties", "0002_dateslot"),
    ]

    operations = [
        migrations.CreateModel(
            name="ExternalCalendarLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("url", models.URLField(blank=True, max_length=1000)),
                (
                    "direction",
                    models.CharField(
                        choices=[
                            ("import", "Import"),
                            ("export", "Export"),
                            ("bidirectional", "Import and export"),
                        ],
                        default="import",
                        max_length=20,
                    ),
                ),
                (
                    "conflict_policy",
                    models.CharField(
                        choices=[
                            ("block", "Block dates and reject overlapping bookings"),
                            ("notify", "Block free dates and warn on overlaps"),
                            ("ignore", "Record events only"),
                        ],
                        default="block",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("connected", "Connected"), ("syncing", "Syncing"), ("error", "Error")],
                        default="connected",
                        max_length=20,
                    ),
                ),
                ("last_synced_at", models.DateTimeField(blank=True, null=True)),
                ("last_error", models.TextField(blank=True)),
                ("failure_count", models.PositiveIntegerField(default=0)),
                ("next_sync_at", models.DateTimeField(blank=True, null=True)),
                (
                    "export_token",
                    models.CharField(
                        default=apps.calendars.models.generate_export_token,
                        editable=False,
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="calendar_links",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "External calendar link",
                "verbose_name_plural": "External calendar links",
                "ordering": ["property", "id"],
                "indexes": [
                    models.Index(fields=["direction", "next_sync_at"], name="calendars_e_directi_2c81d4_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExternalCalendarEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uid", models.CharField(max_length=255)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("summary", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "link",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="imported_events",
                        to="calendars.externalcalendarlink",
                    ),
                ),
            ],
            options={
                "verbose_name": "External calendar event",
                "verbose_name_plural": "External calendar events",
                "ordering": ["start_date"],
                "constraints": [
                    models.UniqueConstraint(fields=("link", "uid"), name="unique_link_event_uid"),
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="external_event_valid_dates",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CalendarConflict",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uid", models.CharField(max_length=255)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "policy",
                    models.CharField(
                        choices=[
                            ("block", "Block dates and reject overlapping bookings"),
                            ("notify", "Block free dates and warn on overlaps"),
                            ("ignore", "Record events only"),
                        ],
                        max_length=20,
                    ),
                ),
                ("resolved", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="calendar_conflicts",
                        to="bookings.booking",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="conflicts",
                        to="calendars.externalcalendarevent",
                    ),
                ),
                (
                    "link",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conflicts",
                        to="calendars.externalcalendarlink",
                    ),
                ),
            ],
            options={
                "verbose_name": "Calendar conflict",
                "verbose_name_plural": "Calendar conflicts",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("link", "booking", "uid", "start_date", "end_date"),
                        name="unique_calendar_conflict",
                    ),
                ],
            },
        ),
    ]
