import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("properties", "0001_initial"),
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DateSlot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("blocked", "Blocked"),
                            ("booked", "Booked"),
                            ("pending", "Pending"),
                        ],
                        default="available",
                        max_length=20,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Effective nightly rate after pricing rules.",
                        max_digits=10,
                        null=True,
                    ),
                ),
                ("source", models.CharField(default="rule", max_length=50)),
                ("note", models.CharField(blank=True, max_length=255)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="date_slots",
                        to="bookings.booking",
                    ),
                ),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="date_slots",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "Date slot",
                "verbose_name_plural": "Date slots",
                "ordering": ["property", "date"],
                "indexes": [
                    models.Index(fields=["property", "status", "date"], name="properties__propert_9e4a52_idx"),
                    models.Index(fields=["source"], name="properties__source_5d0c6b_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("property", "date"), name="unique_property_date_slot"),
                    models.CheckConstraint(
                        condition=(
                            models.Q(("status__in", ["booked", "pending"]), ("booking__isnull", False))
                            | models.Q(("status__in", ["available", "blocked"]), ("booking__isnull", True))
                        ),
                        name="date_slot_booking_matches_status",
                    ),
                ],
            },
        ),
    ]
