from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        default="active",
                        max_length=20,
                    ),
                ),
                (
                    "booking_mode",
                    models.CharField(
                        choices=[("instant", "Instant book"), ("request", "Request to book")],
                        default="instant",
                        max_length=20,
                    ),
                ),
                (
                    "capacity",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="ZAR", max_length=3)),
                ("cleaning_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                (
                    "included_guests",
                    models.PositiveSmallIntegerField(default=1, help_text="Guests covered by the nightly rate."),
                ),
                (
                    "extra_guest_fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Charged per night for every guest above the included count.",
                        max_digits=10,
                    ),
                ),
                ("min_nights", models.PositiveSmallIntegerField(default=1)),
                ("max_nights", models.PositiveSmallIntegerField(default=90)),
                (
                    "weekend_days",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text=(
                            "Weekday numbers (0=Mon ... 6=Sun) that get the weekend uplift. "
                            "Empty uses the default."
                        ),
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Property",
                "verbose_name_plural": "Properties",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["owner", "status"], name="properties__owner_i_8c1f0e_idx")],
            },
        ),
        migrations.CreateModel(
            name="PricingRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("override", "Override (fixed nightly rate)"),
                            ("weekend_uplift", "Weekend uplift (amount)"),
                            ("seasonal_percent", "Seasonal increase (%)"),
                            ("discount_percent", "Discount (%)"),
                        ],
                        max_length=30,
                    ),
                ),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("value", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "priority",
                    models.SmallIntegerField(
                        default=0,
                        help_text="Higher priority wins when rules of the same kind overlap.",
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pricing_rules",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "Pricing rule",
                "verbose_name_plural": "Pricing rules",
                "ordering": ["-priority", "id"],
                "indexes": [
                    models.Index(fields=["property", "kind", "priority"], name="properties__propert_3b7d21_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(("start_date__isnull", True))
                            | models.Q(("end_date__isnull", True))
                            | models.Q(("end_date__gt", models.F("start_date")))
                        ),
                        name="pricing_rule_valid_date_range",
                    ),
                ],
            },
        ),
    ]
