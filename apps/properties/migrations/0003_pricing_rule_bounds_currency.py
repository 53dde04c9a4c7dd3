from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("properties", "0002_dateslot"),
    ]

    operations = [
        migrations.AlterField(
            model_name="property",
            name="currency",
            field=models.CharField(
                choices=[
                    ("ZAR", "ZAR"),
                    ("USD", "USD"),
                    ("EUR", "EUR"),
                    ("GBP", "GBP"),
                    ("KZT", "KZT"),
                    ("JPY", "JPY"),
                ],
                default="ZAR",
                max_length=3,
            ),
        ),
        migrations.AddConstraint(
            model_name="property",
            constraint=models.CheckConstraint(
                condition=models.Q(("currency__in", ["ZAR", "USD", "EUR", "GBP", "KZT", "JPY"])),
                name="property_supported_currency",
            ),
        ),
        migrations.AddField(
            model_name="pricingrule",
            name="is_active",
            field=models.BooleanField(default=True, help_text="Disabled rules are kept but never applied."),
        ),
        migrations.AddField(
            model_name="pricingrule",
            name="min_rate",
            field=models.DecimalField(
                blank=True,
                decimal_places=2,
                help_text="Lowest nightly rate this rule may produce.",
                max_digits=10,
                null=True,
            ),
        ),
        migrations.AddField(
            model_name="pricingrule",
            name="max_rate",
            field=models.DecimalField(
                blank=True,
                decimal_places=2,
                help_text="Highest nightly rate this rule may produce.",
                max_digits=10,
                null=True,
            ),
        ),
        migrations.AddConstraint(
            model_name="pricingrule",
            constraint=models.CheckConstraint(
                condition=(
                    models.Q(("min_rate__isnull", True))
                    | models.Q(("max_rate__isnull", True))
                    | models.Q(("max_rate__gte", models.F("min_rate")))
                ),
                name="pricing_rule_valid_rate_bounds",
            ),
        ),
    ]
