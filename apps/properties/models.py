"""Property domain models for Stayline.

Holds the listing facts the availability engine needs (capacity, rates,
booking mode), the owner's pricing rules and the per-day DateSlot
calendar that is the authoritative availability store.
"""

from __future__ import annotations

import builtins

from datetime import date
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import MINOR_UNITS

CURRENCY_CHOICES = [(code, code) for code in MINOR_UNITS]


class Property(models.Model):
    """A property listed for short-term rental."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    class BookingMode(models.TextChoices):
        INSTANT = "instant", _("Instant book")
        REQUEST = "request", _("Request to book")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="properties",
    )
    title = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    booking_mode = models.CharField(
        max_length=20,
        choices=BookingMode.choices,
        default=BookingMode.INSTANT,
    )
    capacity = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="ZAR")
    cleaning_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    included_guests = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("Guests covered by the nightly rate."),
    )
    extra_guest_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Charged per night for every guest above the included count."),
    )
    min_nights = models.PositiveSmallIntegerField(default=1)
    max_nights = models.PositiveSmallIntegerField(default=90)
    weekend_days = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Weekday numbers (0=Mon ... 6=Sun) that get the weekend uplift. Empty uses the default."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(currency__in=list(MINOR_UNITS)),
                name="property_supported_currency",
            ),
        ]
        indexes = [
            models.Index(fields=["owner", "status"], name="properties__owner_i_8c1f0e_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    @property
    def weekend_weekdays(self) -> frozenset[int]:
        days = self.weekend_days or settings.PRICING["WEEKEND_DAYS"]
        return frozenset(int(day) for day in days)


class PricingRule(models.Model):
    """Owner defined adjustment of the nightly rate.

    Date bounds are half-open ``[start_date, end_date)``; a missing bound
    means the rule is open-ended on that side.
    """

    class Kind(models.TextChoices):
        OVERRIDE = "override", _("Override (fixed nightly rate)")
        WEEKEND_UPLIFT = "weekend_uplift", _("Weekend uplift (amount)")
        SEASONAL_PERCENT = "seasonal_percent", _("Seasonal increase (%)")
        DISCOUNT_PERCENT = "discount_percent", _("Discount (%)")

    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        related_name="pricing_rules",
    )
    kind = models.CharField(max_length=30, choices=Kind.choices)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    value = models.DecimalField(max_digits=10, decimal_places=2)
    priority = models.SmallIntegerField(
        default=0,
        help_text=_("Higher priority wins when rules of the same kind overlap."),
    )
    is_active = models.BooleanField(default=True, help_text=_("Disabled rules are kept but never applied."))
    min_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Lowest nightly rate this rule may produce."),
    )
    max_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Highest nightly rate this rule may produce."),
    )
    description = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Pricing rule")
        verbose_name_plural = _("Pricing rules")
        ordering = ["-priority", "id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(start_date__isnull=True)
                    | models.Q(end_date__isnull=True)
                    | models.Q(end_date__gt=models.F("start_date"))
                ),
                name="pricing_rule_valid_date_range",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(min_rate__isnull=True)
                    | models.Q(max_rate__isnull=True)
                    | models.Q(max_rate__gte=models.F("min_rate"))
                ),
                name="pricing_rule_valid_rate_bounds",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "kind", "priority"], name="properties__propert_3b7d21_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.property_id}: {self.kind} {self.value} [{self.start_date} - {self.end_date})"

    def applies_to(self, night: date) -> bool:
        if self.start_date and night < self.start_date:
            return False
        if self.end_date and night >= self.end_date:
            return False
        return True

    def clamp(self, rate: Decimal) -> Decimal:
        """Keep ``rate`` inside the rule's optional min/max bounds"""
        if self.min_rate is not None and rate < self.min_rate:
            return self.min_rate
        if self.max_rate is not None and rate > self.max_rate:
            return self.max_rate
        return rate


class DateSlot(models.Model):
    """One calendar day of one property.

    ``booked`` and ``pending`` days are always held by exactly one active
    booking (``booking`` is set); ``blocked`` days are owner or external
    calendar blocks.
    """

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        BLOCKED = "blocked", _("Blocked")
        BOOKED = "booked", _("Booked")
        PENDING = "pending", _("Pending")

    SOURCE_MANUAL = "manual"
    SOURCE_RULE = "rule"
    EXTERNAL_PREFIX = "external:"

    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        related_name="date_slots",
    )
    date = models.DateField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Effective nightly rate after pricing rules."),
    )
    source = models.CharField(max_length=50, default=SOURCE_RULE)
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="date_slots",
    )
    note = models.CharField(max_length=255, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Date slot")
        verbose_name_plural = _("Date slots")
        ordering = ["property", "date"]
        constraints = [
            models.UniqueConstraint(fields=["property", "date"], name="unique_property_date_slot"),
            models.CheckConstraint(
                condition=(
                    models.Q(status__in=["booked", "pending"], booking__isnull=False)
                    | models.Q(status__in=["available", "blocked"], booking__isnull=True)
                ),
                name="date_slot_booking_matches_status",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "status", "date"], name="properties__propert_9e4a52_idx"),
            models.Index(fields=["source"], name="properties__source_5d0c6b_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.property_id} {self.date} {self.status}"

    @classmethod
    def external_source(cls, link_id: int) -> str:
        return f"{cls.EXTERNAL_PREFIX}{link_id}"

    @builtins.property
    def is_external(self) -> bool:
        return self.source.startswith(self.EXTERNAL_PREFIX)
