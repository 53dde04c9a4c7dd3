"""
Pricing Calculator

Resolves the nightly rate for every night of a stay and composes fees and
taxes into a breakdown that is stored on the booking at creation time.

Per night, in precedence order:
1. Start from the property base rate
2. Highest-priority matching OVERRIDE replaces the rate outright
3. Else the weekend uplift (amount) on weekend days
4. Else every matching SEASONAL_PERCENT / DISCOUNT_PERCENT rule,
   multiplicative on the base rate

Disabled rules are skipped. A rule with min/max bounds clamps the rate it
produces.

Per stay:
5. subtotal = sum(nightly) + extra guest surcharge
6. + cleaning fee (once)
7. + service fee = subtotal * SERVICE_FEE_RATE
8. + taxes = (subtotal + cleaning + service) * TAX_RATE
9. total, every amount rounded to the currency minor unit (half-up)

The calculation is pure for a given property row and rule set, so two
calls with the same inputs produce identical breakdowns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List

from django.conf import settings
from django.db.models import Q

from shared.domain.value_objects import DateRange, Money

from .models import PricingRule, Property

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class NightlyRate:
    night: date
    rate: Decimal
    source: str  # base | override | weekend | seasonal

    def to_dict(self) -> dict:
        return {'date': self.night.isoformat(), 'rate': str(self.rate), 'source': self.source}


@dataclass(frozen=True)
class PriceQuote:
    """Deterministic price breakdown for one stay"""
    currency: str
    nights: int
    guest_count: int
    per_night: List[NightlyRate] = field(default_factory=list)
    extra_guest_fee: Decimal = Decimal('0')
    subtotal: Decimal = Decimal('0')
    cleaning_fee: Decimal = Decimal('0')
    service_fee: Decimal = Decimal('0')
    taxes: Decimal = Decimal('0')
    total: Decimal = Decimal('0')
    service_fee_rate: Decimal = Decimal('0')
    tax_rate: Decimal = Decimal('0')

    def to_dict(self) -> dict:
        """JSON-safe snapshot; decimals are rendered as strings"""
        return {
            'currency': self.currency,
            'nights': self.nights,
            'guest_count': self.guest_count,
            'per_night': [night.to_dict() for night in self.per_night],
            'extra_guest_fee': str(self.extra_guest_fee),
            'subtotal': str(self.subtotal),
            'cleaning_fee': str(self.cleaning_fee),
            'service_fee': str(self.service_fee),
            'taxes': str(self.taxes),
            'total': str(self.total),
            'service_fee_rate': str(self.service_fee_rate),
            'tax_rate': str(self.tax_rate),
        }


def _setting_rate(name: str) -> Decimal:
    return Decimal(str(settings.PRICING[name]))


def rules_for_range(property_obj: Property, start: date, end: date) -> list[PricingRule]:
    """Rules that touch [start, end), highest priority first"""
    return list(
        PricingRule.objects.filter(property=property_obj, is_active=True)
        .filter(Q(start_date__isnull=True) | Q(start_date__lt=end))
        .filter(Q(end_date__isnull=True) | Q(end_date__gt=start))
        .order_by('-priority', 'id')
    )


def resolve_nightly_rate(property_obj: Property, night: date, rules: Iterable[PricingRule]) -> NightlyRate:
    """Apply the precedence chain for a single night"""
    currency = property_obj.currency
    base = Money(property_obj.base_price, currency)
    matching = [rule for rule in rules if rule.applies_to(night)]

    overrides = [rule for rule in matching if rule.kind == PricingRule.Kind.OVERRIDE]
    if overrides:
        rate = overrides[0].clamp(overrides[0].value)
        return NightlyRate(night, Money(rate, currency).rounded().amount, 'override')

    if night.weekday() in property_obj.weekend_weekdays:
        uplifts = [rule for rule in matching if rule.kind == PricingRule.Kind.WEEKEND_UPLIFT]
        if uplifts:
            rate = uplifts[0].clamp((base + Money(uplifts[0].value, currency)).amount)
            return NightlyRate(night, Money(rate, currency).rounded().amount, 'weekend')

    percent_rules = [
        rule for rule in matching
        if rule.kind in (PricingRule.Kind.SEASONAL_PERCENT, PricingRule.Kind.DISCOUNT_PERCENT)
    ]
    rate = base.amount
    for rule in percent_rules:
        if rule.kind == PricingRule.Kind.SEASONAL_PERCENT:
            rate *= 1 + rule.value / HUNDRED
        else:
            rate *= 1 - rule.value / HUNDRED
        # Each rule's bounds apply to the rate it produced.
        rate = rule.clamp(rate)
    if percent_rules:
        rate = Money(max(rate, Decimal(0)), currency)
        return NightlyRate(night, rate.rounded().amount, 'seasonal')

    return NightlyRate(night, base.rounded().amount, 'base')


def nightly_rates(property_obj: Property, start: date, end: date) -> list[NightlyRate]:
    stay = DateRange(start, end)
    rules = rules_for_range(property_obj, start, end)
    return [resolve_nightly_rate(property_obj, night, rules) for night in stay.nights()]


def price(property_obj: Property, start: date, end: date, guest_count: int) -> PriceQuote:
    """
    Price a stay of ``guest_count`` guests over [start, end).

    Raises ValueError if the range is empty; callers validate ranges and
    capacity before pricing.
    """
    currency = property_obj.currency
    per_night = nightly_rates(property_obj, start, end)
    nights = len(per_night)

    extra_guests = max(0, guest_count - property_obj.included_guests)
    extra_guest_fee = (Money(property_obj.extra_guest_fee, currency) * (extra_guests * nights)).rounded()

    subtotal = Money(sum((night.rate for night in per_night), Decimal(0)), currency) + extra_guest_fee
    cleaning_fee = Money(property_obj.cleaning_fee, currency).rounded()

    service_fee_rate = _setting_rate('SERVICE_FEE_RATE')
    tax_rate = _setting_rate('TAX_RATE')
    service_fee = (subtotal * service_fee_rate).rounded()
    taxes = ((subtotal + cleaning_fee + service_fee) * tax_rate).rounded()
    total = (subtotal + cleaning_fee + service_fee + taxes).rounded()

    return PriceQuote(
        currency=currency,
        nights=nights,
        guest_count=guest_count,
        per_night=per_night,
        extra_guest_fee=extra_guest_fee.amount,
        subtotal=subtotal.rounded().amount,
        cleaning_fee=cleaning_fee.amount,
        service_fee=service_fee.amount,
        taxes=taxes.amount,
        total=total.amount,
        service_fee_rate=service_fee_rate,
        tax_rate=tax_rate,
    )
