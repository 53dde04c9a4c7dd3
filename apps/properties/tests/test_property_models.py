"""Model level behaviour of properties, slots and pricing rules."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.properties.models import DateSlot, PricingRule, Property
from shared.testing import create_property


@pytest.mark.django_db
def test_slot_source_tags(listing):
    day = timezone.localdate() + timedelta(days=3)
    external = DateSlot.objects.create(property=listing, date=day, source=DateSlot.external_source(7))
    manual = DateSlot.objects.create(property=listing, date=day + timedelta(days=1), source=DateSlot.SOURCE_MANUAL)

    assert external.source == "external:7"
    assert external.is_external
    assert not manual.is_external


@pytest.mark.django_db
def test_unsupported_currency_is_rejected(owner):
    listing = Property(owner=owner, title="Harbour loft", base_price=Decimal("100.00"), currency="AUD")

    with pytest.raises(ValidationError) as excinfo:
        listing.full_clean()
    assert "currency" in excinfo.value.message_dict

    with pytest.raises(IntegrityError), transaction.atomic():
        listing.save()


@pytest.mark.django_db
def test_existing_property_cannot_switch_to_unsupported_currency(listing):
    with pytest.raises(IntegrityError), transaction.atomic():
        Property.objects.filter(pk=listing.pk).update(currency="AUD")

    listing.refresh_from_db()
    assert listing.currency == "ZAR"


@pytest.mark.django_db
def test_rule_clamp_keeps_rate_inside_bounds(owner):
    rule = PricingRule.objects.create(
        property=create_property(owner),
        kind=PricingRule.Kind.SEASONAL_PERCENT,
        value=Decimal("50"),
        min_rate=Decimal("900.00"),
        max_rate=Decimal("1200.00"),
    )

    assert rule.clamp(Decimal("1500.00")) == Decimal("1200.00")
    assert rule.clamp(Decimal("500.00")) == Decimal("900.00")
    assert rule.clamp(Decimal("1000.00")) == Decimal("1000.00")


@pytest.mark.django_db
def test_rule_bounds_must_be_ordered(listing):
    with pytest.raises(IntegrityError), transaction.atomic():
        PricingRule.objects.create(
            property=listing,
            kind=PricingRule.Kind.OVERRIDE,
            value=Decimal("800"),
            min_rate=Decimal("900.00"),
            max_rate=Decimal("700.00"),
        )
