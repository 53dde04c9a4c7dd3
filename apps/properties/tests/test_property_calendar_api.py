"""Integration tests for the property calendar endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings import services
from apps.calendars.models import ExternalCalendarEvent, ExternalCalendarLink
from apps.properties.models import DateSlot, PricingRule, Property
from apps.users.models import User
from shared.testing import create_property, create_user, next_weekday


class PropertyCalendarAPITests(APITestCase):
    """Availability, quotes, pricing rules and manual blocks."""

    def setUp(self) -> None:
        self.owner = create_user(role=User.Role.OWNER)
        self.guest = create_user()
        self.property = create_property(self.owner, cleaning_fee=Decimal("150.00"))
        self.start = timezone.localdate() + timedelta(days=14)

    def _availability(self, start, end, property_obj=None):
        url = reverse("property-availability", args=[(property_obj or self.property).id])
        return self.client.get(url, {"from": str(start), "to": str(end)})

    def test_availability_is_public_and_half_open(self) -> None:
        response = self._availability(self.start, self.start + timedelta(days=3))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dates = response.data["dates"]
        self.assertEqual([str(day["date"]) for day in dates], [
            str(self.start + timedelta(days=offset)) for offset in range(3)
        ])
        self.assertTrue(all(day["status"] == "available" for day in dates))
        self.assertNotIn("booking", dates[0])

    def test_availability_shows_held_nights(self) -> None:
        services.create_booking(
            property_id=self.property.id,
            guest=self.guest,
            check_in=self.start,
            check_out=self.start + timedelta(days=2),
            guests_count=2,
            idempotency_key="calendar-held",
        )

        response = self._availability(self.start, self.start + timedelta(days=3))

        statuses = [day["status"] for day in response.data["dates"]]
        self.assertEqual(statuses, ["pending", "pending", "available"])

    def test_owner_sees_slot_sources(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self._availability(self.start, self.start + timedelta(days=1))

        self.assertEqual(response.data["dates"][0]["source"], DateSlot.SOURCE_RULE)

    def test_inactive_property_is_hidden_from_public(self) -> None:
        self.property.status = Property.Status.INACTIVE
        self.property.save(update_fields=["status"])

        response = self._availability(self.start, self.start + timedelta(days=1))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.owner)
        response = self._availability(self.start, self.start + timedelta(days=1))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_availability_rejects_reversed_range(self) -> None:
        response = self._availability(self.start, self.start - timedelta(days=1))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_price_quote_breakdown(self) -> None:
        PricingRule.objects.create(
            property=self.property,
            kind=PricingRule.Kind.WEEKEND_UPLIFT,
            value=Decimal("200.00"),
        )
        friday = next_weekday(4)

        response = self.client.post(
            reverse("property-price-quote", args=[self.property.id]),
            {"start": str(friday), "end": str(friday + timedelta(days=2)), "guests": 2},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total"], "3070.50")
        self.assertEqual(len(response.data["per_night"]), 2)

    def test_price_quote_rejects_too_many_guests(self) -> None:
        response = self.client.post(
            reverse("property-price-quote", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=1)), "guests": 9},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("guests", response.data)

    def test_owner_manages_pricing_rules(self) -> None:
        self.client.force_authenticate(self.owner)
        url = reverse("property-pricing-rule-list", args=[self.property.id])

        response = self.client.post(
            url,
            {"kind": "override", "value": "800.00", "priority": 2,
             "start_date": str(self.start), "end_date": str(self.start + timedelta(days=3))},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        rule_id = response.data["id"]

        self.assertEqual(len(self.client.get(url).data), 1)

        detail = reverse("property-pricing-rule-detail", args=[self.property.id, rule_id])
        self.assertEqual(self.client.delete(detail).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PricingRule.objects.filter(pk=rule_id).exists())

    def test_pricing_rule_validation(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.post(
            reverse("property-pricing-rule-list", args=[self.property.id]),
            {"kind": "discount_percent", "value": "150"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_users_cannot_manage_calendar(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            reverse("property-blocks", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=1))},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(reverse("property-pricing-rule-list", args=[self.property.id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_block_skips_booked_nights(self) -> None:
        services.create_booking(
            property_id=self.property.id,
            guest=self.guest,
            check_in=self.start + timedelta(days=1),
            check_out=self.start + timedelta(days=2),
            guests_count=1,
            idempotency_key="calendar-block",
        )
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("property-blocks", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=3)), "note": "maintenance"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["skipped"], [
            {"start": str(self.start + timedelta(days=1)), "end": str(self.start + timedelta(days=2))},
        ])
        self.assertEqual(len(response.data["blocked"]), 2)
        self.assertEqual(
            DateSlot.objects.filter(property=self.property, status=DateSlot.Status.BLOCKED).count(),
            2,
        )

    def test_release_only_frees_manual_blocks(self) -> None:
        DateSlot.objects.create(
            property=self.property,
            date=self.start + timedelta(days=1),
            status=DateSlot.Status.BLOCKED,
            source=DateSlot.external_source(99),
        )
        self.client.force_authenticate(self.owner)
        self.client.post(
            reverse("property-blocks", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=1))},
            format="json",
        )

        response = self.client.post(
            reverse("property-blocks-release", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=2))},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["released"], [
            {"start": str(self.start), "end": str(self.start + timedelta(days=1))},
        ])
        external = DateSlot.objects.get(property=self.property, date=self.start + timedelta(days=1))
        self.assertEqual(external.status, DateSlot.Status.BLOCKED)

    def test_owner_reads_and_toggles_a_pricing_rule(self) -> None:
        rule = PricingRule.objects.create(
            property=self.property,
            kind=PricingRule.Kind.OVERRIDE,
            value=Decimal("700.00"),
        )
        detail = reverse("property-pricing-rule-detail", args=[self.property.id, rule.id])
        self.client.force_authenticate(self.owner)

        self.assertEqual(self.client.get(detail).data["kind"], "override")
        response = self.client.patch(detail, {"is_active": False}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rule.refresh_from_db()
        self.assertFalse(rule.is_active)
        quote = self.client.post(
            reverse("property-price-quote", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=1))},
            format="json",
        )
        self.assertNotEqual(quote.data["per_night"][0]["source"], "override")

    def test_pricing_rule_bounds_are_validated(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("property-pricing-rule-list", args=[self.property.id]),
            {"kind": "seasonal_percent", "value": "10", "min_rate": "900.00", "max_rate": "800.00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("max_rate", response.data)

    def test_other_owner_cannot_touch_pricing_rules(self) -> None:
        rule = PricingRule.objects.create(
            property=self.property,
            kind=PricingRule.Kind.OVERRIDE,
            value=Decimal("700.00"),
        )
        self.client.force_authenticate(create_user(role=User.Role.OWNER))

        response = self.client.delete(reverse("property-pricing-rule-detail", args=[self.property.id, rule.id]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(PricingRule.objects.filter(pk=rule.pk).exists())

    def test_past_availability_is_never_materialised(self) -> None:
        today = timezone.localdate()

        response = self._availability(today - timedelta(days=400), today - timedelta(days=35))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["dates"], [])
        self.assertFalse(DateSlot.objects.filter(property=self.property).exists())

    def test_availability_window_is_clamped_to_today_and_horizon(self) -> None:
        today = timezone.localdate()

        response = self._availability(today - timedelta(days=5), today + timedelta(days=3000))

        self.assertEqual(response.data["from"], today)
        self.assertEqual(response.data["to"], today + timedelta(days=730))
        self.assertFalse(DateSlot.objects.filter(property=self.property, date__lt=today).exists())
        self.assertEqual(DateSlot.objects.filter(property=self.property).count(), 730)

    def test_price_quote_rejects_past_and_overlong_stays(self) -> None:
        url = reverse("property-price-quote", args=[self.property.id])
        today = timezone.localdate()

        past = self.client.post(
            url, {"start": str(today - timedelta(days=3)), "end": str(today)}, format="json"
        )
        too_long = self.client.post(
            url, {"start": str(self.start), "end": str(self.start + timedelta(days=400))}, format="json"
        )

        self.assertEqual(past.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("start", past.data)
        self.assertEqual(too_long.status_code, status.HTTP_400_BAD_REQUEST)

    def test_past_dates_cannot_be_blocked(self) -> None:
        self.client.force_authenticate(self.owner)
        today = timezone.localdate()

        response = self.client.post(
            reverse("property-blocks", args=[self.property.id]),
            {"start": str(today - timedelta(days=2)), "end": str(today + timedelta(days=1))},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(DateSlot.objects.filter(property=self.property).exists())

    def test_released_manual_block_goes_back_to_an_import(self) -> None:
        link = ExternalCalendarLink.objects.create(
            property=self.property,
            name="Channel",
            url="https://calendar.example.com/feed.ics",
            conflict_policy=ExternalCalendarLink.ConflictPolicy.NOTIFY,
        )
        ExternalCalendarEvent.objects.create(
            link=link,
            uid="ev-1",
            start_date=self.start,
            end_date=self.start + timedelta(days=2),
        )
        self.client.force_authenticate(self.owner)
        self.client.post(
            reverse("property-blocks", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=2))},
            format="json",
        )

        response = self.client.post(
            reverse("property-blocks-release", args=[self.property.id]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=3))},
            format="json",
        )

        self.assertEqual(response.data["released"], [])
        slots = DateSlot.objects.filter(property=self.property, date__lt=self.start + timedelta(days=2))
        self.assertEqual(
            sorted(slots.values_list("status", "source")),
            [(DateSlot.Status.BLOCKED, link.slot_source)] * 2,
        )
