"""Integration tests for booking API endpoints."""

from __future__ import annotations

import json
from datetime import timedelta

from django.conf import settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.bookings.payments import sign_payload
from apps.properties.models import DateSlot, Property
from apps.users.models import User
from shared.testing import create_property, create_user


class BookingAPITests(APITestCase):
    """Covers creation, idempotent replays, conflicts and cancellation."""

    def setUp(self) -> None:
        self.guest = create_user()
        self.owner = create_user(role=User.Role.OWNER)
        self.property = create_property(self.owner)
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("booking-list")
        self.check_in = timezone.localdate() + timedelta(days=5)

    def _payload(self, nights: int = 3, key: str = "req-1", offset: int = 0, **extra) -> dict:
        check_in = self.check_in + timedelta(days=offset)
        payload = {
            "propertyId": self.property.id,
            "start": str(check_in),
            "end": str(check_in + timedelta(days=nights)),
            "guests": 2,
            "idempotencyKey": key,
        }
        payload.update(extra)
        return payload

    def test_guest_can_create_booking(self) -> None:
        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], Booking.Status.PENDING_PAYMENT)
        self.assertEqual(response.data["nights"], 3)
        self.assertEqual(response.data["price_breakdown"]["total"], "3622.50")
        self.assertEqual(
            DateSlot.objects.filter(property=self.property, status=DateSlot.Status.PENDING).count(),
            3,
        )

    def test_replay_returns_same_booking(self) -> None:
        first = self.client.post(self.list_url, self._payload(), format="json")
        second = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data["id"], second.data["id"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_idempotency_key_header(self) -> None:
        payload = self._payload()
        payload.pop("idempotencyKey")

        response = self.client.post(self.list_url, payload, format="json", HTTP_IDEMPOTENCY_KEY="header-key")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Booking.objects.filter(idempotency_key="header-key").exists())

    def test_missing_idempotency_key(self) -> None:
        payload = self._payload()
        payload.pop("idempotencyKey")

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_key_reuse_with_other_dates(self) -> None:
        self.client.post(self.list_url, self._payload(), format="json")

        response = self.client.post(self.list_url, self._payload(nights=4), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "idempotency_key_mismatch")

    def test_overlapping_booking_conflicts(self) -> None:
        self.client.post(self.list_url, self._payload(), format="json")
        self.client.force_authenticate(create_user())

        response = self.client.post(self.list_url, self._payload(key="req-2", offset=2), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "slot_conflict")
        self.assertEqual(response.data["conflicts"], [
            {"start": str(self.check_in + timedelta(days=2)), "end": str(self.check_in + timedelta(days=3))},
        ])

    def test_capacity_and_dates_are_validated(self) -> None:
        response = self.client.post(self.list_url, self._payload(guests=10), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "capacity_exceeded")

        response = self.client.post(self.list_url, self._payload(nights=0, key="zero"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "date_range_invalid")

    def test_inactive_property_rejects_bookings(self) -> None:
        self.property.status = Property.Status.INACTIVE
        self.property.save(update_fields=["status"])

        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "property_inactive")

    def test_anonymous_users_cannot_book(self) -> None:
        self.client.force_authenticate(None)
        response = self.client.post(self.list_url, self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_only_shows_own_bookings(self) -> None:
        self.client.post(self.list_url, self._payload(), format="json")
        self.client.force_authenticate(create_user())

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_owner_sees_bookings_of_their_property(self) -> None:
        self.client.post(self.list_url, self._payload(), format="json")
        self.client.force_authenticate(self.owner)

        response = self.client.get(self.list_url, {"status": Booking.Status.PENDING_PAYMENT})

        self.assertEqual(len(response.data), 1)

    def test_guest_cancel_frees_nights(self) -> None:
        booking_id = self.client.post(self.list_url, self._payload(), format="json").data["id"]

        response = self.client.post(
            reverse("booking-cancel", args=[booking_id]),
            {"reason": "plans changed"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Booking.Status.CANCELLED)
        self.assertEqual(response.data["cancellation_source"], Booking.CancellationSource.GUEST)
        self.assertFalse(DateSlot.objects.filter(booking_id=booking_id).exists())

    def test_owner_approves_request(self) -> None:
        self.property.booking_mode = Property.BookingMode.REQUEST
        self.property.save(update_fields=["booking_mode"])
        booking_id = self.client.post(self.list_url, self._payload(), format="json").data["id"]

        response = self.client.post(reverse("booking-approve", args=[booking_id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.owner)
        response = self.client.post(reverse("booking-approve", args=[booking_id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Booking.Status.CONFIRMED)

    def test_owner_declines_request(self) -> None:
        self.property.booking_mode = Property.BookingMode.REQUEST
        self.property.save(update_fields=["booking_mode"])
        booking_id = self.client.post(self.list_url, self._payload(), format="json").data["id"]
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("booking-decline", args=[booking_id]),
            {"reason": "renovation"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Booking.Status.CANCELLED)
        self.assertEqual(response.data["cancellation_reason"], "renovation")


class PaymentCallbackAPITests(APITestCase):
    """Signed payment callbacks are always answered with 200."""

    def setUp(self) -> None:
        self.guest = create_user()
        self.property = create_property(create_user(role=User.Role.OWNER))
        self.url = reverse("payment-callback")
        check_in = timezone.localdate() + timedelta(days=5)
        self.client.force_authenticate(self.guest)
        response = self.client.post(
            reverse("booking-list"),
            {
                "propertyId": self.property.id,
                "start": str(check_in),
                "end": str(check_in + timedelta(days=2)),
                "guests": 1,
                "idempotencyKey": "pay-me",
            },
            format="json",
        )
        self.booking_id = response.data["id"]
        self.client.force_authenticate(None)

    def _callback(self, payload: dict, signature: str | None = None):
        body = json.dumps(payload).encode("utf-8")
        if signature is None:
            signature = sign_payload(body, settings.BOOKINGS["PAYMENT_WEBHOOK_SECRET"])
        return self.client.post(
            self.url,
            body,
            content_type="application/json",
            HTTP_X_STAYLINE_SIGNATURE=signature,
        )

    def test_paid_callback_confirms_booking(self) -> None:
        response = self._callback({"bookingId": self.booking_id, "result": "paid", "reference": "pay_abc"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"status": "ok", "booking_status": Booking.Status.CONFIRMED})
        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.payment_reference, "pay_abc")

    def test_failed_callback_cancels_booking(self) -> None:
        response = self._callback({"bookingId": self.booking_id, "result": "failed", "reason": "card_declined"})

        self.assertEqual(response.data["booking_status"], Booking.Status.CANCELLED)
        self.assertFalse(DateSlot.objects.filter(booking_id=self.booking_id).exists())

    def test_duplicate_callback_is_harmless(self) -> None:
        payload = {"bookingId": self.booking_id, "result": "paid", "reference": "pay_abc"}
        self._callback(payload)

        response = self._callback(payload)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking_status"], Booking.Status.CONFIRMED)

    def test_malformed_and_unknown_callbacks_are_ignored(self) -> None:
        response = self._callback({"result": "paid"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"status": "ignored", "reason": "malformed"})

        response = self._callback({"bookingId": 987654, "result": "paid"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"status": "ignored", "reason": "booking_not_found"})

        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.status, Booking.Status.PENDING_PAYMENT)

    def test_unsigned_callback_is_rejected(self) -> None:
        response = self.client.post(self.url, {"bookingId": self.booking_id, "result": "paid"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.status, Booking.Status.PENDING_PAYMENT)

    def test_forged_signature_is_rejected(self) -> None:
        payload = {"bookingId": self.booking_id, "result": "paid"}
        forged = sign_payload(json.dumps(payload).encode("utf-8"), "not-the-secret")

        response = self._callback(payload, signature=forged)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Booking.objects.get(pk=self.booking_id).status, Booking.Status.PENDING_PAYMENT)

    def test_callbacks_are_refused_without_a_configured_secret(self) -> None:
        payload = {"bookingId": self.booking_id, "result": "paid"}
        signature = sign_payload(json.dumps(payload).encode("utf-8"), "")

        with self.settings(BOOKINGS={**settings.BOOKINGS, "PAYMENT_WEBHOOK_SECRET": ""}):
            response = self._callback(payload, signature=signature)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Booking.objects.get(pk=self.booking_id).status, Booking.Status.PENDING_PAYMENT)
