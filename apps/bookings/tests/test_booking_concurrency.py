"""Concurrent reservations against one property."""

from __future__ import annotations

import threading
from datetime import timedelta

from django.db import connection
from django.test import TransactionTestCase
from django.utils import timezone

from apps.bookings import services
from apps.bookings.exceptions import SlotConflict
from apps.bookings.models import Booking
from apps.properties.models import DateSlot
from apps.users.models import User
from shared.testing import create_property, create_user


class ConcurrentBookingTests(TransactionTestCase):
    """Each thread runs on its own database connection."""

    workers = 6

    def setUp(self) -> None:
        self.property = create_property(create_user(role=User.Role.OWNER))
        self.guests = [create_user() for _ in range(self.workers)]
        self.check_in = timezone.localdate() + timedelta(days=30)

    def _race(self, request_for):
        barrier = threading.Barrier(self.workers)
        outcomes: list = []
        lock = threading.Lock()

        def worker(index: int) -> None:
            try:
                barrier.wait()
                booking = services.create_booking(**request_for(index))
                result = booking.pk
            except Exception as exc:  # collected and asserted on below
                result = exc
            finally:
                connection.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker, args=(index,)) for index in range(self.workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes

    def test_only_one_guest_wins_the_same_nights(self) -> None:
        def request_for(index):
            return dict(
                property_id=self.property.id,
                guest=self.guests[index],
                check_in=self.check_in + timedelta(days=index % 2),
                check_out=self.check_in + timedelta(days=3),
                guests_count=1,
                idempotency_key=f"race-{index}",
            )

        outcomes = self._race(request_for)

        winners = [outcome for outcome in outcomes if isinstance(outcome, int)]
        losers = [outcome for outcome in outcomes if not isinstance(outcome, int)]
        self.assertEqual(len(winners), 1)
        self.assertTrue(all(isinstance(outcome, SlotConflict) for outcome in losers), losers)
        self.assertEqual(Booking.objects.count(), 1)

        winner = Booking.objects.get()
        held = DateSlot.objects.filter(property=self.property).exclude(status=DateSlot.Status.AVAILABLE)
        self.assertEqual(set(held.values_list("booking_id", flat=True)), {winner.pk})
        self.assertEqual(held.count(), winner.nights)

    def test_same_key_from_parallel_retries_creates_one_booking(self) -> None:
        guest = self.guests[0]

        def request_for(index):
            return dict(
                property_id=self.property.id,
                guest=guest,
                check_in=self.check_in,
                check_out=self.check_in + timedelta(days=2),
                guests_count=2,
                idempotency_key="retry-storm",
            )

        outcomes = self._race(request_for)

        self.assertTrue(all(isinstance(outcome, int) for outcome in outcomes), outcomes)
        self.assertEqual(len(set(outcomes)), 1)
        self.assertEqual(Booking.objects.count(), 1)
