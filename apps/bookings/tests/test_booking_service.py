"""Reservation service and booking lifecycle."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.bookings import approval, services
from apps.bookings.events import BookingCancelled
from apps.bookings.exceptions import (
    BookingNotFound,
    CapacityExceeded,
    DateRangeInvalid,
    IdempotencyKeyMismatch,
    InvalidTransition,
    NotAwaitingApproval,
    NotPropertyOwner,
    PropertyInactive,
    PropertyNotFound,
    SlotConflict,
)
from apps.bookings.models import Booking
from apps.bookings.payments import PaymentResult
from apps.properties.events import AvailabilityChanged
from apps.properties.models import DateSlot, PricingRule, Property
from shared.application.message_bus import message_bus
from shared.application.uow import DjangoUnitOfWork
from shared.testing import create_property, create_user

Status = Booking.Status


@pytest.fixture
def start():
    return timezone.localdate() + timedelta(days=10)


@pytest.fixture
def book(listing, guest, start):
    def _book(offset=0, nights=2, key=None, who=None, property_obj=None, guests=2):
        check_in = start + timedelta(days=offset)
        return services.create_booking(
            property_id=(property_obj or listing).id,
            guest=who or guest,
            check_in=check_in,
            check_out=check_in + timedelta(days=nights),
            guests_count=guests,
            idempotency_key=key or f"key-{offset}-{nights}",
        )

    return _book


def slot_statuses(booking):
    return list(
        DateSlot.objects.filter(property_id=booking.property_id, date__gte=booking.check_in, date__lt=booking.check_out)
        .order_by("date")
        .values_list("status", flat=True)
    )


@pytest.mark.django_db
def test_instant_booking_holds_nights_pending(book):
    booking = book()

    assert booking.status == Status.PENDING_PAYMENT
    assert booking.expires_at is not None
    assert booking.total_price == Decimal(booking.price_breakdown["total"])
    assert slot_statuses(booking) == [DateSlot.Status.PENDING, DateSlot.Status.PENDING]
    assert DateSlot.objects.filter(booking=booking).count() == 2


@pytest.mark.django_db
def test_replayed_key_returns_original_booking(book):
    first = book(key="same")
    second = book(key="same")

    assert first.pk == second.pk
    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_reused_key_with_other_parameters_is_rejected(book):
    book(key="same")

    with pytest.raises(IdempotencyKeyMismatch):
        book(key="same", nights=3)


@pytest.mark.django_db
def test_overlapping_request_reports_conflicts(book, guest, start):
    book()
    other_guest = create_user()

    with pytest.raises(SlotConflict) as excinfo:
        book(offset=1, nights=3, who=other_guest)

    assert excinfo.value.conflicts == [
        {"start": str(start + timedelta(days=1)), "end": str(start + timedelta(days=2))},
    ]
    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_back_to_back_stays_are_allowed(book):
    first = book(nights=2)
    second = book(offset=2, nights=2)

    assert first.check_out == second.check_in
    assert second.status == Status.PENDING_PAYMENT


@pytest.mark.django_db
def test_manual_blocks_are_respected(book, listing, start):
    DateSlot.objects.create(property=listing, date=start + timedelta(days=1), status=DateSlot.Status.BLOCKED)

    with pytest.raises(SlotConflict):
        book()


@pytest.mark.django_db
@pytest.mark.parametrize(
    "offset, nights, guests, error",
    [
        (-12, 2, 1, DateRangeInvalid),
        (0, 0, 1, DateRangeInvalid),
        (0, 31, 1, DateRangeInvalid),
        (0, 2, 5, CapacityExceeded),
        (800, 2, 1, DateRangeInvalid),
    ],
)
def test_invalid_requests(book, offset, nights, guests, error):
    with pytest.raises(error):
        book(offset=offset, nights=nights, guests=guests)
    assert not Booking.objects.exists()


@pytest.mark.django_db
def test_inactive_and_missing_properties(book, owner, guest, start):
    inactive = create_property(owner, status=Property.Status.INACTIVE)

    with pytest.raises(PropertyInactive):
        book(property_obj=inactive)
    with pytest.raises(PropertyNotFound):
        services.create_booking(
            property_id=999999,
            guest=guest,
            check_in=start,
            check_out=start + timedelta(days=1),
            guests_count=1,
            idempotency_key="missing",
        )


@pytest.mark.django_db
def test_price_snapshot_survives_rule_changes(book, listing):
    booking = book()
    snapshot = dict(booking.price_breakdown)

    PricingRule.objects.create(property=listing, kind=PricingRule.Kind.OVERRIDE, value=Decimal("5000"))
    booking.refresh_from_db()

    assert booking.price_breakdown == snapshot


@pytest.mark.django_db
def test_payment_confirms_and_books_nights(book):
    booking = book()

    confirmed = services.apply_payment_result(PaymentResult.paid(booking.pk, "pay_123"))

    assert confirmed.status == Status.CONFIRMED
    assert confirmed.payment_reference == "pay_123"
    assert confirmed.confirmed_at is not None
    assert confirmed.expires_at is None
    assert slot_statuses(booking) == [DateSlot.Status.BOOKED, DateSlot.Status.BOOKED]


@pytest.mark.django_db
def test_duplicate_payment_is_a_no_op(book):
    booking = book()
    first = services.confirm_payment(booking.pk, "pay_1")
    second = services.confirm_payment(booking.pk, "pay_2")

    assert second.status == Status.CONFIRMED
    assert second.confirmed_at == first.confirmed_at
    assert second.payment_reference == "pay_1"


@pytest.mark.django_db
def test_failed_payment_cancels_and_frees_nights(book):
    booking = book()

    cancelled = services.apply_payment_result(PaymentResult.failed(booking.pk, "card_declined"))

    assert cancelled.status == Status.CANCELLED
    assert cancelled.cancellation_source == Booking.CancellationSource.SYSTEM
    assert cancelled.cancellation_reason == "card_declined"
    assert slot_statuses(booking) == [DateSlot.Status.AVAILABLE, DateSlot.Status.AVAILABLE]


@pytest.mark.django_db
def test_late_payment_leaves_cancelled_booking_alone(book):
    booking = book()
    services.cancel_booking(booking.pk, source=Booking.CancellationSource.GUEST)

    result = services.confirm_payment(booking.pk, "pay_late")

    assert result.status == Status.CANCELLED
    assert slot_statuses(booking) == [DateSlot.Status.AVAILABLE, DateSlot.Status.AVAILABLE]


@pytest.mark.django_db
def test_unpaid_booking_expires_after_hold(book):
    booking = book()

    assert services.expire_unpaid(booking.pk) is False
    assert services.expire_unpaid(booking.pk, now=booking.expires_at + timedelta(seconds=1)) is True

    booking.refresh_from_db()
    assert booking.status == Status.CANCELLED
    assert booking.cancellation_reason == "payment_timeout"
    assert slot_statuses(booking) == [DateSlot.Status.AVAILABLE, DateSlot.Status.AVAILABLE]


@pytest.mark.django_db
def test_freed_nights_can_be_booked_again(book):
    booking = book()
    services.cancel_booking(booking.pk, source=Booking.CancellationSource.GUEST)

    again = book(key="second-try", who=create_user())

    assert again.status == Status.PENDING_PAYMENT


@pytest.mark.django_db
def test_stay_runs_through_check_in_and_completion(book):
    booking = book()
    services.confirm_payment(booking.pk)

    assert services.check_in(booking.pk).status == Status.CHECKED_IN
    completed = services.complete(booking.pk)

    assert completed.status == Status.COMPLETED
    assert completed.completed_at is not None
    assert not DateSlot.objects.filter(booking=booking).exists()


@pytest.mark.django_db
def test_completed_booking_cannot_be_cancelled(book):
    booking = book()
    services.confirm_payment(booking.pk)
    services.check_in(booking.pk)
    services.complete(booking.pk)

    with pytest.raises(InvalidTransition):
        services.cancel_booking(booking.pk, source=Booking.CancellationSource.GUEST)


@pytest.mark.django_db
def test_unknown_booking_raises_not_found():
    with pytest.raises(BookingNotFound):
        services.confirm_payment(424242)


@pytest.mark.django_db
def test_created_booking_requests_payment_after_commit(book, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        booking = book()

    booking.refresh_from_db()
    assert booking.payment_reference.startswith("pay_")
    assert booking.status == Status.PENDING_PAYMENT


@pytest.mark.django_db
def test_cancellation_event_is_published(book, django_capture_on_commit_callbacks):
    received = []
    handler = received.append
    message_bus.register_event_handler(BookingCancelled, handler)
    booking = book()
    try:
        with django_capture_on_commit_callbacks(execute=True):
            services.cancel_booking(booking.pk, source=Booking.CancellationSource.OWNER, reason="double listed")
    finally:
        message_bus.unregister_event_handler(BookingCancelled, handler)

    assert [(event.booking_id, event.source, event.reason) for event in received] == [
        (booking.pk, "owner", "double listed"),
    ]



@pytest.mark.django_db
def test_events_of_a_rolled_back_unit_of_work_are_dropped(listing, django_capture_on_commit_callbacks):
    received = []
    handler = received.append
    message_bus.register_event_handler(AvailabilityChanged, handler)
    try:
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with DjangoUnitOfWork() as uow:
                    uow.add_event(
                        AvailabilityChanged(aggregate_id=listing.pk, property_id=listing.pk, ranges=[], reason="test")
                    )
                    raise RuntimeError("boom")
            with DjangoUnitOfWork() as uow:
                uow.add_event(
                    AvailabilityChanged(aggregate_id=listing.pk, property_id=listing.pk, ranges=[], reason="kept")
                )
    finally:
        message_bus.unregister_event_handler(AvailabilityChanged, handler)

    assert len(callbacks) == 1
    assert [event.reason for event in received] == ["kept"]


# Approval workflow


@pytest.fixture
def request_listing(owner):
    return create_property(owner, booking_mode=Property.BookingMode.REQUEST)


@pytest.mark.django_db
def test_request_to_book_waits_for_owner(book, request_listing, owner):
    booking = book(property_obj=request_listing)

    assert booking.status == Status.PENDING_APPROVAL
    assert booking.expires_at is None
    assert slot_statuses(booking) == [DateSlot.Status.PENDING, DateSlot.Status.PENDING]

    approved = approval.approve(booking.pk, owner)

    assert approved.status == Status.CONFIRMED
    assert slot_statuses(booking) == [DateSlot.Status.BOOKED, DateSlot.Status.BOOKED]


@pytest.mark.django_db
def test_decline_frees_nights(book, request_listing, owner):
    booking = book(property_obj=request_listing)

    declined = approval.decline(booking.pk, owner, "not available")

    assert declined.status == Status.CANCELLED
    assert declined.cancellation_source == Booking.CancellationSource.OWNER
    assert slot_statuses(booking) == [DateSlot.Status.AVAILABLE, DateSlot.Status.AVAILABLE]


@pytest.mark.django_db
def test_only_owner_can_approve(book, request_listing, guest):
    booking = book(property_obj=request_listing)

    with pytest.raises(NotPropertyOwner):
        approval.approve(booking.pk, guest)


@pytest.mark.django_db
def test_instant_bookings_cannot_be_approved(book, owner):
    booking = book()

    with pytest.raises(NotAwaitingApproval):
        approval.approve(booking.pk, owner)


# State machine


def test_transitions_follow_lifecycle():
    booking = Booking(status=Status.PENDING_PAYMENT, booking_code="ABC")

    assert booking.transition_to(Status.CONFIRMED) is True
    assert booking.confirmed_at is not None
    assert booking.transition_to(Status.CONFIRMED) is False
    with pytest.raises(InvalidTransition):
        booking.transition_to(Status.COMPLETED)


def test_terminal_statuses_are_final():
    for terminal in Booking.TERMINAL_STATUSES:
        booking = Booking(status=terminal, booking_code="ABC")
        for target in Status.values:
            if target != terminal:
                assert not booking.can_transition_to(target)


def test_should_expire_only_pending_payment():
    now = timezone.now()
    pending = Booking(status=Status.PENDING_PAYMENT, expires_at=now - timedelta(minutes=1))
    confirmed = Booking(status=Status.CONFIRMED, expires_at=now - timedelta(minutes=1))

    assert pending.should_expire(now)
    assert not confirmed.should_expire(now)


def test_payment_result_from_payload():
    result = PaymentResult.from_payload({"bookingId": "12", "status": "PAID", "reference": "pay_x"})

    assert (result.booking_id, result.is_paid, result.reference) == (12, True, "pay_x")
    with pytest.raises(ValueError):
        PaymentResult.from_payload({"bookingId": "x", "result": "paid"})
    with pytest.raises(ValueError):
        PaymentResult.from_payload({"bookingId": 1, "result": "refunded"})
