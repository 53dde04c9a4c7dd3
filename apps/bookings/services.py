"""
Booking Reservation Service

Creates bookings so that at most one caller ever wins a calendar night and
drives the rest of the booking lifecycle (payment, check-in, completion,
cancellation).

Reservation unit of work:
1. lock the property row
2. re-validate the request and re-check overlaps under the lock
3. price the stay and insert the booking
4. compare-and-swap the covered DateSlots from available to pending;
   any shortfall raises SlotConflict and rolls everything back
"""

from __future__ import annotations

import logging
import time
from datetime import date, timedelta

from django.conf import settings  # type: ignore
from django.db import IntegrityError, OperationalError, connection  # type: ignore
from django.utils import timezone  # type: ignore

from apps.calendars import reconciler
from apps.properties import pricing, slots
from apps.properties.events import AvailabilityChanged
from apps.properties.models import Property
from shared.application.uow import DjangoUnitOfWork

from . import conflicts, lifecycle
from .approval import initial_status
from .events import BookingCreated
from .exceptions import (
    BookingTimeout,
    CapacityExceeded,
    DateRangeInvalid,
    IdempotencyKeyMismatch,
    InvalidTransition,
    PaymentTimeout,
    PropertyInactive,
    PropertyNotFound,
    SlotConflict,
)
from .models import Booking
from .payments import PaymentResult

logger = logging.getLogger(__name__)


def _booking_settings() -> dict:
    return settings.BOOKINGS


def validate_request(property_obj: Property, check_in: date, check_out: date, guests_count: int) -> None:
    """Raise the matching engine error when the request can never succeed"""
    if check_in >= check_out:
        raise DateRangeInvalid("Check-out must be after check-in.")
    if check_in < timezone.localdate():
        raise DateRangeInvalid("Check-in cannot be in the past.")
    if check_out > slots.horizon_end():
        raise DateRangeInvalid("Dates are beyond the bookable horizon.")
    nights = (check_out - check_in).days
    if nights < property_obj.min_nights or nights > property_obj.max_nights:
        raise DateRangeInvalid(
            f"Stays must be between {property_obj.min_nights} and {property_obj.max_nights} nights.",
            min_nights=property_obj.min_nights,
            max_nights=property_obj.max_nights,
        )
    if guests_count < 1 or guests_count > property_obj.capacity:
        raise CapacityExceeded(
            f"This property accepts at most {property_obj.capacity} guests.",
            capacity=property_obj.capacity,
        )
    if not property_obj.is_active:
        raise PropertyInactive()


def _replay(idempotency_key: str, *, property_id, guest, check_in, check_out, guests_count) -> Booking | None:
    """The booking previously created with this key, if the request matches it"""
    booking = Booking.objects.filter(idempotency_key=idempotency_key).first()
    if booking is None:
        return None
    same_request = (
        booking.property_id == property_id
        and booking.guest_id == guest.pk
        and booking.check_in == check_in
        and booking.check_out == check_out
        and booking.guests_count == guests_count
    )
    if not same_request:
        raise IdempotencyKeyMismatch(idempotency_key=idempotency_key)
    logger.info("Replayed booking %s for idempotency key %s", booking.booking_code, idempotency_key)
    return booking


def _apply_statement_timeout(seconds: float) -> None:
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute("SET LOCAL statement_timeout = %s", [int(seconds * 1000)])


def _reserve(
    *,
    property_id: int,
    guest,
    check_in: date,
    check_out: date,
    guests_count: int,
    idempotency_key: str,
    deadline: float,
) -> Booking:
    with DjangoUnitOfWork() as uow:
        _apply_statement_timeout(max(deadline - time.monotonic(), 0.001))
        try:
            property_obj = slots.lock_property(property_id)
        except Property.DoesNotExist:
            raise PropertyNotFound(property_id=property_id) from None
        # A parallel request with the same key may have committed while we waited.
        existing = _replay(
            idempotency_key,
            property_id=property_id,
            guest=guest,
            check_in=check_in,
            check_out=check_out,
            guests_count=guests_count,
        )
        if existing is not None:
            return existing
        validate_request(property_obj, check_in, check_out, guests_count)

        blocked_by_import = reconciler.imported_block_ranges(property_obj, check_in, check_out)
        if conflicts.overlaps(property_id, check_in, check_out) or blocked_by_import:
            raise SlotConflict(
                conflicts=conflicts.conflicting_ranges(property_id, check_in, check_out) or blocked_by_import
            )

        quote = pricing.price(property_obj, check_in, check_out, guests_count)
        status = initial_status(property_obj)
        expires_at = None
        if status == Booking.Status.PENDING_PAYMENT:
            expires_at = timezone.now() + timedelta(minutes=_booking_settings()["PAYMENT_HOLD_MINUTES"])

        booking = Booking.objects.create(
            property=property_obj,
            guest=guest,
            idempotency_key=idempotency_key,
            check_in=check_in,
            check_out=check_out,
            guests_count=guests_count,
            status=status,
            price_breakdown=quote.to_dict(),
            total_price=quote.total,
            currency=quote.currency,
            expires_at=expires_at,
        )
        claimed = slots.claim(property_obj, check_in, check_out, booking)
        if claimed != booking.nights:
            logger.info(
                "Slot claim for property %s %s..%s got %s of %s nights",
                property_id,
                check_in,
                check_out,
                claimed,
                booking.nights,
            )
            raise SlotConflict(
                conflicts=conflicts.conflicting_ranges(
                    property_id, check_in, check_out, exclude_booking_id=booking.pk
                )
            )

        if time.monotonic() > deadline:
            raise BookingTimeout()

        booking.add_event(BookingCreated.for_booking(booking))
        uow.collect_events(booking)
        uow.add_event(
            AvailabilityChanged(
                aggregate_id=property_id,
                property_id=property_id,
                ranges=[booking.date_range],
                reason="booking_created",
            )
        )
    logger.info(
        "Booking %s created for property %s %s..%s (%s)",
        booking.booking_code,
        property_id,
        check_in,
        check_out,
        booking.status,
    )
    return booking


def create_booking(
    *,
    property_id: int,
    guest,
    check_in: date,
    check_out: date,
    guests_count: int,
    idempotency_key: str,
) -> Booking:
    """
    Reserve ``[check_in, check_out)`` for ``guest``.

    Replaying an idempotency key with the same parameters returns the
    original booking; with different parameters it raises
    IdempotencyKeyMismatch. Lock contention is retried with exponential
    backoff and finally reported as SlotConflict.
    """
    request = dict(
        property_id=property_id,
        guest=guest,
        check_in=check_in,
        check_out=check_out,
        guests_count=guests_count,
    )
    existing = _replay(idempotency_key, **request)
    if existing is not None:
        return existing

    config = _booking_settings()
    attempts = max(1, int(config["CREATE_ATTEMPTS"]))
    backoff = float(config["CREATE_BACKOFF_SECONDS"])
    deadline = time.monotonic() + float(config["CREATE_TIMEOUT_SECONDS"])

    for attempt in range(1, attempts + 1):
        try:
            return _reserve(idempotency_key=idempotency_key, deadline=deadline, **request)
        except IntegrityError:
            # A concurrent request with the same key won the insert.
            existing = _replay(idempotency_key, **request)
            if existing is not None:
                return existing
            if attempt == attempts:
                raise SlotConflict() from None
        except OperationalError as exc:
            if time.monotonic() > deadline:
                raise BookingTimeout() from exc
            logger.info("Booking attempt %s/%s hit database contention: %s", attempt, attempts, exc)
            if attempt == attempts:
                raise SlotConflict(
                    conflicts=conflicts.conflicting_ranges(property_id, check_in, check_out)
                ) from exc
        time.sleep(backoff * (2 ** (attempt - 1)))
    raise SlotConflict()


def confirm_payment(booking_id: int, reference: str = "") -> Booking:
    """
    Payment received. Duplicate and late deliveries are tolerated: a
    confirmed booking stays confirmed and a cancelled one is left alone.
    """
    with DjangoUnitOfWork() as uow:
        booking = lifecycle.lock_booking(booking_id)
        if booking.status != Booking.Status.PENDING_PAYMENT:
            logger.warning(
                "Ignoring payment for booking %s in status %s (reference %s)",
                booking.booking_code,
                booking.status,
                reference or "-",
            )
            return booking
        fields = {"payment_reference": reference} if reference else {}
        lifecycle.confirm(booking, uow, **fields)
    return booking


def fail_payment(booking_id: int, reason: str = "") -> Booking:
    with DjangoUnitOfWork() as uow:
        booking = lifecycle.lock_booking(booking_id)
        if booking.status != Booking.Status.PENDING_PAYMENT:
            logger.warning(
                "Ignoring failed payment for booking %s in status %s",
                booking.booking_code,
                booking.status,
            )
            return booking
        lifecycle.cancel(
            booking,
            uow,
            source=Booking.CancellationSource.SYSTEM,
            reason=reason or "payment_failed",
        )
    return booking


def apply_payment_result(result: PaymentResult) -> Booking:
    if result.is_paid:
        return confirm_payment(result.booking_id, result.reference)
    return fail_payment(result.booking_id, result.reason)


def expire_unpaid(booking_id: int, now=None) -> bool:
    """Cancel a booking whose payment hold lapsed. Returns True if it was cancelled."""
    with DjangoUnitOfWork() as uow:
        booking = lifecycle.lock_booking(booking_id)
        if not booking.should_expire(now):
            return False
        return lifecycle.cancel(
            booking,
            uow,
            source=Booking.CancellationSource.SYSTEM,
            reason=PaymentTimeout.code,
        )


def cancel_booking(booking_id: int, *, source: str, reason: str = "") -> Booking:
    with DjangoUnitOfWork() as uow:
        booking = lifecycle.lock_booking(booking_id)
        if booking.status == Booking.Status.COMPLETED:
            raise InvalidTransition(
                "Completed bookings cannot be cancelled.",
                current_status=booking.status,
                requested_status=Booking.Status.CANCELLED,
            )
        lifecycle.cancel(booking, uow, source=source, reason=reason)
    return booking


def check_in(booking_id: int) -> Booking:
    with DjangoUnitOfWork() as uow:
        booking = lifecycle.lock_booking(booking_id)
        lifecycle.check_in(booking, uow)
    return booking


def complete(booking_id: int) -> Booking:
    with DjangoUnitOfWork() as uow:
        booking = lifecycle.lock_booking(booking_id)
        lifecycle.complete(booking, uow)
    return booking
