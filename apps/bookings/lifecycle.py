"""
Booking lifecycle steps shared by the reservation service and the approval
workflow.

Every helper expects to run inside a DjangoUnitOfWork that already holds
the property row lock, and keeps the DateSlot calendar in step with the
booking status it writes.
"""

from __future__ import annotations

import logging

from apps.calendars import reconciler
from apps.properties import slots
from apps.properties.events import AvailabilityChanged
from apps.properties.models import DateSlot
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import collapse_dates

from .events import BookingCancelled, BookingCheckedIn, BookingCompleted, BookingConfirmed
from .exceptions import BookingNotFound
from .models import Booking

logger = logging.getLogger(__name__)


def lock_booking(booking_id: int) -> Booking:
    """Lock the booking's property row, then the booking row"""
    property_id = Booking.objects.filter(pk=booking_id).values_list("property_id", flat=True).first()
    if property_id is None:
        raise BookingNotFound(booking_id=booking_id)
    slots.lock_property(property_id)
    return slots.lock_queryset_if_possible(Booking.objects.all()).get(pk=booking_id)


def confirm(booking: Booking, uow: DjangoUnitOfWork, **fields) -> bool:
    """Move a pending booking to CONFIRMED and its nights from pending to booked"""
    if not booking.transition_to(Booking.Status.CONFIRMED):
        return False
    booking.expires_at = None
    for name, value in fields.items():
        setattr(booking, name, value)
    booking.save(update_fields=["status", "confirmed_at", "expires_at", "updated_at", *fields])
    slots.promote(booking, DateSlot.Status.PENDING, DateSlot.Status.BOOKED)
    booking.add_event(BookingConfirmed.for_booking(booking))
    uow.collect_events(booking)
    logger.info("Booking %s confirmed", booking.booking_code)
    return True


def check_in(booking: Booking, uow: DjangoUnitOfWork) -> bool:
    if not booking.transition_to(Booking.Status.CHECKED_IN):
        return False
    booking.save(update_fields=["status", "checked_in_at", "updated_at"])
    booking.add_event(BookingCheckedIn.for_booking(booking))
    uow.collect_events(booking)
    logger.info("Booking %s checked in", booking.booking_code)
    return True


def complete(booking: Booking, uow: DjangoUnitOfWork) -> bool:
    if not booking.transition_to(Booking.Status.COMPLETED):
        return False
    booking.save(update_fields=["status", "completed_at", "updated_at"])
    release_nights(booking, uow, reason="booking_completed")
    booking.add_event(BookingCompleted.for_booking(booking))
    uow.collect_events(booking)
    logger.info("Booking %s completed", booking.booking_code)
    return True


def cancel(booking: Booking, uow: DjangoUnitOfWork, *, source: str, reason: str = "") -> bool:
    """Cancel and free the nights. Cancelling a cancelled booking is a no-op."""
    if not booking.transition_to(Booking.Status.CANCELLED):
        return False
    booking.cancellation_source = source
    booking.cancellation_reason = reason[:255]
    booking.expires_at = None
    booking.save(
        update_fields=[
            "status",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "expires_at",
            "updated_at",
        ]
    )
    release_nights(booking, uow, reason="booking_cancelled")
    booking.add_event(BookingCancelled.for_booking(booking, source=source, reason=booking.cancellation_reason))
    uow.collect_events(booking)
    logger.info("Booking %s cancelled by %s: %s", booking.booking_code, source, reason or "-")
    return True


def release_nights(booking: Booking, uow: DjangoUnitOfWork, *, reason: str) -> list:
    """
    Free the booking's nights.

    Nights still covered by an imported calendar event (``block`` or
    ``notify`` policy) go straight back to blocked instead of available.
    """
    freed = slots.release(booking)
    if not freed:
        return freed
    reblocked = reconciler.reapply_imported_blocks(booking.property, freed)
    if reblocked:
        logger.info(
            "Re-blocked %s nights of booking %s covered by imported calendars",
            len(reblocked),
            booking.booking_code,
        )
    uow.add_event(
        AvailabilityChanged(
            aggregate_id=booking.property_id,
            property_id=booking.property_id,
            ranges=collapse_dates(freed),
            reason=reason,
        )
    )
    return freed
