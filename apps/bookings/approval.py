"""
Approval Workflow

Request-to-book properties start bookings in ``pending_approval``; the
owner then approves (nights become booked) or declines (nights are freed).
"""

from __future__ import annotations

import logging

from apps.properties.models import Property
from shared.application.uow import DjangoUnitOfWork

from . import lifecycle
from .exceptions import NotAwaitingApproval, NotPropertyOwner
from .models import Booking

logger = logging.getLogger(__name__)


def initial_status(property_obj: Property) -> str:
    if property_obj.booking_mode == Property.BookingMode.REQUEST:
        return Booking.Status.PENDING_APPROVAL
    return Booking.Status.PENDING_PAYMENT


def _locked_for_owner(booking_id: int, owner) -> Booking:
    booking = lifecycle.lock_booking(booking_id)
    if booking.property.owner_id != owner.pk and not getattr(owner, "is_staff", False):
        raise NotPropertyOwner(booking_id=booking_id)
    if booking.status != Booking.Status.PENDING_APPROVAL:
        raise NotAwaitingApproval(booking_id=booking_id, status=booking.status)
    return booking


def approve(booking_id: int, owner) -> Booking:
    with DjangoUnitOfWork() as uow:
        booking = _locked_for_owner(booking_id, owner)
        lifecycle.confirm(booking, uow)
    logger.info("Booking %s approved by owner %s", booking.booking_code, owner.pk)
    return booking


def decline(booking_id: int, owner, reason: str = "") -> Booking:
    with DjangoUnitOfWork() as uow:
        booking = _locked_for_owner(booking_id, owner)
        lifecycle.cancel(
            booking,
            uow,
            source=Booking.CancellationSource.OWNER,
            reason=reason or "declined",
        )
    logger.info("Booking %s declined by owner %s", booking.booking_code, owner.pk)
    return booking
