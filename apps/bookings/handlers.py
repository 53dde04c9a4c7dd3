"""Message bus subscribers for booking events."""

import logging

from django.conf import settings
from django.db.models import F

from shared.application.message_bus import message_bus

from .events import BookingCancelled, BookingConfirmed, BookingCreated
from .models import Booking
from .payments import ChargeRequest, get_payment_gateway

logger = logging.getLogger(__name__)


@message_bus.subscribe(BookingCreated)
def request_payment(event: BookingCreated) -> None:
    """Instant bookings: ask the gateway for a charge and start the hold timer."""
    if event.status != Booking.Status.PENDING_PAYMENT:
        return
    booking = Booking.objects.filter(pk=event.booking_id).first()
    if booking is None:
        return

    reference = get_payment_gateway().request_charge(
        ChargeRequest(
            booking_id=booking.pk,
            booking_code=booking.booking_code,
            amount=booking.total_price,
            currency=booking.currency,
        )
    )
    Booking.objects.filter(pk=booking.pk, payment_reference="").update(payment_reference=reference)

    from .tasks import expire_booking_if_unpaid

    hold_seconds = settings.BOOKINGS["PAYMENT_HOLD_MINUTES"] * 60
    expire_booking_if_unpaid.apply_async(args=[booking.pk], countdown=hold_seconds)


@message_bus.subscribe(BookingCreated)
def notify_owner_of_request(event: BookingCreated) -> None:
    if event.status != Booking.Status.PENDING_APPROVAL:
        return
    owner_email = (
        Booking.objects.filter(pk=event.booking_id)
        .annotate(owner_email=F("property__owner__email"))
        .values_list("owner_email", flat=True)
        .first()
    )
    logger.info("Booking request %s awaits approval from %s", event.booking_id, owner_email)


@message_bus.subscribe(BookingConfirmed)
def notify_booking_confirmed(event: BookingConfirmed) -> None:
    logger.info("Booking %s confirmed for guest %s", event.booking_id, event.guest_id)


@message_bus.subscribe(BookingCancelled)
def notify_booking_cancelled(event: BookingCancelled) -> None:
    logger.info(
        "Booking %s cancelled (%s: %s)",
        event.booking_id,
        event.source,
        event.reason or "-",
    )
