"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import DomainError

from . import services
from .models import Booking

logger = logging.getLogger(__name__)


@shared_task(name="bookings.expire_booking_if_unpaid")
def expire_booking_if_unpaid(booking_id: int) -> bool:
    """Payment hold timer of a single booking. Scheduled when the booking is created."""
    try:
        return services.expire_unpaid(booking_id)
    except DomainError as exc:
        logger.warning("Could not expire booking %s: %s", booking_id, exc)
        return False


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_unpaid_bookings")
def expire_unpaid_bookings() -> dict[str, int]:
    """
    Sweep of bookings whose payment hold lapsed.

    Catches holds whose timer task was lost. Runs every minute.
    """
    now = timezone.now()
    expired_count = 0

    booking_ids = Booking.objects.filter(
        status=Booking.Status.PENDING_PAYMENT,
        expires_at__lte=now,
    ).values_list("id", flat=True)

    for booking_id in list(booking_ids):
        try:
            if services.expire_unpaid(booking_id, now=now):
                expired_count += 1
        except Exception as e:
            logger.error("Error expiring booking %s: %s", booking_id, e, exc_info=True)

    if expired_count > 0:
        logger.info("Expired %s unpaid bookings", expired_count)

    return {"expired": expired_count}


@shared_task(name="bookings.start_checked_in_bookings")
def start_checked_in_bookings() -> dict[str, int]:
    """Confirmed bookings whose check-in day has come move to CHECKED_IN. Runs hourly."""
    today = timezone.localdate()
    updated_count = 0

    booking_ids = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        check_in__lte=today,
    ).values_list("id", flat=True)

    for booking_id in list(booking_ids):
        try:
            services.check_in(booking_id)
            updated_count += 1
        except Exception as e:
            logger.error("Error checking in booking %s: %s", booking_id, e, exc_info=True)

    if updated_count > 0:
        logger.info("Checked in %s bookings", updated_count)

    return {"updated": updated_count}


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """Checked-in bookings past their check-out day are completed. Runs hourly."""
    today = timezone.localdate()
    completed_count = 0

    booking_ids = Booking.objects.filter(
        status=Booking.Status.CHECKED_IN,
        check_out__lte=today,
    ).values_list("id", flat=True)

    for booking_id in list(booking_ids):
        try:
            services.complete(booking_id)
            completed_count += 1
        except Exception as e:
            logger.error("Error completing booking %s: %s", booking_id, e, exc_info=True)

    if completed_count > 0:
        logger.info("Completed %s bookings", completed_count)

    return {"completed": completed_count}
