"""
Booking Domain Events

Events that represent things that have happened to a booking.
These are published after successful transaction commits.
"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingEvent(DomainEvent):
    booking_id: int
    property_id: int
    guest_id: int
    status: str = ''

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({
            'booking_id': self.booking_id,
            'property_id': self.property_id,
            'guest_id': self.guest_id,
            'status': self.status,
        })
        return payload

    @classmethod
    def for_booking(cls, booking, **extra):
        return cls(
            aggregate_id=booking.pk,
            booking_id=booking.pk,
            property_id=booking.property_id,
            guest_id=booking.guest_id,
            status=booking.status,
            **extra,
        )


@dataclass(kw_only=True)
class BookingCreated(BookingEvent):
    """
    Event: A new booking was created (pending payment or pending approval)

    Triggers:
    - Charge request to the payment gateway (instant bookings)
    - Payment hold expiry timer (Celery task)
    - Owner approval request (request-to-book)
    """


@dataclass(kw_only=True)
class BookingConfirmed(BookingEvent):
    """Event: payment received or owner approved; the nights are booked"""


@dataclass(kw_only=True)
class BookingCheckedIn(BookingEvent):
    """Event: Guest has checked in (CONFIRMED -> CHECKED_IN)"""


@dataclass(kw_only=True)
class BookingCompleted(BookingEvent):
    """Event: Guest has checked out (CHECKED_IN -> COMPLETED)"""


@dataclass(kw_only=True)
class BookingCancelled(BookingEvent):
    """
    Event: Booking cancelled by guest, owner or the system

    ``reason`` is free text except for system cancellations, which use the
    error code that caused them (e.g. ``payment_timeout``).
    """
    source: str = ''
    reason: str = ''

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({'source': self.source, 'reason': self.reason})
        return payload
