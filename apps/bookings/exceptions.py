"""
Booking Engine Errors

Raised by the reservation service, the approval workflow and the booking
state machine. The API exception handler renders them as
``{"code": ..., "detail": ..., **details}`` with ``http_status``.
"""

from shared.domain.exceptions import DomainError


class DateRangeInvalid(DomainError):
    code = 'date_range_invalid'
    default_message = 'The requested dates are not valid for this property.'


class CapacityExceeded(DomainError):
    code = 'capacity_exceeded'
    default_message = 'Too many guests for this property.'


class PropertyInactive(DomainError):
    code = 'property_inactive'
    http_status = 409
    default_message = 'This property is not accepting bookings.'


class SlotConflict(DomainError):
    """
    Some of the requested nights are already held

    ``conflicts`` lists the overlapping ranges as ``{"start", "end"}`` dicts.
    """
    code = 'slot_conflict'
    http_status = 409
    default_message = 'The requested dates are no longer available.'

    def __init__(self, message: str | None = None, conflicts=None, **details):
        self.conflicts = [
            day_range.as_dict() if hasattr(day_range, 'as_dict') else day_range
            for day_range in (conflicts or [])
        ]
        super().__init__(message, conflicts=self.conflicts, **details)


class IdempotencyKeyMismatch(DomainError):
    code = 'idempotency_key_mismatch'
    http_status = 409
    default_message = 'This idempotency key was already used for a different request.'


class InvalidTransition(DomainError):
    code = 'invalid_transition'
    http_status = 409
    default_message = 'The booking cannot move to the requested status.'


class NotAwaitingApproval(DomainError):
    code = 'not_awaiting_approval'
    http_status = 409
    default_message = 'The booking is not awaiting owner approval.'


class BookingTimeout(DomainError):
    code = 'booking_timeout'
    http_status = 503
    default_message = 'The booking could not be completed in time. Please retry.'


class PaymentTimeout(DomainError):
    """Recorded as the cancellation reason of bookings whose payment hold lapsed"""
    code = 'payment_timeout'
    http_status = 409
    default_message = 'Payment was not received in time.'


class BookingNotFound(DomainError):
    code = 'booking_not_found'
    http_status = 404
    default_message = 'Booking not found.'


class NotPropertyOwner(DomainError):
    code = 'not_property_owner'
    http_status = 403
    default_message = 'Only the property owner can do this.'


class PropertyNotFound(DomainError):
    code = 'property_not_found'
    http_status = 404
    default_message = 'Property not found.'
