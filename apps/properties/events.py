"""
Availability Domain Events

Published after commit whenever the DateSlot calendar of a property
changes. Subscribers (notifications, channel managers, websockets) react
to these instead of polling the availability endpoint.
"""

from dataclasses import dataclass, field
from typing import List

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass(kw_only=True)
class AvailabilityChanged(DomainEvent):
    """
    Event: days of a property changed status

    ``reason`` is a short tag such as ``booking_created``,
    ``booking_released``, ``manual_block`` or ``calendar_import``.
    """
    property_id: int
    ranges: List[DateRange] = field(default_factory=list)
    reason: str = ''

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({
            'property_id': self.property_id,
            'ranges': [day_range.as_dict() for day_range in self.ranges],
            'reason': self.reason,
        })
        return payload
