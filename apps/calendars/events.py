"""Calendar sync domain events."""

from dataclasses import dataclass
from datetime import date

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class CalendarConflictDetected(DomainEvent):
    """
    Event: an imported event overlaps a local booking

    Triggers:
    - Owner warning so the double booking can be resolved on the other channel
    """
    link_id: int
    property_id: int
    booking_id: int
    uid: str
    start_date: date
    end_date: date
    policy: str

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({
            'link_id': self.link_id,
            'property_id': self.property_id,
            'booking_id': self.booking_id,
            'uid': self.uid,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'policy': self.policy,
        })
        return payload
