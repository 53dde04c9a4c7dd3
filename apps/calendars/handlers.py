"""Message bus subscribers for calendar sync events."""

import logging

from shared.application.message_bus import message_bus

from .events import CalendarConflictDetected

logger = logging.getLogger(__name__)


@message_bus.subscribe(CalendarConflictDetected)
def warn_owner_of_conflict(event: CalendarConflictDetected) -> None:
    logger.warning(
        "Imported event %s [%s - %s) on link %s overlaps booking %s of property %s (policy %s)",
        event.uid,
        event.start_date,
        event.end_date,
        event.link_id,
        event.booking_id,
        event.property_id,
        event.policy,
    )
