"""Message bus subscribers for availability changes."""

import logging

from shared.application.message_bus import message_bus

from .events import AvailabilityChanged

logger = logging.getLogger(__name__)


@message_bus.subscribe(AvailabilityChanged)
def log_availability_change(event: AvailabilityChanged) -> None:
    logger.info(
        "Availability changed for property %s (%s): %s",
        event.property_id,
        event.reason,
        ", ".join(str(day_range) for day_range in event.ranges) or "-",
    )
