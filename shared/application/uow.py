"""
Unit of Work

One database transaction plus the domain events it produced. Events are
handed to the message bus only after the transaction commits; a rollback
drops them.
"""

import logging
from typing import List

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    ``transaction.atomic()`` that publishes collected events on commit.

    Usage:
        with DjangoUnitOfWork() as uow:
            property_obj = slots.lock_property(property_id)
            booking = Booking.objects.create(...)
            booking.add_event(BookingCreated.for_booking(booking))
            uow.collect_events(booking)
        # BookingCreated is published once the transaction has committed
    """

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self._schedule_publish()
            elif self._events:
                logger.warning("Transaction rolled back, dropping %s events", len(self._events))
        finally:
            self._events = []
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def add_event(self, event: DomainEvent):
        """Record an event that does not belong to an aggregate"""
        self._events.append(event)

    def collect_events(self, aggregate):
        """Take over the events recorded on a Booking or calendar link"""
        pending = aggregate.events
        if not pending:
            return
        self._events.extend(pending)
        aggregate.clear_events()
        logger.debug("Collected %s events from %s %s", len(pending), aggregate.__class__.__name__, aggregate.pk)

    def _schedule_publish(self):
        events = list(self._events)
        if events:
            # Inside an outer atomic block this waits for the outermost commit.
            transaction.on_commit(lambda: _publish(events))


def _publish(events: List[DomainEvent]):
    from shared.application.message_bus import message_bus

    logger.info("Publishing %s domain events after commit", len(events))
    try:
        message_bus.publish_events(events)
    except Exception as e:
        # The data is already committed; a failing subscriber must not undo it.
        logger.error("Error publishing events: %s", e, exc_info=True)
