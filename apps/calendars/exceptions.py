"""
Calendar Sync Errors

Raised while fetching or parsing an external feed. They only ever change
the status of the link that produced them; the booking path never sees
them.
"""

from shared.domain.exceptions import DomainError


class CalendarSyncError(DomainError):
    code = 'calendar_sync_error'
    http_status = 502
    default_message = 'The external calendar could not be synchronised.'


class LinkUnreachable(CalendarSyncError):
    code = 'link_unreachable'
    default_message = 'The external calendar could not be fetched.'


class LinkMalformed(CalendarSyncError):
    code = 'link_malformed'
    default_message = 'The external calendar is not a valid iCalendar feed.'
