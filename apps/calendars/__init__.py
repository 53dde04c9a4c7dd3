"""Calendars app package.

Two-way iCal synchronisation with channel managers and other listing
sites: imported feeds block days on the DateSlot calendar, and every
property publishes its active bookings as an export feed.
"""
