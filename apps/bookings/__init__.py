"""Bookings app package.

Reservation engine of the marketplace: conflict detection, the booking
state machine, owner approval, payment results and the periodic jobs that
expire unpaid holds and move stays through check-in and completion.
"""
