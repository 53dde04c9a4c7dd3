"""Properties app package.

Listing facts used by the availability engine (capacity, rates, booking
mode), owner pricing rules and the per-day DateSlot calendar, together
with the pricing calculator and the calendar endpoints built on them.
"""
