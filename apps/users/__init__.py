"""Users app package.

Identity is owned by an external collaborator; this app only defines the
custom user model with guest/owner roles used as ``AUTH_USER_MODEL`` by
properties and bookings.
"""
