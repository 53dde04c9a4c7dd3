"""Booking domain models for Stayline."""

from __future__ import annotations

import builtins
import secrets

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import EventRecorder
from shared.domain.value_objects import DateRange

from .exceptions import InvalidTransition


class Booking(EventRecorder, models.Model):
    """A guest's stay over ``[check_in, check_out)``. Bookings are never deleted."""

    class Status(models.TextChoices):
        PENDING_PAYMENT = "pending_payment", _("Awaiting payment")
        PENDING_APPROVAL = "pending_approval", _("Awaiting owner approval")
        CONFIRMED = "confirmed", _("Confirmed")
        CHECKED_IN = "checked_in", _("Checked in")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    class CancellationSource(models.TextChoices):
        GUEST = "guest", _("Guest")
        OWNER = "owner", _("Owner")
        SYSTEM = "system", _("System")

    ACTIVE_STATUSES = (
        Status.PENDING_PAYMENT,
        Status.PENDING_APPROVAL,
        Status.CONFIRMED,
        Status.CHECKED_IN,
    )
    PENDING_STATUSES = (Status.PENDING_PAYMENT, Status.PENDING_APPROVAL)
    TERMINAL_STATUSES = (Status.COMPLETED, Status.CANCELLED)

    TRANSITIONS = {
        Status.PENDING_PAYMENT: {Status.CONFIRMED, Status.CANCELLED},
        Status.PENDING_APPROVAL: {Status.CONFIRMED, Status.CANCELLED},
        Status.CONFIRMED: {Status.CHECKED_IN, Status.CANCELLED},
        Status.CHECKED_IN: {Status.COMPLETED, Status.CANCELLED},
        Status.COMPLETED: set(),
        Status.CANCELLED: set(),
    }
    TIMESTAMP_FIELDS = {
        Status.CONFIRMED: "confirmed_at",
        Status.CHECKED_IN: "checked_in_at",
        Status.COMPLETED: "completed_at",
        Status.CANCELLED: "cancelled_at",
    }

    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    idempotency_key = models.CharField(
        max_length=100,
        unique=True,
        help_text=_("Client supplied key; replays return the original booking."),
    )
    check_in = models.DateField()
    check_out = models.DateField()
    guests_count = models.PositiveSmallIntegerField(default=1)
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING_PAYMENT,
    )
    price_breakdown = models.JSONField(
        default=dict,
        help_text=_("Price snapshot taken at creation. Later rule changes do not alter it."),
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    payment_reference = models.CharField(max_length=100, blank=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Payment hold deadline; unpaid bookings are cancelled after it."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_source = models.CharField(
        max_length=20,
        choices=CancellationSource.choices,
        blank=True,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "check_in", "check_out"], name="bookings_bo_propert_4f2a1c_idx"),
            models.Index(fields=["status", "expires_at"], name="bookings_bo_status_7b9e30_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for {self.property_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @builtins.property
    def date_range(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    @builtins.property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @builtins.property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    @builtins.property
    def slot_status(self) -> str | None:
        """DateSlot status this booking holds its nights in"""
        if self.status in self.PENDING_STATUSES:
            return "pending"
        if self.status in (self.Status.CONFIRMED, self.Status.CHECKED_IN):
            return "booked"
        return None

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: str, *, at=None) -> bool:
        """
        Move to ``new_status`` and stamp the matching timestamp.

        Returns False when the booking already is in ``new_status``; raises
        InvalidTransition for any move the state machine does not allow.
        Does not save.
        """
        if self.status == new_status:
            return False
        if not self.can_transition_to(new_status):
            raise InvalidTransition(
                f"Cannot move booking {self.booking_code} from {self.status} to {new_status}.",
                current_status=self.status,
                requested_status=new_status,
            )
        self.status = new_status
        timestamp_field = self.TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            setattr(self, timestamp_field, at or timezone.now())
        return True

    def should_expire(self, now=None) -> bool:
        now = now or timezone.now()
        return bool(
            self.status == self.Status.PENDING_PAYMENT
            and self.expires_at
            and now >= self.expires_at
        )
