"""
Payment seam of the booking engine.

Payment processing itself lives outside this service. The engine asks a
gateway for a charge when an instant booking is created and later receives
exactly one kind of answer, a PaymentResult tagged ``paid`` or ``failed``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a charge reported by the payment gateway"""

    PAID = "paid"
    FAILED = "failed"
    OUTCOMES = (PAID, FAILED)

    booking_id: int
    outcome: str
    reference: str = ""
    reason: str = ""

    def __post_init__(self):
        if self.outcome not in self.OUTCOMES:
            raise ValueError(f"Unknown payment outcome: {self.outcome!r}")

    @property
    def is_paid(self) -> bool:
        return self.outcome == self.PAID

    @classmethod
    def paid(cls, booking_id: int, reference: str = "") -> "PaymentResult":
        return cls(booking_id=booking_id, outcome=cls.PAID, reference=reference)

    @classmethod
    def failed(cls, booking_id: int, reason: str = "", reference: str = "") -> "PaymentResult":
        return cls(booking_id=booking_id, outcome=cls.FAILED, reference=reference, reason=reason)

    @classmethod
    def from_payload(cls, data) -> "PaymentResult":
        """
        Build a result from a gateway callback body.

        Accepts ``bookingId``/``booking_id``, ``result``/``status`` and
        ``reference``. Raises ValueError for anything malformed.
        """
        if not isinstance(data, dict):
            raise ValueError("Payment callback body must be an object")
        raw_id = data.get("bookingId", data.get("booking_id"))
        try:
            booking_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid booking id: {raw_id!r}") from None
        outcome = str(data.get("result") or data.get("status") or "").strip().lower()
        return cls(
            booking_id=booking_id,
            outcome=outcome,
            reference=str(data.get("reference") or "")[:100],
            reason=str(data.get("reason") or "")[:255],
        )


@dataclass(frozen=True)
class ChargeRequest:
    booking_id: int
    booking_code: str
    amount: Decimal
    currency: str


SIGNATURE_HEADER = "X-Stayline-Signature"


def sign_payload(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of a callback body"""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class PaymentGateway:
    """Interface of the payment integration"""

    def request_charge(self, charge: ChargeRequest) -> str:
        """Ask for payment; returns the gateway reference of the charge"""
        raise NotImplementedError

    def verify_callback(self, body: bytes, signature: str) -> bool:
        """
        Check the signature the gateway sent with a callback.

        The default scheme is an HMAC-SHA256 of the raw body keyed with
        ``BOOKINGS["PAYMENT_WEBHOOK_SECRET"]``. Without a configured secret
        every callback is rejected.
        """
        secret = settings.BOOKINGS.get("PAYMENT_WEBHOOK_SECRET") or ""
        if not secret:
            logger.error("PAYMENT_WEBHOOK_SECRET is not configured; payment callbacks are rejected")
            return False
        if not signature:
            return False
        return hmac.compare_digest(sign_payload(body, secret), signature.strip().lower())


class LoggingPaymentGateway(PaymentGateway):
    """Gateway used in development and tests: logs the request and hands out a reference."""

    def request_charge(self, charge: ChargeRequest) -> str:
        reference = f"pay_{uuid.uuid4().hex[:16]}"
        logger.info(
            "Charge requested for booking %s: %s %s (reference %s)",
            charge.booking_code,
            charge.amount,
            charge.currency,
            reference,
        )
        return reference


def get_payment_gateway() -> PaymentGateway:
    gateway_class = import_string(settings.BOOKINGS["PAYMENT_GATEWAY"])
    return gateway_class()
