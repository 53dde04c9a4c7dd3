"""API views for the booking domain."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.domain.exceptions import DomainError

from . import approval, services
from .filters import BookingFilterSet
from .models import Booking
from .payments import SIGNATURE_HEADER, get_payment_gateway
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    PaymentCallbackSerializer,
    ReasonSerializer,
)

logger = logging.getLogger(__name__)


def _is_staff(user) -> bool:
    return getattr(user, "is_staff", False) or getattr(user, "is_superuser", False)


class IsBookingStakeholder(permissions.BasePermission):
    """The guest, the property owner and platform staff may see a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_staff(user):
            return True
        return obj.guest_id == user.id or obj.property.owner_id == user.id


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Create, list and act on bookings. Bookings are never deleted."""

    queryset = Booking.objects.select_related("property", "guest", "property__owner").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = BookingFilterSet
    ordering_fields = ["check_in", "created_at"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if _is_staff(user):
            return qs
        if hasattr(user, "is_owner") and user.is_owner():
            return qs.filter(property__owner=user) | qs.filter(guest=user)
        return qs.filter(guest=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        existed = Booking.objects.filter(idempotency_key=data["idempotencyKey"]).exists()
        booking = services.create_booking(
            property_id=data["propertyId"],
            guest=request.user,
            check_in=data["start"],
            check_out=data["end"],
            guests_count=data["guests"],
            idempotency_key=data["idempotencyKey"],
        )
        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        response_status = status.HTTP_200_OK if existed else status.HTTP_201_CREATED
        return Response(read_serializer.data, status=response_status)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        booking = approval.approve(booking.pk, request.user)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def decline(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = approval.decline(booking.pk, request.user, serializer.validated_data["reason"])
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.user
        if booking.guest_id == user.id:
            source = Booking.CancellationSource.GUEST
        elif booking.property.owner_id == user.id or _is_staff(user):
            source = Booking.CancellationSource.OWNER
        else:
            return Response(status=status.HTTP_403_FORBIDDEN)
        booking = services.cancel_booking(booking.pk, source=source, reason=serializer.validated_data["reason"])
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)


class PaymentCallbackView(APIView):
    """
    Payment gateway webhook.

    Callbacks without a valid signature are refused with 403. Signed ones
    are always acknowledged with 200 so the gateway stops retrying;
    malformed payloads and unknown bookings are logged and change nothing.
    """

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        signature = request.headers.get(SIGNATURE_HEADER, "")
        if not get_payment_gateway().verify_callback(request.body, signature):
            logger.warning("Payment callback with a missing or invalid signature rejected")
            return Response({"status": "error", "reason": "invalid_signature"}, status=status.HTTP_403_FORBIDDEN)

        serializer = PaymentCallbackSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning("Malformed payment callback ignored: %s", serializer.errors)
            return Response({"status": "ignored", "reason": "malformed"}, status=status.HTTP_200_OK)

        result = serializer.to_payment_result()
        try:
            booking = services.apply_payment_result(result)
        except DomainError as exc:
            logger.warning(
                "Payment callback for booking %s not applied: %s",
                result.booking_id,
                exc.code,
            )
            return Response({"status": "ignored", "reason": exc.code}, status=status.HTTP_200_OK)

        logger.info(
            "Payment callback %s applied to booking %s (now %s)",
            result.outcome,
            booking.booking_code,
            booking.status,
        )
        return Response({"status": "ok", "booking_status": booking.status}, status=status.HTTP_200_OK)
