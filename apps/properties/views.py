"""Property calendar API views: availability, quotes, pricing rules and blocks."""

from __future__ import annotations

import logging
from datetime import date

from django.http import Http404  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, serializers, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.calendars import reconciler
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange, collapse_dates

from . import pricing, slots
from .events import AvailabilityChanged
from .models import DateSlot, PricingRule, Property
from .serializers import (
    AvailabilityQuerySerializer,
    BlockRequestSerializer,
    DateSlotSerializer,
    OwnerDateSlotSerializer,
    PriceQuoteRequestSerializer,
    PricingRuleSerializer,
)

logger = logging.getLogger(__name__)


def is_property_manager(user, property_obj: Property) -> bool:
    if not user or not user.is_authenticated:
        return False
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        return True
    return property_obj.owner_id == user.id


class IsPropertyOwnerOrAdmin(permissions.BasePermission):
    """Only the owner of the property (or platform staff) may manage its calendar."""

    def has_permission(self, request, view):  # type: ignore
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):  # type: ignore
        # Pricing rules and calendar links are checked through their property.
        property_obj = obj if isinstance(obj, Property) else obj.property
        return is_property_manager(request.user, property_obj)


class PropertyCalendarMixin:
    """Resolves the property from the URL and checks object permissions."""

    property_lookup_url_kwarg = "property_id"
    permission_classes = [permissions.IsAuthenticated, IsPropertyOwnerOrAdmin]

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        property_id = kwargs.get(self.property_lookup_url_kwarg)
        self.property_object = get_object_or_404(Property, pk=property_id)
        self.check_object_permissions(request, self.property_object)

    def get_property(self) -> Property:
        return self.property_object

    def get_serializer_context(self):  # type: ignore
        context = super().get_serializer_context()
        context["property"] = getattr(self, "property_object", None)
        return context


class PublicPropertyMixin:
    """Active properties are public; inactive ones are visible to their owner only."""

    permission_classes = [permissions.AllowAny]

    def get_visible_property(self, request, property_id) -> Property:
        property_obj = get_object_or_404(Property, pk=property_id)
        if not property_obj.is_active and not is_property_manager(request.user, property_obj):
            raise Http404("Property is not available.")
        return property_obj


class PropertyAvailabilityView(PublicPropertyMixin, APIView):
    """Per-day calendar of a property for ``?from=&to=`` (``to`` exclusive)."""

    def get(self, request, property_id):  # type: ignore
        property_obj = self.get_visible_property(request, property_id)
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        start = query.validated_data["start"]
        end = query.validated_data["end"]
        if start >= end:
            return Response({"property_id": property_obj.id, "dates": []})

        day_slots = slots.slots_between(property_obj, start, end)
        serializer_class = (
            OwnerDateSlotSerializer if is_property_manager(request.user, property_obj) else DateSlotSerializer
        )
        return Response(
            {
                "property_id": property_obj.id,
                "currency": property_obj.currency,
                "from": start,
                "to": end,
                "dates": serializer_class(day_slots, many=True).data,
            }
        )


class PriceQuoteView(PublicPropertyMixin, APIView):
    """Price breakdown for a prospective stay. Does not check availability."""

    def post(self, request, property_id):  # type: ignore
        property_obj = self.get_visible_property(request, property_id)
        serializer = PriceQuoteRequestSerializer(data=request.data, context={"property": property_obj})
        serializer.is_valid(raise_exception=True)
        quote = pricing.price(
            property_obj,
            serializer.validated_data["start"],
            serializer.validated_data["end"],
            serializer.validated_data["guests"],
        )
        return Response(quote.to_dict())


class PricingRuleViewSet(
    PropertyCalendarMixin,
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Owner managed pricing rules. Changes re-price materialised days.

    ``PATCH {"is_active": false}`` switches a rule off without deleting it.
    """

    serializer_class = PricingRuleSerializer
    queryset = PricingRule.objects.all()

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(property=self.get_property()).order_by("-priority", "id")

    def perform_create(self, serializer):  # type: ignore
        rule = serializer.save(property=self.get_property())
        logger.info("Pricing rule %s (%s) added to property %s", rule.pk, rule.kind, rule.property_id)

    def perform_update(self, serializer):  # type: ignore
        rule = serializer.save()
        logger.info(
            "Pricing rule %s of property %s updated (active=%s)", rule.pk, rule.property_id, rule.is_active
        )

    def perform_destroy(self, instance):  # type: ignore
        logger.info("Pricing rule %s removed from property %s", instance.pk, instance.property_id)
        instance.delete()


class BlockDatesView(PropertyCalendarMixin, APIView):
    """Owner blocks ``[start, end)``. Days held by bookings are skipped and reported."""

    def post(self, request, property_id):  # type: ignore
        serializer = BlockRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stay = self._validated_range(serializer.validated_data["start"], serializer.validated_data["end"])

        with DjangoUnitOfWork() as uow:
            property_obj = slots.lock_property(self.get_property().pk)
            blocked = slots.block(
                property_obj,
                stay.nights(),
                source=DateSlot.SOURCE_MANUAL,
                note=serializer.validated_data.get("note", ""),
            )
            if blocked:
                uow.add_event(
                    AvailabilityChanged(
                        aggregate_id=property_obj.pk,
                        property_id=property_obj.pk,
                        ranges=collapse_dates(blocked),
                        reason="manual_block",
                    )
                )
        skipped = sorted(set(stay.nights()) - set(blocked))
        return Response(
            {
                "blocked": [day_range.as_dict() for day_range in collapse_dates(blocked)],
                "skipped": [day_range.as_dict() for day_range in collapse_dates(skipped)],
            },
            status=status.HTTP_200_OK,
        )

    @staticmethod
    def _validated_range(start: date, end: date) -> DateRange:
        if start < timezone.localdate():
            raise serializers.ValidationError({"start": "Past dates cannot be blocked."})
        if end > slots.horizon_end():
            raise serializers.ValidationError({"end": "Dates beyond the availability horizon cannot be blocked."})
        return DateRange(start, end)


class ReleaseDatesView(PropertyCalendarMixin, APIView):
    """
    Owner removes manual blocks in ``[start, end)``. Imported blocks stay,
    and released days an import still covers go back to that import.
    """

    def post(self, request, property_id):  # type: ignore
        serializer = BlockRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stay = DateRange(serializer.validated_data["start"], serializer.validated_data["end"])

        with DjangoUnitOfWork() as uow:
            property_obj = slots.lock_property(self.get_property().pk)
            released = slots.unblock(property_obj, stay.nights(), source=DateSlot.SOURCE_MANUAL)
            reblocked = set(reconciler.reapply_imported_blocks(property_obj, released))
            released = [day for day in released if day not in reblocked]
            if released:
                uow.add_event(
                    AvailabilityChanged(
                        aggregate_id=property_obj.pk,
                        property_id=property_obj.pk,
                        ranges=collapse_dates(released),
                        reason="manual_release",
                    )
                )
        return Response(
            {"released": [day_range.as_dict() for day_range in collapse_dates(released)]},
            status=status.HTTP_200_OK,
        )
