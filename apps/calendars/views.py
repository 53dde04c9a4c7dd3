"""API views for calendar export and external calendar links."""

from __future__ import annotations

import logging

from django.http import Http404, HttpResponse  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.properties.models import Property
from apps.properties.views import PropertyCalendarMixin, is_property_manager

from . import reconciler
from .models import ExternalCalendarLink
from .renderers import ICalendarRenderer
from .serializers import CalendarConflictSerializer, ExternalCalendarLinkSerializer

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


class CalendarExportView(APIView):
    """ICS feed of a property's bookings, readable with an export token or by the owner."""

    permission_classes = [permissions.AllowAny]
    renderer_classes = [ICalendarRenderer]

    def get(self, request, property_id):  # type: ignore
        property_obj = get_object_or_404(Property, pk=property_id)
        token = request.query_params.get("token")
        allowed = is_property_manager(request.user, property_obj)
        if not allowed and token:
            allowed = ExternalCalendarLink.objects.filter(
                property=property_obj,
                export_token=token,
                direction__in=ExternalCalendarLink.EXPORT_DIRECTIONS,
            ).exists()
        if not allowed:
            raise Http404("Calendar not found.")

        response = HttpResponse(reconciler.export_feed(property_obj), content_type="text/calendar; charset=utf-8")
        response["Content-Disposition"] = f'inline; filename="property-{property_obj.pk}.ics"'
        return response


class ExternalCalendarLinkViewSet(
    PropertyCalendarMixin,
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Owner managed calendar links. Import links sync right after they are added."""

    serializer_class = ExternalCalendarLinkSerializer
    queryset = ExternalCalendarLink.objects.all()

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(property=self.get_property())

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        link = serializer.save(property=self.get_property())
        logger.info("Calendar link %s (%s) added to property %s", link.pk, link.direction, link.property_id)

        payload = {}
        if link.imports:
            payload["sync"] = reconciler.sync_import(link).to_dict()
            link.refresh_from_db()
        payload.update(self.get_serializer(link).data)
        return Response(payload, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        link = self.get_object()
        clear = str(request.query_params.get("clear", "")).lower() in TRUTHY
        affected = reconciler.unlink(link, clear=clear)
        return Response({"cleared" if clear else "kept_as_manual": affected}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def sync(self, request, property_id=None, pk=None):  # type: ignore
        link = self.get_object()
        if not link.imports:
            return Response(
                {"detail": "Only import links can be synced."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        result = reconciler.sync_import(link)
        link.refresh_from_db()
        return Response({"sync": result.to_dict(), **self.get_serializer(link).data})

    @action(detail=True, methods=["get"])
    def conflicts(self, request, property_id=None, pk=None):  # type: ignore
        link = self.get_object()
        serializer = CalendarConflictSerializer(link.conflicts.all(), many=True)
        return Response(serializer.data)
