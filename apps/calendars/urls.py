"""URL routing for calendar export and external calendar links."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import CalendarExportView, ExternalCalendarLinkViewSet

link_list = ExternalCalendarLinkViewSet.as_view({"get": "list", "post": "create"})
link_detail = ExternalCalendarLinkViewSet.as_view({"get": "retrieve", "delete": "destroy"})
link_sync = ExternalCalendarLinkViewSet.as_view({"post": "sync"})
link_conflicts = ExternalCalendarLinkViewSet.as_view({"get": "conflicts"})

urlpatterns = [
    path(
        "<int:property_id>/calendar.ics",
        CalendarExportView.as_view(),
        name="property-calendar-export",
    ),
    path(
        "<int:property_id>/calendar-links/",
        link_list,
        name="property-calendar-link-list",
    ),
    path(
        "<int:property_id>/calendar-links/<int:pk>/",
        link_detail,
        name="property-calendar-link-detail",
    ),
    path(
        "<int:property_id>/calendar-links/<int:pk>/sync/",
        link_sync,
        name="property-calendar-link-sync",
    ),
    path(
        "<int:property_id>/calendar-links/<int:pk>/conflicts/",
        link_conflicts,
        name="property-calendar-link-conflicts",
    ),
]
