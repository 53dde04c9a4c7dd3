"""Renderer for the iCalendar export feed."""

from __future__ import annotations

from rest_framework.renderers import BaseRenderer  # type: ignore


class ICalendarRenderer(BaseRenderer):
    media_type = "text/calendar"
    format = "ics"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):  # type: ignore
        if isinstance(data, bytes):
            return data
        # Error payloads (404 and friends) are rendered as plain text.
        if isinstance(data, dict):
            data = data.get("detail", "")
        return str(data or "").encode(self.charset)
