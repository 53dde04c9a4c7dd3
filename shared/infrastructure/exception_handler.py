"""DRF exception handler that renders domain errors."""

from __future__ import annotations

import logging

from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


def engine_exception_handler(exc, context):  # type: ignore
    """Map DomainError subclasses to JSON responses, defer the rest to DRF."""

    if isinstance(exc, DomainError):
        view = context.get("view")
        logger.info(
            "Domain error %s in %s: %s",
            exc.code,
            view.__class__.__name__ if view else "-",
            exc.message,
        )
        return Response(exc.to_dict(), status=exc.http_status)
    return exception_handler(exc, context)
