# orders/exceptions.py
import logging

from django.conf import settings
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger("harvest.errors")


class InvalidTransition(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid status transition"
    default_code = "invalid_transition"

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


def _message(detail):
    if isinstance(detail, (list, tuple)) and detail:
        return _message(detail[0])
    if isinstance(detail, dict):
        for value in detail.values():
            return _message(value)
        return "Invalid request"
    return str(detail)


def envelope_exception_handler(exc, context):
    """Render every error as ``{"status": "error", "message": ...}``."""
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", type(view).__name__ if view else "request")
        body = {"status": "error", "message": "Internal server error"}
        if settings.DEBUG:
            body["error"] = str(exc)
        return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, exceptions.NotAuthenticated):
        message = "Unauthorized"
    else:
        message = _message(exc.detail)

    body = {"status": "error", "message": message}
    if isinstance(exc, exceptions.ValidationError) and isinstance(exc.detail, dict):
        body["errors"] = exc.detail
    response.data = body
    return response
