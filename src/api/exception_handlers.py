"""Exception handlers for the API."""

import typing as t
from copy import deepcopy

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.http import HttpRequest
from ninja.responses import Response

from events.exceptions import PromoCodeRejectedError, TicketingError

logger = structlog.get_logger(__name__)


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    logger.exception(
        "INTERNAL_SERVER_ERROR",
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
    )
    data = {"detail": "Internal Server Error."}
    if settings.DEBUG:  # pragma: no cover
        data["error"] = repr(exc)
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.warning("VALIDATION_ERROR", path=request.path, error=str(exc))
    if hasattr(exc, "error_dict"):
        error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
        return Response(status=400, data={"errors": error_dict})
    return Response(status=400, data={"errors": {"__all__": list(exc.messages)}})  # type: ignore[union-attr]


def handle_database_error(request: HttpRequest, exc: DatabaseError | t.Type[DatabaseError]) -> Response:
    """Storage failures are transient from the caller's point of view: answer 503 so they retry."""
    logger.exception("DATABASE_ERROR", method=request.method, path=request.path)
    return Response(status=503, data={"detail": "Temporary failure, please retry."})


def handle_ticketing_error(request: HttpRequest, exc: TicketingError | t.Type[TicketingError]) -> Response:
    """Render a domain error with its own status code and message."""
    exc = t.cast(TicketingError, exc)
    log = logger.warning if exc.status_code >= 500 else logger.info
    log("ticketing_error", error=type(exc).__name__, status_code=exc.status_code, path=request.path)
    data: dict[str, t.Any] = {"detail": exc.message}
    if isinstance(exc, PromoCodeRejectedError):
        data["reason"] = exc.reason.value
    return Response(status=exc.status_code, data=data)


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "stripe-signature"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
