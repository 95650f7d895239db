import orjson
import pytest
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import OperationalError
from django.test import RequestFactory
from django.test.client import Client

from api.exception_handlers import (
    handle_database_error,
    handle_django_validation_error,
    handle_general_exception,
    handle_ticketing_error,
    obfuscate,
)
from events.exceptions import PromoCodeRejectedError, SoldOutError, TicketingPermissionError


def test_version_endpoint(client: Client) -> None:
    response = client.get("/api/version")

    assert response.status_code == 200
    assert response.json() == {"version": settings.VERSION}


def test_healthcheck(client: Client) -> None:
    response = client.get("/api/healthcheck")

    assert response.status_code == 200


class TestExceptionHandlers:
    @pytest.fixture
    def request_factory(self) -> RequestFactory:
        return RequestFactory()

    def test_ticketing_error_keeps_status_and_message(self, request_factory: RequestFactory) -> None:
        response = handle_ticketing_error(request_factory.post("/api/events/x/checkout"), SoldOutError())

        assert response.status_code == 409
        assert orjson.loads(response.content) == {"detail": "Not enough tickets left in this tier."}

    def test_permission_error(self, request_factory: RequestFactory) -> None:
        response = handle_ticketing_error(request_factory.post("/api/x"), TicketingPermissionError())

        assert response.status_code == 403

    def test_promo_rejection_carries_reason(self, request_factory: RequestFactory) -> None:
        exc = PromoCodeRejectedError(PromoCodeRejectedError.Reason.EXPIRED)

        response = handle_ticketing_error(request_factory.get("/api/x"), exc)

        assert response.status_code == 400
        assert orjson.loads(response.content) == {"detail": "This promo code has expired.", "reason": "expired"}

    def test_database_error_is_retryable(self, request_factory: RequestFactory) -> None:
        response = handle_database_error(request_factory.get("/api/x"), OperationalError("gone"))

        assert response.status_code == 503

    def test_django_validation_error_with_fields(self, request_factory: RequestFactory) -> None:
        exc = ValidationError({"quantity": ["Too many."]})

        response = handle_django_validation_error(request_factory.post("/api/x"), exc)

        assert response.status_code == 400
        assert orjson.loads(response.content) == {"errors": {"quantity": ["Too many."]}}

    def test_django_validation_error_without_fields(self, request_factory: RequestFactory) -> None:
        response = handle_django_validation_error(request_factory.post("/api/x"), ValidationError("Nope."))

        assert orjson.loads(response.content) == {"errors": {"__all__": ["Nope."]}}

    def test_general_exception(self, request_factory: RequestFactory) -> None:
        response = handle_general_exception(request_factory.get("/api/x"), RuntimeError("boom"))

        assert response.status_code == 500
        assert orjson.loads(response.content)["detail"] == "Internal Server Error."


def test_obfuscate_hides_sensitive_headers() -> None:
    headers = {"Authorization": "Bearer abc", "Stripe-Signature": "t=1,v1=x", "Accept": "application/json"}

    cleaned = obfuscate(headers)

    assert cleaned["Authorization"] == "********"
    assert cleaned["Stripe-Signature"] == "********"
    assert cleaned["Accept"] == "application/json"
    assert headers["Authorization"] == "Bearer abc"
