import typing as t
from unittest.mock import MagicMock

import orjson
import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client

from events.models import Order, Ticket

pytestmark = pytest.mark.django_db


@pytest.fixture
def bridge_order(pending_order: Order) -> Order:
    Order.objects.filter(pk=pending_order.pk).update(checkout_session_id="pl_bridge_1")
    pending_order.refresh_from_db()
    return pending_order


def _transaction_updated(status: str, **data: t.Any) -> bytes:
    return orjson.dumps(
        {
            "type": "payment.transaction.updated",
            "data": {"payment_link_id": "pl_bridge_1", "transaction_id": "tx_1", "status": status, **data},
        }
    )


def test_successful_transaction_settles(
    bridge_order: Order, bridge_signature: t.Callable[..., str], mock_dispatch: MagicMock
) -> None:
    payload = _transaction_updated("successful")

    response = Client().post(
        reverse("api:bridge_webhook"),
        data=payload,
        content_type="application/json",
        HTTP_X_HOOK_SIGNATURE=bridge_signature(payload),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "processed"
    bridge_order.refresh_from_db()
    assert bridge_order.status == Order.OrderStatus.COMPLETED
    assert bridge_order.payment_intent_id == "tx_1"
    assert Ticket.objects.filter(order=bridge_order).count() == 3


def test_failed_transaction(bridge_order: Order, bridge_signature: t.Callable[..., str]) -> None:
    payload = _transaction_updated("failed", status_reason="insufficient_funds")

    response = Client().post(
        reverse("api:bridge_webhook"),
        data=payload,
        content_type="application/json",
        HTTP_X_HOOK_SIGNATURE=bridge_signature(payload),
    )

    assert response.json()["status"] == "processed"
    bridge_order.refresh_from_db()
    assert bridge_order.status == Order.OrderStatus.FAILED


def test_bad_signature(bridge_order: Order) -> None:
    response = Client().post(
        reverse("api:bridge_webhook"),
        data=_transaction_updated("successful"),
        content_type="application/json",
        HTTP_X_HOOK_SIGNATURE="not-a-signature",
    )

    assert response.status_code == 401
    bridge_order.refresh_from_db()
    assert bridge_order.status == Order.OrderStatus.PENDING


def test_unsigned_delivery_allowed_in_development(
    bridge_order: Order, settings: t.Any, mock_dispatch: MagicMock
) -> None:
    settings.BRIDGE_WEBHOOK_SECRET = ""
    settings.ALLOW_UNSIGNED_WEBHOOKS = True

    response = Client().post(
        reverse("api:bridge_webhook"), data=_transaction_updated("successful"), content_type="application/json"
    )

    assert response.status_code == 200
    assert response.json()["status"] == "processed"


def test_unsigned_delivery_refused_in_production(bridge_order: Order, settings: t.Any) -> None:
    settings.BRIDGE_WEBHOOK_SECRET = ""

    response = Client().post(
        reverse("api:bridge_webhook"), data=_transaction_updated("successful"), content_type="application/json"
    )

    assert response.status_code == 401
