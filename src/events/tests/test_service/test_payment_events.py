import typing as t

import pytest

from events.exceptions import InvalidWebhookPayloadError
from events.service.payment_events import (
    GroupSharePaid,
    PaymentFailed,
    PaymentSucceeded,
    UnknownPaymentEvent,
    parse_bridge_event,
    parse_stripe_event,
)


def _stripe(event_type: str, **obj: t.Any) -> dict[str, t.Any]:
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


class TestParseStripeEvent:
    def test_completed_session(self) -> None:
        event = parse_stripe_event(
            _stripe(
                "checkout.session.completed",
                id="cs_1",
                payment_status="paid",
                payment_intent="pi_1",
                amount_total=5400,
            )
        )

        assert event == PaymentSucceeded(
            provider="stripe", correlation_id="cs_1", payment_intent_id="pi_1", amount_total_cents=5400
        )

    def test_async_success_is_a_success(self) -> None:
        event = parse_stripe_event(
            _stripe("checkout.session.async_payment_succeeded", id="cs_1", payment_status="paid")
        )

        assert isinstance(event, PaymentSucceeded)

    def test_unpaid_session_is_ignored(self) -> None:
        event = parse_stripe_event(_stripe("checkout.session.completed", id="cs_1", payment_status="unpaid"))

        assert isinstance(event, UnknownPaymentEvent)

    def test_group_share(self) -> None:
        event = parse_stripe_event(
            _stripe(
                "checkout.session.completed",
                id="cs_share",
                payment_status="paid",
                payment_intent="pi_share",
                customer_details={"email": "p2@example.com"},
                metadata={"kind": "group_share", "group_order_id": "g-1", "participant_id": "p-2"},
            )
        )

        assert event == GroupSharePaid(
            provider="stripe",
            correlation_id="cs_share",
            group_order_id="g-1",
            participant_id="p-2",
            email="p2@example.com",
            payment_intent_id="pi_share",
        )

    def test_group_share_without_group(self) -> None:
        with pytest.raises(InvalidWebhookPayloadError):
            parse_stripe_event(
                _stripe(
                    "checkout.session.completed", id="cs_1", payment_status="paid", metadata={"kind": "group_share"}
                )
            )

    @pytest.mark.parametrize(
        "event_type,reason",
        [
            ("checkout.session.expired", "session_expired"),
            ("checkout.session.async_payment_failed", "async_payment_failed"),
        ],
    )
    def test_session_failures(self, event_type: str, reason: str) -> None:
        event = parse_stripe_event(_stripe(event_type, id="cs_1"))

        assert event == PaymentFailed(provider="stripe", correlation_id="cs_1", reason=reason)

    def test_expired_group_share_is_ignored(self) -> None:
        event = parse_stripe_event(_stripe("checkout.session.expired", id="cs_1", metadata={"kind": "group_share"}))

        assert isinstance(event, UnknownPaymentEvent)

    def test_payment_intent_failure(self) -> None:
        event = parse_stripe_event(
            _stripe("payment_intent.payment_failed", id="pi_1", last_payment_error={"code": "card_declined"})
        )

        assert event == PaymentFailed(
            provider="stripe", correlation_id=None, payment_intent_id="pi_1", reason="card_declined"
        )

    def test_unknown_type(self) -> None:
        event = parse_stripe_event(_stripe("customer.created", id="cus_1"))

        assert event == UnknownPaymentEvent(provider="stripe", event_type="customer.created")

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"type": 42},
            {"type": "checkout.session.completed", "data": {"object": {"payment_status": "paid"}}},
            {"type": "checkout.session.completed", "data": "nope"},
        ],
    )
    def test_malformed(self, payload: dict[str, t.Any]) -> None:
        with pytest.raises(InvalidWebhookPayloadError):
            parse_stripe_event(payload)


class TestParseBridgeEvent:
    def test_successful(self) -> None:
        event = parse_bridge_event(
            {
                "type": "payment.transaction.updated",
                "data": {"payment_link_id": "pl_1", "transaction_id": "tx_1", "status": "successful"},
            }
        )

        assert event == PaymentSucceeded(provider="bridge", correlation_id="pl_1", payment_intent_id="tx_1")

    def test_failed_falls_back_to_transaction_id(self) -> None:
        event = parse_bridge_event(
            {"type": "payment.transaction.updated", "data": {"transaction_id": "tx_1", "status": "failed"}}
        )

        assert event == PaymentFailed(
            provider="bridge", correlation_id="tx_1", payment_intent_id="tx_1", reason="failed"
        )

    def test_pending_status_is_ignored(self) -> None:
        event = parse_bridge_event(
            {"type": "payment.transaction.updated", "data": {"payment_link_id": "pl_1", "status": "pending"}}
        )

        assert isinstance(event, UnknownPaymentEvent)

    def test_other_type(self) -> None:
        assert isinstance(parse_bridge_event({"type": "account.updated"}), UnknownPaymentEvent)

    def test_missing_correlation(self) -> None:
        with pytest.raises(InvalidWebhookPayloadError):
            parse_bridge_event({"type": "payment.transaction.updated", "data": {"status": "successful"}})
