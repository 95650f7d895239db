"""Payment provider events, parsed into a closed set of variants.

Webhook bodies are untrusted and loosely shaped. They are parsed once, at the boundary, into one
of the dataclasses below; the rest of the code never touches raw provider payloads. Unknown or
irrelevant events become ``UnknownPaymentEvent`` and are ignored by the caller.
"""

import typing as t
from collections.abc import Mapping
from dataclasses import dataclass

import structlog

from events.exceptions import InvalidWebhookPayloadError

logger = structlog.get_logger(__name__)

GROUP_SHARE_KIND = "group_share"


@dataclass(frozen=True)
class PaymentSucceeded:
    provider: str
    correlation_id: str | None
    payment_intent_id: str | None = None
    amount_total_cents: int | None = None


@dataclass(frozen=True)
class PaymentFailed:
    provider: str
    correlation_id: str | None
    payment_intent_id: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class GroupSharePaid:
    provider: str
    correlation_id: str
    group_order_id: str
    participant_id: str | None = None
    email: str | None = None
    payment_intent_id: str | None = None


@dataclass(frozen=True)
class UnknownPaymentEvent:
    provider: str
    event_type: str


PaymentEvent = PaymentSucceeded | PaymentFailed | GroupSharePaid | UnknownPaymentEvent


def _as_mapping(value: t.Any) -> Mapping[str, t.Any]:
    return value if isinstance(value, Mapping) else {}


def _as_str(value: t.Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _as_int(value: t.Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


class StripeEventParser:
    """Maps Stripe event JSON onto payment variants.

    Dispatches on the event type to ``parse_<type with dots replaced by underscores>``.
    """

    provider = "stripe"

    def __init__(self, payload: Mapping[str, t.Any]):
        if not isinstance(payload, Mapping) or not isinstance(payload.get("type"), str):
            raise InvalidWebhookPayloadError()
        self.payload = payload
        self.event_type: str = payload["type"]
        self.obj = _as_mapping(_as_mapping(payload.get("data")).get("object"))

    def parse(self) -> PaymentEvent:
        parser = getattr(self, f"parse_{self.event_type.replace('.', '_')}", self.parse_unknown_event)
        return t.cast(PaymentEvent, parser())

    def parse_unknown_event(self) -> UnknownPaymentEvent:
        return UnknownPaymentEvent(provider=self.provider, event_type=self.event_type)

    def parse_checkout_session_completed(self) -> PaymentEvent:
        session_id = _as_str(self.obj.get("id"))
        if session_id is None:
            raise InvalidWebhookPayloadError()

        payment_status = self.obj.get("payment_status")
        if payment_status not in {"paid", "no_payment_required"}:
            logger.warning("stripe_session_unresolved_payment", session_id=session_id, payment_status=payment_status)
            return self.parse_unknown_event()

        metadata = _as_mapping(self.obj.get("metadata"))
        payment_intent_id = _as_str(self.obj.get("payment_intent"))

        if metadata.get("kind") == GROUP_SHARE_KIND:
            group_order_id = _as_str(metadata.get("group_order_id"))
            if group_order_id is None:
                raise InvalidWebhookPayloadError()
            customer_details = _as_mapping(self.obj.get("customer_details"))
            return GroupSharePaid(
                provider=self.provider,
                correlation_id=session_id,
                group_order_id=group_order_id,
                participant_id=_as_str(metadata.get("participant_id")),
                email=_as_str(self.obj.get("customer_email")) or _as_str(customer_details.get("email")),
                payment_intent_id=payment_intent_id,
            )

        return PaymentSucceeded(
            provider=self.provider,
            correlation_id=session_id,
            payment_intent_id=payment_intent_id,
            amount_total_cents=_as_int(self.obj.get("amount_total")),
        )

    def parse_checkout_session_async_payment_succeeded(self) -> PaymentEvent:
        return self.parse_checkout_session_completed()

    def parse_checkout_session_async_payment_failed(self) -> PaymentEvent:
        return self._session_failed("async_payment_failed")

    def parse_checkout_session_expired(self) -> PaymentEvent:
        return self._session_failed("session_expired")

    def _session_failed(self, reason: str) -> PaymentEvent:
        if _as_mapping(self.obj.get("metadata")).get("kind") == GROUP_SHARE_KIND:
            # An abandoned share leaves the participant pending; nothing to fail.
            return self.parse_unknown_event()
        session_id = _as_str(self.obj.get("id"))
        if session_id is None:
            raise InvalidWebhookPayloadError()
        return PaymentFailed(
            provider=self.provider,
            correlation_id=session_id,
            payment_intent_id=_as_str(self.obj.get("payment_intent")),
            reason=reason,
        )

    def parse_payment_intent_payment_failed(self) -> PaymentEvent:
        payment_intent_id = _as_str(self.obj.get("id"))
        if payment_intent_id is None:
            raise InvalidWebhookPayloadError()
        last_error = _as_mapping(self.obj.get("last_payment_error"))
        return PaymentFailed(
            provider=self.provider,
            correlation_id=None,
            payment_intent_id=payment_intent_id,
            reason=_as_str(last_error.get("code")) or "payment_failed",
        )


def parse_stripe_event(payload: Mapping[str, t.Any]) -> PaymentEvent:
    return StripeEventParser(payload).parse()


def parse_bridge_event(payload: Mapping[str, t.Any]) -> PaymentEvent:
    """Map a Bridge ``payment.transaction.updated`` delivery onto a payment variant.

    The order is correlated by ``data.payment_link_id``, falling back to ``data.transaction_id``.
    """
    if not isinstance(payload, Mapping):
        raise InvalidWebhookPayloadError()
    event_type = payload.get("type")
    if not isinstance(event_type, str):
        raise InvalidWebhookPayloadError()
    if event_type != "payment.transaction.updated":
        return UnknownPaymentEvent(provider="bridge", event_type=event_type)

    data = _as_mapping(payload.get("data"))
    correlation_id = _as_str(data.get("payment_link_id")) or _as_str(data.get("transaction_id"))
    status = data.get("status")
    if correlation_id is None:
        raise InvalidWebhookPayloadError()

    if status == "successful":
        return PaymentSucceeded(
            provider="bridge",
            correlation_id=correlation_id,
            payment_intent_id=_as_str(data.get("transaction_id")),
        )
    if status == "failed":
        return PaymentFailed(
            provider="bridge",
            correlation_id=correlation_id,
            payment_intent_id=_as_str(data.get("transaction_id")),
            reason=_as_str(data.get("status_reason")) or "failed",
        )
    return UnknownPaymentEvent(provider="bridge", event_type=f"{event_type}:{status}")
