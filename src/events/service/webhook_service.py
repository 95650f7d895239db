"""Inbound payment webhooks: authenticity checks and dispatch to settlement.

A delivery is answered 2xx once it is resolved (settled, replayed, or deliberately ignored), so the
provider stops redelivering. Missing orders and storage failures propagate as 404 and 503, which
the provider retries.
"""

import typing as t
from collections.abc import Mapping
from dataclasses import dataclass

import orjson
import stripe
import structlog
from django.conf import settings

from common.signing import verify_webhook_signature
from events.exceptions import (
    InvalidWebhookPayloadError,
    InvalidWebhookSignatureError,
    StateConflictError,
    WebhookSignatureRequiredError,
)

from .group_settlement import GroupSettlementOutcome, settle_group_participant_payment
from .payment_events import GroupSharePaid, PaymentEvent, PaymentFailed, PaymentSucceeded, UnknownPaymentEvent
from .settlement import SettlementOutcome, settle_payment

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WebhookAck:
    status: str
    detail: str | None = None


def _loads(payload: bytes) -> Mapping[str, t.Any]:
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise InvalidWebhookPayloadError() from e
    if not isinstance(data, dict):
        raise InvalidWebhookPayloadError()
    return data


def _unsigned(provider: str, payload: bytes) -> Mapping[str, t.Any]:
    if not settings.ALLOW_UNSIGNED_WEBHOOKS:
        logger.error("webhook_secret_not_configured", provider=provider)
        raise WebhookSignatureRequiredError()
    logger.warning("webhook_accepted_unsigned", provider=provider)
    return _loads(payload)


def load_stripe_payload(payload: bytes, signature: str | None) -> Mapping[str, t.Any]:
    """Verify a Stripe delivery and return its decoded body."""
    secret = settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        return _unsigned("stripe", payload)
    if not signature:
        raise WebhookSignatureRequiredError()
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError as e:
        logger.warning("stripe_webhook_signature_invalid")
        raise InvalidWebhookSignatureError() from e
    except ValueError as e:
        raise InvalidWebhookPayloadError() from e
    return _loads(payload)


def load_bridge_payload(payload: bytes, signature: str | None) -> Mapping[str, t.Any]:
    """Verify a Bridge delivery (hex HMAC-SHA256 of the raw body) and return its decoded body."""
    secret = settings.BRIDGE_WEBHOOK_SECRET
    if not secret:
        return _unsigned("bridge", payload)
    if not signature:
        raise WebhookSignatureRequiredError()
    if not verify_webhook_signature(payload, signature, secret):
        logger.warning("bridge_webhook_signature_invalid")
        raise InvalidWebhookSignatureError()
    return _loads(payload)


def apply_payment_event(event: PaymentEvent) -> WebhookAck:
    """Route a parsed provider event to the matching settlement operation."""
    match event:
        case UnknownPaymentEvent():
            logger.info("payment_event_ignored", provider=event.provider, event_type=event.event_type)
            return WebhookAck(status="ignored")

        case GroupSharePaid():
            try:
                group_result = settle_group_participant_payment(event)
            except StateConflictError as e:
                # The money moved but the share cannot be applied; stop redelivery and flag it.
                logger.error(
                    "group_share_payment_rejected",
                    provider=event.provider,
                    group_order_id=event.group_order_id,
                    correlation_id=event.correlation_id,
                    reason=e.message,
                )
                return WebhookAck(status="ignored", detail=e.message)
            if group_result.outcome == GroupSettlementOutcome.REPLAYED:
                return WebhookAck(status="replayed")
            if group_result.outcome == GroupSettlementOutcome.WAITING:
                return WebhookAck(status="waiting")
            return WebhookAck(status="processed")

        case PaymentSucceeded() | PaymentFailed():
            result = settle_payment(event)
            if result.outcome == SettlementOutcome.REPLAYED:
                return WebhookAck(status="replayed")
            if result.outcome == SettlementOutcome.IGNORED:
                return WebhookAck(status="ignored")
            return WebhookAck(status="processed")

    raise InvalidWebhookPayloadError()
