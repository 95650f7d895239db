"""Stripe Checkout Session creation on an organizer's connected account."""

import typing as t
from collections.abc import Sequence
from datetime import timedelta

import stripe
import structlog
from django.conf import settings
from django.utils import timezone
from stripe.checkout import Session

from events.exceptions import PaymentProviderError, PaymentsNotConfiguredError
from events.models import Organizer

logger = structlog.get_logger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY


class CheckoutLine(t.NamedTuple):
    name: str
    unit_amount_cents: int
    quantity: int


def create_stripe_checkout_session(
    organizer: Organizer,
    *,
    customer_email: str,
    currency: str,
    lines: Sequence[CheckoutLine],
    application_fee_cents: int,
    success_url: str,
    cancel_url: str,
    metadata: dict[str, str],
) -> Session:
    """Create a Checkout Session as a direct charge on the organizer's account.

    Raises:
        PaymentsNotConfiguredError: The organizer has no connected Stripe account.
        PaymentProviderError: The Stripe API call failed.
    """
    if not organizer.is_stripe_connected:
        raise PaymentsNotConfiguredError()

    expires_at = timezone.now() + timedelta(minutes=settings.PAYMENT_DEFAULT_EXPIRY_MINUTES)
    session_data = dict(  # noqa: C408
        customer_email=customer_email,
        line_items=[
            {
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {"name": line.name},
                    "unit_amount": line.unit_amount_cents,
                },
                "quantity": line.quantity,
            }
            for line in lines
        ],
        mode="payment",
        success_url=success_url,
        cancel_url=cancel_url,
        payment_intent_data={"application_fee_amount": application_fee_cents},
        stripe_account=organizer.stripe_account_id,
        metadata=metadata,
        expires_at=int(expires_at.timestamp()),
    )
    if application_fee_cents <= 0:
        session_data.pop("payment_intent_data")

    try:
        session = Session.create(**session_data)  # type: ignore[arg-type]
    except stripe.StripeError as e:
        logger.error("stripe_checkout_session_failed", organizer_id=str(organizer.id), error=str(e))
        raise PaymentProviderError() from e

    logger.info(
        "stripe_checkout_session_created",
        organizer_id=str(organizer.id),
        checkout_session_id=session.id,
    )
    return session
