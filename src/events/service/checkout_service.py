"""Paid checkout: pending order plus a Stripe Checkout Session."""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from django.conf import settings
from django.db import transaction

from accounts.models import TurnstileUser
from accounts.service.identity import get_or_create_guest_user, normalize_email
from events.models import Event, Order

from . import promo_service
from .free_reservation import create_free_reservation
from .order_builder import RequestedItem, create_order, lock_requested_tiers
from .pricing import calculate_ticket_price, get_plan
from .settlement import settle_order
from .stripe_checkout import CheckoutLine, create_stripe_checkout_session

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    checkout_url: str | None


def create_checkout(
    event: Event,
    items: Iterable[RequestedItem],
    email: str,
    user: TurnstileUser | None = None,
    promo_code: str | None = None,
) -> CheckoutResult:
    """Start a purchase.

    Free carts are reserved and settled on the spot. Otherwise a pending order is stored with the
    Stripe session id as its correlation id; the payment webhook settles it later.

    The promo discount applies to the subtotal. The platform fee is charged per ticket on the
    organizer's plan and comes out of the organizer's payout, so the buyer pays
    ``subtotal - discount``.

    Raises:
        InvalidOrderItemsError, SoldOutError, PromoCodeRejectedError,
        PaymentsNotConfiguredError, PaymentProviderError.
    """
    items = list(items)
    email = normalize_email(email)
    holder = user if user is not None and user.is_authenticated else None

    with transaction.atomic():
        tiers = lock_requested_tiers(event, items)
        if all(tier.is_free for tier, _ in tiers):
            order, _result = create_free_reservation(event, items, email, user=holder)
            return CheckoutResult(order=order, checkout_url=None)

        subtotal = sum(tier.price_cents * quantity for tier, quantity in tiers)
        discount = 0
        promo_code_id = None
        if promo_code:
            descriptor = promo_service.validate_promo_code(promo_code, event.pk)
            discount = promo_service.compute_discount(subtotal, descriptor)
            promo_code_id = descriptor.promo_code_id
        amount_total = subtotal - discount

        plan = get_plan(event.organizer.plan)
        application_fee = sum(
            calculate_ticket_price(tier.price_cents, plan, tier.currency).application_fee_cents * quantity
            for tier, quantity in tiers
            if not tier.is_free
        )
        application_fee = min(application_fee, amount_total)

        holder = holder or get_or_create_guest_user(email)
        order = create_order(
            event,
            holder,
            email,
            tiers,
            kind=Order.OrderKind.STANDARD,
            status=Order.OrderStatus.PENDING,
            discount_cents=discount,
            amount_total_cents=amount_total,
            application_fee_cents=application_fee,
            promo_code_id=promo_code_id,
        )

        if amount_total == 0:
            # Fully discounted, nothing to collect.
            Order.objects.filter(pk=order.pk).update(status=Order.OrderStatus.PAID, application_fee_cents=0)
            settle_order(order.pk)
            order.refresh_from_db()
            return CheckoutResult(order=order, checkout_url=None)

        if discount:
            lines = [
                CheckoutLine(name=f"{event.name} ({order.short_code})", unit_amount_cents=amount_total, quantity=1)
            ]
        else:
            lines = [
                CheckoutLine(
                    name=f"Ticket: {event.name} ({tier.name})", unit_amount_cents=tier.price_cents, quantity=quantity
                )
                for tier, quantity in tiers
            ]
        event_url = f"{settings.FRONTEND_BASE_URL}/events/{event.id}"
        session = create_stripe_checkout_session(
            event.organizer,
            customer_email=email,
            currency=order.currency,
            lines=lines,
            application_fee_cents=application_fee,
            success_url=f"{event_url}?payment_success=true&order={order.short_code}",
            cancel_url=f"{event_url}?payment_cancelled=true",
            metadata={"order_id": str(order.id), "event_id": str(event.id), "user_id": str(holder.pk)},
        )
        order.checkout_session_id = session.id
        order.save(update_fields=["checkout_session_id", "updated_at"])

    logger.info(
        "checkout_created",
        order_id=str(order.id),
        checkout_session_id=session.id,
        amount_total_cents=amount_total,
        discount_cents=discount,
    )
    return CheckoutResult(order=order, checkout_url=session.url)
