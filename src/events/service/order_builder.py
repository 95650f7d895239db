"""Shared steps of checkout and free reservation: item validation and order creation."""

import typing as t
from collections.abc import Iterable

import structlog

from accounts.models import TurnstileUser
from events.exceptions import InvalidOrderItemsError, SoldOutError
from events.models import Event, Order, OrderItem, TicketTier

from .codes import generate_unique_code

logger = structlog.get_logger(__name__)


class RequestedItem(t.NamedTuple):
    tier_id: t.Any
    quantity: int


def lock_requested_tiers(event: Event, items: Iterable[RequestedItem]) -> list[tuple[TicketTier, int]]:
    """Validate the requested items against the event and lock their tiers.

    Quantities for the same tier are merged. Must run inside a transaction.

    Raises:
        InvalidOrderItemsError: Empty request, quantity below one, or a tier of another event.
        SoldOutError: A tier has fewer tickets left than requested.
    """
    quantities: dict[str, int] = {}
    for item in items:
        if item.quantity < 1:
            raise InvalidOrderItemsError("Quantity must be at least 1.")
        key = str(item.tier_id)
        quantities[key] = quantities.get(key, 0) + item.quantity
    if not quantities:
        raise InvalidOrderItemsError()

    tiers = {
        str(tier.pk): tier
        for tier in TicketTier.objects.select_for_update()
        .filter(event=event, pk__in=list(quantities))
        .order_by("display_order", "pk")
    }
    if len(tiers) != len(quantities):
        raise InvalidOrderItemsError()

    locked: list[tuple[TicketTier, int]] = []
    for tier in tiers.values():
        quantity = quantities[str(tier.pk)]
        remaining = tier.remaining()
        if remaining is not None and remaining < quantity:
            logger.info("ticket_tier_sold_out", tier_id=str(tier.pk), requested=quantity, remaining=remaining)
            raise SoldOutError()
        locked.append((tier, quantity))
    return locked


def create_order(
    event: Event,
    user: TurnstileUser,
    email: str,
    tiers: list[tuple[TicketTier, int]],
    **fields: t.Any,
) -> Order:
    """Persist an order with one item per tier, priced at the tiers' current prices."""
    subtotal = sum(tier.price_cents * quantity for tier, quantity in tiers)
    fields.setdefault("subtotal_cents", subtotal)
    fields.setdefault("amount_total_cents", subtotal)
    order = Order.objects.create(
        event=event,
        user=user,
        email=email,
        short_code=generate_unique_code(Order, "short_code"),
        currency=tiers[0][0].currency,
        **fields,
    )
    for tier, quantity in tiers:
        OrderItem.objects.create(order=order, tier=tier, quantity=quantity, unit_price_cents=tier.price_cents)
    return order
