"""Zero-cost reservations: tickets without a payment provider round-trip."""

from collections.abc import Iterable

import structlog
from django.db import transaction

from accounts.models import TurnstileUser
from accounts.service.identity import get_or_create_guest_user, normalize_email
from events.exceptions import NonFreeTierError
from events.models import Event, Order

from .order_builder import RequestedItem, create_order, lock_requested_tiers
from .settlement import SettlementResult, settle_order

logger = structlog.get_logger(__name__)


def create_free_reservation(
    event: Event,
    items: Iterable[RequestedItem],
    email: str,
    user: TurnstileUser | None = None,
    first_name: str = "",
    last_name: str = "",
) -> tuple[Order, SettlementResult]:
    """Reserve free tickets and issue them immediately.

    The order is created as ``paid`` and settled through the same guard as paid orders, all in one
    transaction: either the order and its tickets exist or nothing does. Guests without an account
    get one provisioned by email.

    Raises:
        InvalidOrderItemsError: Bad items.
        NonFreeTierError: Any requested tier has a price.
        SoldOutError: Not enough tickets left.
    """
    email = normalize_email(email)
    with transaction.atomic():
        tiers = lock_requested_tiers(event, items)
        if any(not tier.is_free for tier, _ in tiers):
            raise NonFreeTierError()

        holder = user if user is not None and user.is_authenticated else None
        holder = holder or get_or_create_guest_user(email, first_name=first_name, last_name=last_name)

        order = create_order(event, holder, email, tiers, kind=Order.OrderKind.FREE, status=Order.OrderStatus.PAID)
        result = settle_order(order.pk)

    order.refresh_from_db()
    logger.info("free_reservation_created", order_id=str(order.id), event_id=str(event.id), user_id=str(holder.pk))
    return order, result
