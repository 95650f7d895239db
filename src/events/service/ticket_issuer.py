"""Ticket issuance for settled orders."""

from collections.abc import Sequence

import structlog
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import TurnstileUser
from common.signing import compute_ticket_hash
from events.exceptions import IssuanceError
from events.models import Order, Ticket, TicketTier
from events.models.order import LineItem

from .codes import generate_ticket_token

logger = structlog.get_logger(__name__)


def format_serial(short_code: str, sequence: int) -> str:
    return f"{short_code}-{sequence:03d}"


def issue_tickets(
    order: Order,
    line_items: Sequence[LineItem] | None = None,
    holder: TurnstileUser | None = None,
) -> list[Ticket]:
    """Create one ticket per purchased unit of an order in a single batch.

    Serials run ``{short_code}-001`` upwards across all line items. The counter starts from the
    number of tickets the order already has, so it is bound to the order row rather than to the
    process. Callers run this inside the settlement transaction, after the order row is locked,
    and mark the order completed only once this returns.

    Args:
        order: The order being settled.
        line_items: Quantities per tier. Defaults to the order's items.
        holder: Ticket holder. Defaults to the purchaser.

    Returns:
        The created tickets.

    Raises:
        IssuanceError: If the order has nothing to issue or the batch insert fails. Nothing is
            persisted in that case.
    """
    line_items = order.line_items() if line_items is None else list(line_items)
    if not line_items or any(item.quantity < 1 for item in line_items):
        logger.error("ticket_issuance_no_line_items", order_id=str(order.id))
        raise IssuanceError()

    holder_id = holder.pk if holder is not None else order.user_id
    sequence = order.tickets.count()
    now = timezone.now()

    tickets: list[Ticket] = []
    for item in line_items:
        for _ in range(item.quantity):
            sequence += 1
            serial = format_serial(order.short_code, sequence)
            tickets.append(
                Ticket(
                    order=order,
                    event_id=order.event_id,
                    tier_id=item.tier_id,
                    user_id=holder_id,
                    serial=serial,
                    token=generate_ticket_token(),
                    integrity_hash=compute_ticket_hash(serial, order.event_id),
                    original_price_cents=item.unit_price_cents,
                    issued_at=now,
                )
            )

    try:
        with transaction.atomic():
            created = Ticket.objects.bulk_create(tickets)
            for item in line_items:
                TicketTier.objects.filter(pk=item.tier_id).update(
                    quantity_sold=F("quantity_sold") + item.quantity, updated_at=now
                )
    except DatabaseError as e:
        logger.error("ticket_issuance_failed", order_id=str(order.id), ticket_count=len(tickets), error=str(e))
        raise IssuanceError() from e

    logger.info(
        "tickets_issued",
        order_id=str(order.id),
        short_code=order.short_code,
        ticket_count=len(created),
    )
    return created
