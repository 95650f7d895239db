"""Order settlement.

Every path that turns a payment into tickets (provider webhooks, free reservations, group
shares) goes through ``settle_order``. It locks the order row, bails out if the order is already
completed, issues the tickets and flips the status with a status-guarded update, all in one
transaction. A duplicate or concurrent delivery either waits on the lock and then sees
``completed``, or loses the guarded update and rolls its tickets back.
"""

import enum
import typing as t
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import partial
from uuid import UUID

import structlog
from django.db import models, transaction
from django.utils import timezone

from accounts.models import TurnstileUser
from events.exceptions import IssuanceError, OrderNotFoundError
from events.models import Order

from .notifications import dispatch_ticket_email
from .payment_events import PaymentFailed, PaymentSucceeded
from .promo_service import redeem_promo_code
from .ticket_issuer import issue_tickets

logger = structlog.get_logger(__name__)


class SettlementOutcome(enum.StrEnum):
    COMPLETED = "completed"
    REPLAYED = "replayed"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class SettlementResult:
    order_id: UUID
    outcome: SettlementOutcome
    ticket_ids: list[UUID] = field(default_factory=list)


def transition_status(
    model: type[models.Model],
    pk: t.Any,
    from_statuses: Iterable[str],
    to_status: str,
    **changes: t.Any,
) -> bool:
    """Compare-and-set on a ``status`` column.

    Updates the row only if its current status is one of ``from_statuses``.

    Returns:
        True if this call performed the transition.
    """
    updated = model._default_manager.filter(pk=pk, status__in=list(from_statuses)).update(
        status=to_status, updated_at=timezone.now(), **changes
    )
    return updated == 1


def settle_order(
    order_id: UUID,
    *,
    amount_total_cents: int | None = None,
    payment_intent_id: str | None = None,
    holder: TurnstileUser | None = None,
) -> SettlementResult:
    """Issue the tickets of an order and mark it completed, exactly once.

    Args:
        order_id: The order to settle.
        amount_total_cents: Amount the provider reports as charged, if any.
        payment_intent_id: Provider payment reference, if any.
        holder: Ticket holder, defaults to the purchaser.

    Raises:
        OrderNotFoundError: If there is no such order.
        IssuanceError: If tickets could not be written. Nothing is persisted.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise OrderNotFoundError()

        if order.status == Order.OrderStatus.COMPLETED:
            logger.info("order_settlement_replayed", order_id=str(order.id))
            return SettlementResult(order_id=order.id, outcome=SettlementOutcome.REPLAYED)

        if order.status == Order.OrderStatus.FAILED:
            # The provider confirmed capture after an earlier failed attempt on the same order.
            logger.warning("order_settled_after_failure", order_id=str(order.id))

        tickets = issue_tickets(order, holder=holder)

        changes: dict[str, t.Any] = {"completed_at": timezone.now()}
        if amount_total_cents is not None:
            changes["amount_total_cents"] = amount_total_cents
        if payment_intent_id:
            changes["payment_intent_id"] = payment_intent_id

        if not transition_status(
            Order,
            order.pk,
            (*Order.SETTLEABLE_STATUSES, Order.OrderStatus.FAILED),
            Order.OrderStatus.COMPLETED,
            **changes,
        ):
            logger.error("order_settlement_lost_race", order_id=str(order.id))
            raise IssuanceError()

        if order.promo_code_id:
            redeem_promo_code(order.promo_code_id)

        transaction.on_commit(partial(dispatch_ticket_email, order.id))

    logger.info(
        "order_settled",
        order_id=str(order.id),
        short_code=order.short_code,
        ticket_count=len(tickets),
    )
    return SettlementResult(
        order_id=order.id,
        outcome=SettlementOutcome.COMPLETED,
        ticket_ids=[ticket.id for ticket in tickets],
    )


def fail_order(order_id: UUID, reason: str | None = None) -> SettlementResult:
    """Mark a pending order failed. Orders past pending are left alone."""
    if transition_status(Order, order_id, (Order.OrderStatus.PENDING,), Order.OrderStatus.FAILED):
        logger.info("order_failed", order_id=str(order_id), reason=reason)
        return SettlementResult(order_id=order_id, outcome=SettlementOutcome.FAILED)

    current = Order.objects.filter(pk=order_id).values_list("status", flat=True).first()
    logger.info("order_failure_ignored", order_id=str(order_id), current_status=current, reason=reason)
    return SettlementResult(order_id=order_id, outcome=SettlementOutcome.IGNORED)


def find_order_id(correlation_id: str | None, payment_intent_id: str | None = None) -> UUID:
    """Resolve an order from provider references, session id first."""
    order_id = None
    if correlation_id:
        order_id = Order.objects.filter(checkout_session_id=correlation_id).values_list("pk", flat=True).first()
    if order_id is None and payment_intent_id:
        order_id = Order.objects.filter(payment_intent_id=payment_intent_id).values_list("pk", flat=True).first()
    if order_id is None:
        logger.warning(
            "order_not_found_for_payment",
            correlation_id=correlation_id,
            payment_intent_id=payment_intent_id,
        )
        raise OrderNotFoundError()
    return order_id


def settle_payment(event: PaymentSucceeded | PaymentFailed) -> SettlementResult:
    """Apply a provider payment event to the order it refers to."""
    order_id = find_order_id(event.correlation_id, event.payment_intent_id)
    if isinstance(event, PaymentSucceeded):
        return settle_order(
            order_id,
            amount_total_cents=event.amount_total_cents,
            payment_intent_id=event.payment_intent_id,
        )
    return fail_order(order_id, reason=event.reason)
