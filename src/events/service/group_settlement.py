"""Settlement of split-payment group orders.

Each participant pays on their own schedule. A participant payment is applied under a row lock on
the group, so the "is everyone paid now" check always sees every committed payment of that group.
The last payment completes the group; tickets are then issued per participant, each in its own
transaction, so one participant's failure never blocks the others.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from accounts.service.identity import get_or_create_guest_user
from events.exceptions import (
    AlreadyPaidError,
    GroupOrderClosedError,
    GroupOrderExpiredError,
    GroupOrderNotFoundError,
    ParticipantNotFoundError,
)
from events.models import GroupOrder, GroupOrderParticipant, Order, OrderItem

from .codes import generate_unique_code
from .payment_events import GroupSharePaid
from .settlement import settle_order, transition_status

logger = structlog.get_logger(__name__)


class GroupSettlementOutcome(enum.StrEnum):
    WAITING = "waiting"
    COMPLETED = "completed"
    REPLAYED = "replayed"


@dataclass(frozen=True)
class GroupIssuanceReport:
    issued_order_ids: list[UUID] = field(default_factory=list)
    failed_participant_ids: list[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class GroupSettlementResult:
    group_order_id: UUID
    participant_id: UUID
    outcome: GroupSettlementOutcome
    report: GroupIssuanceReport = field(default_factory=GroupIssuanceReport)


def resolve_participant(
    group_order: GroupOrder,
    participant_id: UUID | str | None = None,
    user_id: UUID | None = None,
    email: str | None = None,
) -> GroupOrderParticipant:
    """Find a participant slot by id, by linked account, or by email (case-insensitive)."""
    participants = group_order.participants.all()
    participant = None
    if participant_id:
        participant = participants.filter(pk=participant_id).first()
    if participant is None and user_id:
        participant = participants.filter(user_id=user_id).first()
    if participant is None and email:
        participant = participants.filter(email__iexact=email.strip()).first()
    if participant is None:
        raise ParticipantNotFoundError()
    return participant


def settle_group_participant_payment(event: GroupSharePaid, now: datetime | None = None) -> GroupSettlementResult:
    """Record one participant's payment and complete the group if it was the last one.

    Raises:
        GroupOrderNotFoundError: Unknown group.
        ParticipantNotFoundError: No matching slot in the group.
        AlreadyPaidError: The slot was paid by a different payment.
        GroupOrderClosedError: The group is no longer pending.
        GroupOrderExpiredError: The group expired before this payment.
    """
    now = now or timezone.now()
    with transaction.atomic():
        group_order = GroupOrder.objects.select_for_update().filter(pk=event.group_order_id).first()
        if group_order is None:
            raise GroupOrderNotFoundError()

        participant = resolve_participant(group_order, participant_id=event.participant_id, email=event.email)

        if participant.status == GroupOrderParticipant.ParticipantStatus.PAID:
            if participant.checkout_session_id == event.correlation_id:
                logger.info(
                    "group_participant_payment_replayed",
                    group_order_id=str(group_order.id),
                    participant_id=str(participant.id),
                )
                return GroupSettlementResult(
                    group_order_id=group_order.id,
                    participant_id=participant.id,
                    outcome=GroupSettlementOutcome.REPLAYED,
                )
            raise AlreadyPaidError()

        if group_order.status != GroupOrder.GroupOrderStatus.PENDING:
            raise GroupOrderClosedError()
        if group_order.is_expired(now):
            raise GroupOrderExpiredError()

        if not transition_status(
            GroupOrderParticipant,
            participant.pk,
            (GroupOrderParticipant.ParticipantStatus.PENDING,),
            GroupOrderParticipant.ParticipantStatus.PAID,
            paid_at=now,
            checkout_session_id=event.correlation_id,
            payment_intent_id=event.payment_intent_id,
        ):
            raise AlreadyPaidError()

        logger.info(
            "group_participant_paid",
            group_order_id=str(group_order.id),
            participant_id=str(participant.id),
        )

        unpaid = group_order.participants.exclude(status=GroupOrderParticipant.ParticipantStatus.PAID).count()
        if unpaid:
            logger.info("group_order_waiting", group_order_id=str(group_order.id), unpaid_count=unpaid)
            return GroupSettlementResult(
                group_order_id=group_order.id,
                participant_id=participant.id,
                outcome=GroupSettlementOutcome.WAITING,
            )

        transition_status(
            GroupOrder,
            group_order.pk,
            (GroupOrder.GroupOrderStatus.PENDING,),
            GroupOrder.GroupOrderStatus.COMPLETED,
            completed_at=now,
        )
        logger.info("group_order_completed", group_order_id=str(group_order.id))

    report = issue_group_tickets(group_order)
    return GroupSettlementResult(
        group_order_id=group_order.id,
        participant_id=participant.id,
        outcome=GroupSettlementOutcome.COMPLETED,
        report=report,
    )


def _create_participant_order(group_order: GroupOrder, participant: GroupOrderParticipant) -> Order:
    holder = participant.user or get_or_create_guest_user(participant.email)
    order = Order.objects.create(
        event_id=group_order.event_id,
        user=holder,
        email=participant.email,
        kind=Order.OrderKind.GROUP,
        status=Order.OrderStatus.PAID,
        short_code=generate_unique_code(Order, "short_code"),
        currency=group_order.currency,
        subtotal_cents=participant.amount_cents,
        amount_total_cents=participant.amount_cents,
        payment_intent_id=participant.payment_intent_id,
    )
    OrderItem.objects.create(
        order=order, tier_id=group_order.tier_id, quantity=1, unit_price_cents=group_order.price_per_ticket_cents
    )
    participant.order = order
    participant.save(update_fields=["order", "updated_at"])
    return order


def issue_group_tickets(group_order: GroupOrder) -> GroupIssuanceReport:
    """Create one order and one ticket per paid participant of a completed group.

    Each participant row is locked and re-read before its order is reused or created, so
    concurrent passes (webhook and admin reconcile) never issue twice. Participants whose order is
    already completed are skipped. Failures are logged per participant and do not stop the loop.
    """
    report = GroupIssuanceReport()
    participant_ids = list(
        group_order.participants.filter(status=GroupOrderParticipant.ParticipantStatus.PAID).values_list(
            "pk", flat=True
        )
    )

    for participant_id in participant_ids:
        try:
            with transaction.atomic():
                participant = (
                    GroupOrderParticipant.objects.select_for_update(of=("self",))
                    .select_related("order", "user")
                    .get(pk=participant_id)
                )
                if participant.order is not None and participant.order.status == Order.OrderStatus.COMPLETED:
                    continue
                order = participant.order or _create_participant_order(group_order, participant)
                settle_order(order.pk)
        except Exception:
            logger.exception(
                "group_participant_issuance_failed",
                group_order_id=str(group_order.id),
                participant_id=str(participant_id),
            )
            report.failed_participant_ids.append(participant_id)
            continue
        report.issued_order_ids.append(order.pk)

    logger.info(
        "group_tickets_issued",
        group_order_id=str(group_order.id),
        issued_count=len(report.issued_order_ids),
        failed_count=len(report.failed_participant_ids),
    )
    return report


def reissue_group_tickets(group_order: GroupOrder) -> GroupIssuanceReport:
    """Manual reconciliation entry point for completed groups with missing tickets."""
    if group_order.status != GroupOrder.GroupOrderStatus.COMPLETED:
        raise GroupOrderClosedError("Only completed group orders can be reconciled.")
    return issue_group_tickets(group_order)
