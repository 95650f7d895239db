"""Group orders: creation, the public share view, slot claiming and per-participant checkout."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from stripe.checkout import Session

from accounts.models import TurnstileUser
from accounts.service.identity import normalize_email
from events.exceptions import (
    AlreadyPaidError,
    GroupOrderClosedError,
    GroupOrderExpiredError,
    GroupOrderNotFoundError,
    InvalidOrderItemsError,
    ParticipantAlreadyLinkedError,
    ParticipantCountMismatchError,
    ParticipantNotFoundError,
    SoldOutError,
)
from events.models import Event, GroupOrder, GroupOrderParticipant, TicketTier

from .codes import SHARE_CODE_LENGTH, generate_unique_code
from .group_settlement import resolve_participant
from .payment_events import GROUP_SHARE_KIND
from .pricing import calculate_group_share_fee
from .stripe_checkout import CheckoutLine, create_stripe_checkout_session

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ParticipantView:
    id: UUID
    masked_email: str
    status: str
    paid_at: datetime | None
    is_current_user: bool


@dataclass(frozen=True)
class GroupOrderView:
    group_order: GroupOrder
    participants: list[ParticipantView]
    paid_count: int


def mask_email(email: str) -> str:
    """``alice@example.com`` -> ``al***@example.com``; one visible char for very short locals."""
    local, _, domain = email.partition("@")
    visible = local[:2] if len(local) > 2 else local[:1]
    return f"{visible}***@{domain}"


def get_group_order(share_code: str) -> GroupOrder:
    group_order = (
        GroupOrder.objects.select_related("event", "event__organizer", "tier").filter(share_code=share_code).first()
    )
    if group_order is None:
        raise GroupOrderNotFoundError()
    return group_order


def _ensure_open(group_order: GroupOrder) -> None:
    if group_order.status != GroupOrder.GroupOrderStatus.PENDING:
        raise GroupOrderClosedError()
    if group_order.is_expired():
        raise GroupOrderExpiredError()


@transaction.atomic
def create_group_order(
    event: Event,
    tier: TicketTier,
    creator: TurnstileUser,
    participant_emails: Iterable[str],
    total_tickets: int | None = None,
) -> GroupOrder:
    """Create a pending group order with one participant slot per email.

    Every participant owes the tier price. The slot matching the creator's email is linked to
    the creator straight away.

    Raises:
        InvalidOrderItemsError: Tier of another event, free tier, or duplicate emails.
        ParticipantCountMismatchError: No emails, or not exactly ``total_tickets`` of them.
        SoldOutError: The tier cannot hold that many more tickets.
    """
    emails = [normalize_email(email) for email in participant_emails if email and email.strip()]
    if not emails or (total_tickets is not None and len(emails) != total_tickets):
        raise ParticipantCountMismatchError()
    if tier.event_id != event.pk:
        raise InvalidOrderItemsError()
    if len(set(emails)) != len(emails):
        raise InvalidOrderItemsError("Each participant email may appear only once.")
    if tier.is_free:
        raise InvalidOrderItemsError("Free tiers can be reserved directly, no group order needed.")

    locked_tier = TicketTier.objects.select_for_update().get(pk=tier.pk)
    remaining = locked_tier.remaining()
    if remaining is not None and remaining < len(emails):
        raise SoldOutError()

    group_order = GroupOrder.objects.create(
        event=event,
        tier=locked_tier,
        creator=creator,
        total_tickets=len(emails),
        price_per_ticket_cents=locked_tier.price_cents,
        currency=locked_tier.currency,
        share_code=generate_unique_code(GroupOrder, "share_code", length=SHARE_CODE_LENGTH),
        expires_at=timezone.now() + timedelta(hours=settings.GROUP_ORDER_EXPIRY_HOURS),
    )
    creator_email = normalize_email(creator.email) if creator.email else None
    participants = [
        GroupOrderParticipant(
            group_order=group_order,
            email=email,
            user=creator if email == creator_email else None,
            amount_cents=locked_tier.price_cents,
        )
        for email in emails
    ]
    GroupOrderParticipant.objects.bulk_create(participants)

    logger.info(
        "group_order_created",
        group_order_id=str(group_order.id),
        share_code=group_order.share_code,
        total_tickets=group_order.total_tickets,
    )
    return group_order


def get_group_order_view(share_code: str, user: TurnstileUser | None = None) -> GroupOrderView:
    """Public view of a group order. Emails are masked; the caller's own slot is flagged."""
    group_order = get_group_order(share_code)
    user_id = user.pk if user is not None and user.is_authenticated else None
    user_email = normalize_email(user.email) if user_id and user.email else None

    participants = [
        ParticipantView(
            id=participant.id,
            masked_email=mask_email(participant.email),
            status=participant.status,
            paid_at=participant.paid_at,
            is_current_user=bool(
                (user_id and participant.user_id == user_id) or (user_email and participant.email == user_email)
            ),
        )
        for participant in group_order.participants.all()
    ]
    paid_count = sum(1 for p in participants if p.status == GroupOrderParticipant.ParticipantStatus.PAID)
    return GroupOrderView(group_order=group_order, participants=participants, paid_count=paid_count)


def _claim(participant: GroupOrderParticipant, user: TurnstileUser) -> GroupOrderParticipant:
    """Bind a slot to ``user``. The first writer wins; rebinding to someone else is rejected."""
    if participant.user_id == user.pk:
        return participant
    claimed = GroupOrderParticipant.objects.filter(pk=participant.pk, user__isnull=True).update(
        user=user, updated_at=timezone.now()
    )
    if not claimed:
        logger.warning(
            "group_participant_claim_rejected",
            participant_id=str(participant.id),
            user_id=str(user.pk),
        )
        raise ParticipantAlreadyLinkedError()
    participant.refresh_from_db()
    logger.info("group_participant_claimed", participant_id=str(participant.id), user_id=str(user.pk))
    return participant


def join_group_order(
    share_code: str, user: TurnstileUser, participant_id: UUID | None = None
) -> GroupOrderParticipant:
    """Claim a participant slot for ``user``, by explicit slot id or by the user's email."""
    group_order = get_group_order(share_code)
    _ensure_open(group_order)
    participant = resolve_participant(
        group_order, participant_id=participant_id, user_id=user.pk, email=user.email or None
    )
    return _claim(participant, user)


def create_group_share_checkout(
    share_code: str,
    user: TurnstileUser | None = None,
    participant_id: UUID | None = None,
    email: str | None = None,
) -> tuple[Session, GroupOrderParticipant]:
    """Open a Stripe Checkout Session for one participant's share.

    Logged-in callers get their slot claimed on the way. The session carries
    ``kind=group_share`` metadata, which routes the completion webhook to group settlement.

    Raises:
        GroupOrderNotFoundError, GroupOrderClosedError, GroupOrderExpiredError,
        ParticipantNotFoundError, ParticipantAlreadyLinkedError, AlreadyPaidError.
    """
    group_order = get_group_order(share_code)
    _ensure_open(group_order)

    user_id = user.pk if user is not None and user.is_authenticated else None
    lookup_email = email or (user.email if user_id else None)
    if not (participant_id or user_id or lookup_email):
        raise ParticipantNotFoundError()
    participant = resolve_participant(group_order, participant_id=participant_id, user_id=user_id, email=lookup_email)
    if user_id:
        participant = _claim(participant, user)  # type: ignore[arg-type]
    if participant.status == GroupOrderParticipant.ParticipantStatus.PAID:
        raise AlreadyPaidError()

    event = group_order.event
    share_url = f"{settings.FRONTEND_BASE_URL}/group-pay/{group_order.share_code}"
    session = create_stripe_checkout_session(
        event.organizer,
        customer_email=participant.email,
        currency=group_order.currency,
        lines=[
            CheckoutLine(
                name=f"Ticket share: {event.name} ({group_order.tier.name})",
                unit_amount_cents=participant.amount_cents,
                quantity=1,
            )
        ],
        application_fee_cents=calculate_group_share_fee(participant.amount_cents),
        success_url=f"{share_url}?success=true&participant={participant.id}",
        cancel_url=f"{share_url}?cancelled=true",
        metadata={
            "kind": GROUP_SHARE_KIND,
            "group_order_id": str(group_order.id),
            "participant_id": str(participant.id),
        },
    )
    logger.info(
        "group_share_checkout_created",
        group_order_id=str(group_order.id),
        participant_id=str(participant.id),
        checkout_session_id=session.id,
    )
    return session, participant
