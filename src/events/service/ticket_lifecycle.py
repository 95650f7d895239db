"""Post-issuance ticket lifecycle: resale listing and refund requests.

Which of the two a holder may use depends on the event end (explicit ``end`` or
``start + EVENT_DEFAULT_DURATION_HOURS``): until then a ticket can be put up for resale, afterwards
only a refund can be requested.
"""

import enum
from datetime import datetime
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.models import TurnstileUser
from events.exceptions import (
    DuplicateRefundRequestError,
    EventFinishedError,
    EventNotFinishedError,
    RefundRequestAlreadyAnsweredError,
    TicketingPermissionError,
    TicketingValidationError,
    TicketNotFoundError,
    TicketNotValidError,
)
from events.models import RefundRequest, Ticket

from .settlement import transition_status

logger = structlog.get_logger(__name__)


class ResaleAction(enum.StrEnum):
    SELL = "sell"
    CANCEL_SELL = "cancel_sell"
    REFUND_REQUEST = "refund_request"


def clamp_resale_price(original_price_cents: int, requested_price_cents: int | None) -> int:
    """Resale never exceeds what the holder paid. No price means the ceiling."""
    if requested_price_cents is None:
        return original_price_cents
    if requested_price_cents < 0:
        raise TicketingValidationError("Resale price cannot be negative.")
    return min(requested_price_cents, original_price_cents)


def toggle_resale(
    ticket_id: UUID,
    user: TurnstileUser,
    action: ResaleAction | str,
    price_cents: int | None = None,
    reason: str = "",
    now: datetime | None = None,
) -> Ticket | RefundRequest:
    """Apply a holder action to one of their tickets.

    Returns:
        The updated ticket for ``sell``/``cancel_sell``, the new refund request for
        ``refund_request``.

    Raises:
        TicketNotFoundError: Not the caller's ticket.
        TicketNotValidError: The ticket is used or revoked.
        EventFinishedError: ``sell`` after the event ended.
        EventNotFinishedError: ``refund_request`` before the event ended.
        DuplicateRefundRequestError: The ticket already has a refund request.
    """
    action = ResaleAction(action)
    now = now or timezone.now()

    with transaction.atomic():
        ticket = (
            Ticket.objects.select_for_update()
            .select_related("event", "event__organizer")
            .filter(pk=ticket_id, user=user)
            .first()
        )
        if ticket is None:
            raise TicketNotFoundError()
        if ticket.status != Ticket.TicketStatus.VALID:
            raise TicketNotValidError()

        event_ended = ticket.event.has_ended(now)

        if action == ResaleAction.SELL:
            if event_ended:
                raise EventFinishedError()
            ticket.is_for_sale = True
            ticket.resale_price_cents = clamp_resale_price(ticket.original_price_cents, price_cents)
            ticket.save(update_fields=["is_for_sale", "resale_price_cents", "updated_at"])
            logger.info(
                "ticket_listed_for_resale",
                ticket_id=str(ticket.id),
                requested_price_cents=price_cents,
                resale_price_cents=ticket.resale_price_cents,
            )
            return ticket

        if action == ResaleAction.CANCEL_SELL:
            ticket.is_for_sale = False
            ticket.resale_price_cents = None
            ticket.save(update_fields=["is_for_sale", "resale_price_cents", "updated_at"])
            logger.info("ticket_resale_cancelled", ticket_id=str(ticket.id))
            return ticket

        if not event_ended:
            raise EventNotFinishedError()
        if RefundRequest.objects.filter(ticket=ticket).exists():
            raise DuplicateRefundRequestError()
        try:
            with transaction.atomic():
                refund_request = RefundRequest.objects.create(
                    ticket=ticket,
                    order_id=ticket.order_id,
                    event=ticket.event,
                    user=user,
                    organizer=ticket.event.organizer,
                    reason=reason or "",
                )
        except IntegrityError as e:
            raise DuplicateRefundRequestError() from e

    logger.info("refund_requested", ticket_id=str(ticket.id), refund_request_id=str(refund_request.id))
    return refund_request


def respond_to_refund_request(
    refund_request_id: UUID, responder: TurnstileUser, approve: bool, message: str = ""
) -> RefundRequest:
    """Approve or reject a pending refund request, once.

    Only the organizer's owner may answer. Approval revokes the ticket; the ticket row is kept.
    Moving the money back is done by the organizer on the payment provider.
    """
    refund_request = RefundRequest.objects.select_related("organizer").filter(pk=refund_request_id).first()
    if refund_request is None:
        raise TicketNotFoundError("Refund request not found.")
    if refund_request.organizer.owner_id != responder.pk:
        raise TicketingPermissionError()

    new_status = RefundRequest.RefundStatus.APPROVED if approve else RefundRequest.RefundStatus.REJECTED
    with transaction.atomic():
        if not transition_status(
            RefundRequest,
            refund_request.pk,
            (RefundRequest.RefundStatus.PENDING,),
            new_status,
            response_message=message,
            responded_at=timezone.now(),
        ):
            raise RefundRequestAlreadyAnsweredError()
        if approve:
            transition_status(
                Ticket,
                refund_request.ticket_id,
                (Ticket.TicketStatus.VALID,),
                Ticket.TicketStatus.REVOKED,
                is_for_sale=False,
                resale_price_cents=None,
            )

    refund_request.refresh_from_db()
    logger.info(
        "refund_request_answered",
        refund_request_id=str(refund_request.id),
        status=refund_request.status,
        responder_id=str(responder.pk),
    )
    return refund_request
