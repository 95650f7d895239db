"""Door scanning."""

from datetime import datetime

import structlog
from django.utils import timezone

from common.signing import verify_ticket_hash
from events.exceptions import TicketAlreadyUsedError, TicketNotFoundError, TicketNotValidError
from events.models import Event, Ticket

from .settlement import transition_status

logger = structlog.get_logger(__name__)


def scan_ticket(event: Event, token: str, now: datetime | None = None) -> Ticket:
    """Admit the holder of ``token`` to ``event``.

    The integrity hash is recomputed from the serial, the event and the server secret, so a
    ticket row edited outside the issuer does not scan. A ticket is admitted once.
    """
    now = now or timezone.now()
    ticket = Ticket.objects.select_related("user", "tier").filter(token=token, event=event).first()
    if ticket is None:
        logger.warning("ticket_scan_unknown_token", event_id=str(event.id))
        raise TicketNotFoundError()

    if not verify_ticket_hash(ticket.serial, event.id, ticket.integrity_hash):
        logger.warning("ticket_scan_hash_mismatch", ticket_id=str(ticket.id), event_id=str(event.id))
        raise TicketNotValidError()

    if ticket.status == Ticket.TicketStatus.USED:
        raise TicketAlreadyUsedError()
    if ticket.status != Ticket.TicketStatus.VALID:
        raise TicketNotValidError()

    if not transition_status(Ticket, ticket.pk, (Ticket.TicketStatus.VALID,), Ticket.TicketStatus.USED, used_at=now):
        raise TicketAlreadyUsedError()

    ticket.refresh_from_db()
    logger.info("ticket_scanned", ticket_id=str(ticket.id), serial=ticket.serial, event_id=str(event.id))
    return ticket
