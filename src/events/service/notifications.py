"""Fire-and-forget ticket email dispatch."""

from uuid import UUID

import structlog

logger = structlog.get_logger(__name__)


def dispatch_ticket_email(order_id: UUID | str) -> None:
    """Queue the ticket email for a completed order.

    Failures to enqueue (broker down, or the task itself failing in eager mode) are logged and
    swallowed. Tickets are the source of truth; the email is a convenience.
    """
    from events.tasks import send_ticket_email

    try:
        send_ticket_email.delay(str(order_id))
    except Exception:
        logger.exception("ticket_email_dispatch_failed", order_id=str(order_id))
