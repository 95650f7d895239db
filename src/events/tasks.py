"""Celery tasks for ticketing.

- Ticket delivery emails, queued after an order settles.
- Expiry of group orders that did not collect every share in time.
"""

import structlog
from celery import shared_task
from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.translation import gettext as _

from .models import GroupOrder, Order

logger = structlog.get_logger(__name__)


@shared_task(
    name="events.send_ticket_email",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def send_ticket_email(self: object, order_id: str) -> int:
    """Email the tickets of a completed order to its purchaser.

    Args:
        self: Celery task instance (bound task).
        order_id: The order whose tickets are sent.

    Returns:
        The number of tickets listed in the email.
    """
    from common.tasks import send_email

    order = Order.objects.select_related("event", "user").get(pk=order_id)
    if order.status != Order.OrderStatus.COMPLETED:
        logger.warning("ticket_email_skipped_not_completed", order_id=order_id, status=order.status)
        return 0

    tickets = list(order.tickets.select_related("tier").order_by("serial"))
    subject = _("Your tickets for %(event_name)s") % {"event_name": order.event.name}
    body = render_to_string(
        "events/emails/order_tickets_body.txt",
        {
            "holder_name": order.user.display_name,
            "event_name": order.event.name,
            "event_start": order.event.start,
            "time_zone": settings.TIME_ZONE,
            "short_code": order.short_code,
            "tickets": tickets,
            "tickets_url": f"{settings.FRONTEND_BASE_URL}/tickets",
        },
    )
    send_email(to=order.email, subject=subject, body=body)
    logger.info("ticket_email_sent", order_id=order_id, ticket_count=len(tickets))
    return len(tickets)


@shared_task(name="events.expire_group_orders")
def expire_group_orders() -> int:
    """Move pending group orders past their expiry to ``expired``.

    Paid shares of an expired group are not refunded here; that stays with the organizer.
    """
    now = timezone.now()
    expired = GroupOrder.objects.filter(status=GroupOrder.GroupOrderStatus.PENDING, expires_at__lt=now).update(
        status=GroupOrder.GroupOrderStatus.EXPIRED, updated_at=now
    )
    if expired:
        logger.info("group_orders_expired", count=expired)
    return expired
