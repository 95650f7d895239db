"""Common tasks."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from common.models import EmailLog

logger = structlog.get_logger(__name__)


@shared_task
def send_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send an email and keep a compressed copy of it.

    Args:
        to (str): The email address or addresses.
        subject (str): The email subject.
        body (str): The email body.
        html_body (str | None): The HTML email body.
    """
    recipients = [to] if isinstance(to, str) else to
    recipients = [to_safe_email_address(email) for email in recipients]
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        bcc=recipients,
    )
    if html_body:
        email_msg.attach_alternative(html_body, "text/html")
    email_msg.send(fail_silently=False)
    email_logs: list[EmailLog] = []
    for recipient in recipients:
        el = EmailLog(to=recipient, subject=subject)
        el.set_body(body=body)
        if html_body:
            el.set_html(html_body=html_body)
        email_logs.append(el)
    EmailLog.objects.bulk_create(email_logs)
    logger.info("email_sent", subject=subject, recipient_count=len(recipients))


@shared_task
def cleanup_email_logs() -> None:
    """Drop email logs older than a week and bodies older than a day."""
    EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=7)).delete()
    EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=1)).update(
        compressed_body=None, compressed_html=None
    )


def to_safe_email_address(email: str) -> str:
    """Convert an email address to a safe format for sending.

    Unless ``LIVE_EMAILS`` is on, mail goes to a plus-address of the internal catch-all mailbox.
    """
    if settings.LIVE_EMAILS:
        return email
    safe_email = email.replace("@", "_at_").replace(".", "_dot_")
    user, domain = settings.INTERNAL_CATCHALL_EMAIL.split("@", 1)
    return f"{user}+{safe_email}@{domain}"
