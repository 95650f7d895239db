from django.conf import settings
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel


class Ticket(TimeStampedModel):
    """A single admission credential.

    ``token`` is the public scan payload. ``integrity_hash`` is recomputable from the serial, the
    event id and the server secret (see ``common.signing``). Tickets are never deleted; revoked
    tickets stay for audit.
    """

    class TicketStatus(models.TextChoices):
        VALID = "valid", "Valid"
        USED = "used", "Used"
        REVOKED = "revoked", "Revoked"

    order = models.ForeignKey("events.Order", on_delete=models.PROTECT, related_name="tickets")
    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="tickets")
    tier = models.ForeignKey(
        "events.TicketTier", on_delete=models.PROTECT, null=True, blank=True, related_name="tickets"
    )
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="tickets")
    serial = models.CharField(max_length=16, unique=True)
    token = models.CharField(max_length=64, unique=True, editable=False)
    integrity_hash = models.CharField(max_length=64, editable=False)
    status = models.CharField(
        max_length=20, choices=TicketStatus.choices, default=TicketStatus.VALID, db_index=True
    )
    original_price_cents = models.PositiveIntegerField(default=0)
    is_for_sale = models.BooleanField(default=False, db_index=True)
    resale_price_cents = models.PositiveIntegerField(null=True, blank=True)
    issued_at = models.DateTimeField(default=timezone.now)
    used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(resale_price_cents__isnull=True)
                | models.Q(resale_price_cents__lte=models.F("original_price_cents")),
                name="ticket_resale_price_capped",
            ),
        ]
        ordering = ["serial"]

    def __str__(self) -> str:
        return self.serial


class RefundRequest(TimeStampedModel):
    """A holder's request to be refunded for a ticket, reviewed by the organizer."""

    class RefundStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    ticket = models.OneToOneField(Ticket, on_delete=models.PROTECT, related_name="refund_request")
    order = models.ForeignKey("events.Order", on_delete=models.PROTECT, related_name="refund_requests")
    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="refund_requests")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="refund_requests")
    organizer = models.ForeignKey(
        "events.Organizer", on_delete=models.PROTECT, related_name="refund_requests"
    )
    status = models.CharField(
        max_length=20, choices=RefundStatus.choices, default=RefundStatus.PENDING, db_index=True
    )
    reason = models.TextField(blank=True, default="")
    response_message = models.TextField(blank=True, default="")
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Refund request for {self.ticket_id} ({self.status})"
