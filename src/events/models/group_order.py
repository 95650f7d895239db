from datetime import datetime

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel

from .event import default_currency


class GroupOrder(TimeStampedModel):
    """A shared intent to buy N tickets of one tier, paid by N participants.

    Completion is derived from participant states and is final once reached.
    """

    class GroupOrderStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        EXPIRED = "expired", "Expired"

    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="group_orders")
    tier = models.ForeignKey("events.TicketTier", on_delete=models.PROTECT, related_name="group_orders")
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="created_group_orders"
    )
    total_tickets = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_per_ticket_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default=default_currency)
    share_code = models.CharField(max_length=16, unique=True)
    status = models.CharField(
        max_length=20, choices=GroupOrderStatus.choices, default=GroupOrderStatus.PENDING, db_index=True
    )
    expires_at = models.DateTimeField(db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Group order {self.share_code} ({self.status})"

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or timezone.now()) > self.expires_at


class GroupOrderParticipant(TimeStampedModel):
    class ParticipantStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"

    group_order = models.ForeignKey(GroupOrder, on_delete=models.CASCADE, related_name="participants")
    email = models.EmailField(help_text="Stored lowercased. Matched case-insensitively.")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="group_order_participations",
    )
    amount_cents = models.PositiveIntegerField()
    status = models.CharField(
        max_length=20, choices=ParticipantStatus.choices, default=ParticipantStatus.PENDING, db_index=True
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    checkout_session_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    payment_intent_id = models.CharField(max_length=255, null=True, blank=True)
    order = models.OneToOneField(
        "events.Order", on_delete=models.PROTECT, null=True, blank=True, related_name="group_participant"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["group_order", "email"], name="unique_participant_email_per_group"),
        ]
        ordering = ["created_at", "email"]

    def __str__(self) -> str:
        return f"{self.email} ({self.status})"

    def clean(self) -> None:
        self.email = self.email.strip().lower()
