from datetime import datetime, timedelta

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel


def default_currency() -> str:
    return str(settings.DEFAULT_CURRENCY)


class Event(TimeStampedModel):
    organizer = models.ForeignKey("events.Organizer", on_delete=models.CASCADE, related_name="events")
    name = models.CharField(max_length=255, db_index=True)
    start = models.DateTimeField(db_index=True)
    end = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["start"]

    def __str__(self) -> str:
        return self.name

    @property
    def effective_end(self) -> datetime:
        """The explicit end, or an estimate of ``start + EVENT_DEFAULT_DURATION_HOURS``."""
        if self.end is not None:
            return self.end
        return self.start + timedelta(hours=settings.EVENT_DEFAULT_DURATION_HOURS)

    def has_ended(self, now: datetime | None = None) -> bool:
        return (now or timezone.now()) > self.effective_end


class TicketTier(TimeStampedModel):
    """A priced admission category with an optional capacity quota."""

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_tiers")
    name = models.CharField(max_length=255, db_index=True)
    price_cents = models.PositiveIntegerField(default=0, help_text="Price in minor currency units.")
    currency = models.CharField(max_length=3, default=default_currency)
    quota = models.PositiveIntegerField(null=True, blank=True, help_text="Maximum tickets. Empty means unlimited.")
    quantity_sold = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["event", "name"], name="unique_tier_name_per_event"),
        ]
        ordering = ["display_order", "price_cents"]

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"

    @property
    def is_free(self) -> bool:
        return self.price_cents == 0

    def remaining(self) -> int | None:
        if self.quota is None:
            return None
        return max(self.quota - self.quantity_sold, 0)
