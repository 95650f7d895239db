from django.conf import settings
from django.db import models

from common.models import TimeStampedModel


class Organizer(TimeStampedModel):
    """An account that runs events and receives payouts through Stripe Connect."""

    class Plan(models.TextChoices):
        STARTER = "starter", "Starter"
        PRO = "pro", "Pro"

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="organizers")
    plan = models.CharField(max_length=20, choices=Plan.choices, default=Plan.STARTER)
    stripe_account_id = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_stripe_connected(self) -> bool:
        return bool(self.stripe_account_id)
