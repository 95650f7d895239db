import re
import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class TurnstileUserQueryset(models.QuerySet["TurnstileUser"]):
    """Queryset for TurnstileUser."""

    def guests(self) -> "TurnstileUserQueryset":
        return self.filter(guest=True)


class TurnstileUserManager(UserManager["TurnstileUser"]):
    def get_queryset(self) -> TurnstileUserQueryset:
        """Get queryset for TurnstileUser."""
        return TurnstileUserQueryset(self.model)


class TurnstileUser(AbstractUser):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email_verified = models.BooleanField(default=False)
    guest = models.BooleanField(default=False, help_text="True if this is a guest user (not fully registered)")

    objects = TurnstileUserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    @property
    def display_name(self) -> str:
        """Full name, or a prettified username as a fallback."""
        return self.get_full_name() or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()
