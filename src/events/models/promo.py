from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models

from common.models import TimeStampedModel


class PromoCode(TimeStampedModel):
    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", "Percentage"
        FIXED = "fixed", "Fixed amount"

    organizer = models.ForeignKey("events.Organizer", on_delete=models.CASCADE, related_name="promo_codes")
    code = models.CharField(max_length=64, unique=True, help_text="Stored in canonical uppercase.")
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Percentage points for percentage codes, minor currency units for fixed codes.",
    )
    event = models.ForeignKey(
        "events.Event",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="promo_codes",
        help_text="Empty means the code applies to every event.",
    )
    usage_count = models.PositiveIntegerField(default=0)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["code"]

    def __str__(self) -> str:
        return self.code

    def clean(self) -> None:
        self.code = self.code.strip().upper()
        if self.discount_type == self.DiscountType.PERCENTAGE and self.discount_value > 100:
            raise DjangoValidationError({"discount_value": "A percentage discount cannot exceed 100."})
