import typing as t

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from common.models import TimeStampedModel

from .event import default_currency


class LineItem(t.NamedTuple):
    tier_id: t.Any
    quantity: int
    unit_price_cents: int


class Order(TimeStampedModel):
    """One checkout transaction, possibly covering several tiers and quantities.

    Status moves forward only: pending -> paid | failed, then pending | paid | failed -> completed.
    A failed order is completed only when the provider later confirms capture. An order is marked
    completed in the same transaction that inserts its tickets.
    """

    class OrderStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    class OrderKind(models.TextChoices):
        STANDARD = "standard", "Standard checkout"
        FREE = "free", "Free reservation"
        GROUP = "group", "Group share"

    SETTLEABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PAID)

    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="orders")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")
    email = models.EmailField()
    kind = models.CharField(max_length=20, choices=OrderKind.choices, default=OrderKind.STANDARD)
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True
    )
    short_code = models.CharField(max_length=8, unique=True)
    currency = models.CharField(max_length=3, default=default_currency)
    subtotal_cents = models.PositiveIntegerField(default=0)
    discount_cents = models.PositiveIntegerField(default=0)
    application_fee_cents = models.PositiveIntegerField(default=0)
    amount_total_cents = models.PositiveIntegerField(default=0)
    promo_code = models.ForeignKey(
        "events.PromoCode", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    checkout_session_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Payment provider correlation id. Identifies at most one order.",
    )
    payment_intent_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Order {self.short_code} ({self.status})"

    def line_items(self) -> list[LineItem]:
        """Purchased quantities per tier, in a stable order."""
        return [
            LineItem(tier_id=item.tier_id, quantity=item.quantity, unit_price_cents=item.unit_price_cents)
            for item in self.items.order_by("created_at", "tier__display_order", "tier_id")
        ]


class OrderItem(TimeStampedModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    tier = models.ForeignKey("events.TicketTier", on_delete=models.PROTECT, related_name="order_items")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price_cents = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["order", "tier"], name="unique_order_item_tier"),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.tier_id}"
