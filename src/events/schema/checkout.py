"""Checkout, free reservation and promo code schemas."""

from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import EmailStr, Field

from common.schema import OneToSixtyFourString, StrippedString
from events.models import Order, OrderItem, PromoCode


class CheckoutItemSchema(Schema):
    tier_id: UUID
    quantity: int = Field(default=1, ge=1, le=50)


class CheckoutRequestSchema(Schema):
    """Email is optional for logged-in users; guests must provide one."""

    items: list[CheckoutItemSchema] = Field(..., min_length=1)
    email: EmailStr | None = None
    promo_code: OneToSixtyFourString | None = None


class FreeReservationRequestSchema(Schema):
    items: list[CheckoutItemSchema] = Field(..., min_length=1)
    email: EmailStr | None = None
    first_name: StrippedString = ""
    last_name: StrippedString = ""


class OrderItemSchema(ModelSchema):
    tier_id: UUID

    class Meta:
        model = OrderItem
        fields = ["quantity", "unit_price_cents"]


class OrderSchema(ModelSchema):
    status: Order.OrderStatus
    kind: Order.OrderKind
    event_id: UUID
    items: list[OrderItemSchema]

    class Meta:
        model = Order
        fields = [
            "id",
            "short_code",
            "status",
            "kind",
            "currency",
            "subtotal_cents",
            "discount_cents",
            "amount_total_cents",
            "created_at",
            "completed_at",
        ]

    @staticmethod
    def resolve_items(obj: Order) -> list[OrderItem]:
        return list(obj.items.all())


class CheckoutResponseSchema(Schema):
    order: OrderSchema
    checkout_url: str | None = None


class PromoCodeValidationSchema(Schema):
    code: str
    discount_type: PromoCode.DiscountType
    discount_value: int
