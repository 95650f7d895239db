"""Events schema package."""

from .checkout import (
    CheckoutItemSchema,
    CheckoutRequestSchema,
    CheckoutResponseSchema,
    FreeReservationRequestSchema,
    OrderItemSchema,
    OrderSchema,
    PromoCodeValidationSchema,
)
from .group_order import (
    GroupJoinSchema,
    GroupOrderCreatedSchema,
    GroupOrderCreateSchema,
    GroupOrderSchema,
    GroupParticipantSchema,
    GroupPayRequestSchema,
    GroupPayResponseSchema,
)
from .ticket import (
    RefundRequestSchema,
    RefundResponseRequestSchema,
    ResaleRequestSchema,
    ScanRequestSchema,
    ScanResponseSchema,
    TicketActionResponseSchema,
    TicketSchema,
)
from .webhook import WebhookAckSchema

__all__ = [
    "CheckoutItemSchema",
    "CheckoutRequestSchema",
    "CheckoutResponseSchema",
    "FreeReservationRequestSchema",
    "GroupJoinSchema",
    "GroupOrderCreateSchema",
    "GroupOrderCreatedSchema",
    "GroupOrderSchema",
    "GroupParticipantSchema",
    "GroupPayRequestSchema",
    "GroupPayResponseSchema",
    "OrderItemSchema",
    "OrderSchema",
    "PromoCodeValidationSchema",
    "RefundRequestSchema",
    "RefundResponseRequestSchema",
    "ResaleRequestSchema",
    "ScanRequestSchema",
    "ScanResponseSchema",
    "TicketActionResponseSchema",
    "TicketSchema",
    "WebhookAckSchema",
]
