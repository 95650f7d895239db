from .event import Event, TicketTier
from .group_order import GroupOrder, GroupOrderParticipant
from .order import Order, OrderItem
from .organizer import Organizer
from .promo import PromoCode
from .ticket import RefundRequest, Ticket

__all__ = [
    "Event",
    "GroupOrder",
    "GroupOrderParticipant",
    "Order",
    "OrderItem",
    "Organizer",
    "PromoCode",
    "RefundRequest",
    "Ticket",
    "TicketTier",
]
