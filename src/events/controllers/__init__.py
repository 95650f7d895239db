from .bridge_webhook import BridgeWebhookController
from .checkout import CheckoutController
from .group_orders import GroupOrderController
from .stripe_webhook import StripeWebhookController
from .tickets import DoorController, TicketController

TICKETING_CONTROLLERS = [
    CheckoutController,
    GroupOrderController,
    TicketController,
    DoorController,
    StripeWebhookController,
    BridgeWebhookController,
]
