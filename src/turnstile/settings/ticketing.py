from decimal import Decimal

from decouple import config

from .base import SECRET_KEY

# Keys the ticket integrity hash. Rotating it invalidates every issued ticket.
TICKET_SECRET = config("TICKET_SECRET", default=SECRET_KEY)

EVENT_DEFAULT_DURATION_HOURS = config("EVENT_DEFAULT_DURATION_HOURS", default=6, cast=int)
SHORT_CODE_MAX_ATTEMPTS = config("SHORT_CODE_MAX_ATTEMPTS", default=5, cast=int)

GROUP_ORDER_EXPIRY_HOURS = config("GROUP_ORDER_EXPIRY_HOURS", default=48, cast=int)
GROUP_ORDER_COMMISSION_BPS = config("GROUP_ORDER_COMMISSION_BPS", default=110, cast=int)
GROUP_ORDER_COMMISSION_FIXED_CENTS = config("GROUP_ORDER_COMMISSION_FIXED_CENTS", default=0, cast=int)

PRICING_PLANS = {
    "starter": {
        "fee_percent": config("STARTER_FEE_PERCENT", default="0.011", cast=Decimal),
        "fee_fixed": config("STARTER_FEE_FIXED", default="1.50", cast=Decimal),
    },
    "pro": {
        "fee_percent": config("PRO_FEE_PERCENT", default="0", cast=Decimal),
        "fee_fixed": config("PRO_FEE_FIXED", default="0.99", cast=Decimal),
    },
}
