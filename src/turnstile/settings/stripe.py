from decouple import config

from .base import DEBUG

DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", "EUR")
STRIPE_SECRET_KEY = config("STRIPE_SECRET_KEY", default="sk_test_...")
STRIPE_PUBLISHABLE_KEY = config("STRIPE_PUBLISHABLE_KEY", default="pk_test_...")
# Empty secrets switch the matching webhook endpoint to unsigned mode (see ALLOW_UNSIGNED_WEBHOOKS).
STRIPE_WEBHOOK_SECRET = config("STRIPE_WEBHOOK_SECRET", default="")
BRIDGE_WEBHOOK_SECRET = config("BRIDGE_WEBHOOK_SECRET", default="")
ALLOW_UNSIGNED_WEBHOOKS = config("ALLOW_UNSIGNED_WEBHOOKS", default=DEBUG, cast=bool)
# Note: minimum 30 minutes
PAYMENT_DEFAULT_EXPIRY_MINUTES = config("PAYMENT_DEFAULT_EXPIRY_MINUTES", cast=int, default=45)
