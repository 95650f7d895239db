from django.http import HttpRequest
from ninja_extra import api_controller, route

from common.throttling import WebhookThrottle
from events.schema import WebhookAckSchema
from events.service import webhook_service
from events.service.payment_events import parse_stripe_event


@api_controller("/stripe", auth=None, tags=["Webhooks"], throttle=WebhookThrottle())
class StripeWebhookController:
    @route.post("/webhook", url_name="stripe_webhook", response={200: WebhookAckSchema})
    def handle_webhook(self, request: HttpRequest) -> tuple[int, webhook_service.WebhookAck]:
        """Handle incoming Stripe webhooks."""
        payload = webhook_service.load_stripe_payload(request.body, request.META.get("HTTP_STRIPE_SIGNATURE"))
        return 200, webhook_service.apply_payment_event(parse_stripe_event(payload))
