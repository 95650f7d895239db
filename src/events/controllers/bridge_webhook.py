from django.http import HttpRequest
from ninja_extra import api_controller, route

from common.throttling import WebhookThrottle
from events.schema import WebhookAckSchema
from events.service import webhook_service
from events.service.payment_events import parse_bridge_event


@api_controller("/bridge", auth=None, tags=["Webhooks"], throttle=WebhookThrottle())
class BridgeWebhookController:
    @route.post("/webhook", url_name="bridge_webhook", response={200: WebhookAckSchema})
    def handle_webhook(self, request: HttpRequest) -> tuple[int, webhook_service.WebhookAck]:
        """Handle incoming Bridge payment-link webhooks, signed in ``X-Hook-Signature``."""
        payload = webhook_service.load_bridge_payload(request.body, request.headers.get("X-Hook-Signature"))
        return 200, webhook_service.apply_payment_event(parse_bridge_event(payload))
