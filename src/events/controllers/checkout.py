from uuid import UUID

from django.shortcuts import get_object_or_404
from ninja_extra import api_controller, route

from common.authentication import OptionalAuth
from common.throttling import CheckoutThrottle
from events import models, schema
from events.service import checkout_service, free_reservation, promo_service
from events.service.order_builder import RequestedItem

from .user_aware_controller import UserAwareController


@api_controller("/events", auth=OptionalAuth(), tags=["Checkout"], throttle=CheckoutThrottle())
class CheckoutController(UserAwareController):
    """Purchase entry points. Work for logged-in users and for guests identified by email."""

    def get_event(self, event_id: UUID) -> models.Event:
        return get_object_or_404(models.Event.objects.select_related("organizer"), pk=event_id)

    @route.post("/{uuid:event_id}/checkout", url_name="checkout", response={200: schema.CheckoutResponseSchema})
    def checkout(self, event_id: UUID, payload: schema.CheckoutRequestSchema) -> checkout_service.CheckoutResult:
        """Start a checkout for one or more tiers of an event.

        Returns the Stripe Checkout URL to redirect to. Carts made only of free tiers are reserved
        right away and come back without a URL, already completed.
        """
        event = self.get_event(event_id)
        return checkout_service.create_checkout(
            event,
            [RequestedItem(item.tier_id, item.quantity) for item in payload.items],
            email=self.purchaser_email(payload.email),
            user=self.authenticated_user(),
            promo_code=payload.promo_code,
        )

    @route.post(
        "/{uuid:event_id}/free-reservation", url_name="free_reservation", response={200: schema.OrderSchema}
    )
    def reserve(self, event_id: UUID, payload: schema.FreeReservationRequestSchema) -> models.Order:
        """Reserve free tickets. Tickets are issued before this returns and emailed afterwards."""
        event = self.get_event(event_id)
        order, _result = free_reservation.create_free_reservation(
            event,
            [RequestedItem(item.tier_id, item.quantity) for item in payload.items],
            email=self.purchaser_email(payload.email),
            user=self.authenticated_user(),
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        return order

    @route.get(
        "/{uuid:event_id}/promo-codes/{code}",
        url_name="validate_promo_code",
        response={200: schema.PromoCodeValidationSchema},
    )
    def validate_promo_code(self, event_id: UUID, code: str) -> promo_service.DiscountDescriptor:
        """Check whether a promo code applies to this event right now. Does not consume a use."""
        event = self.get_event(event_id)
        return promo_service.validate_promo_code(code, event.pk)
