from uuid import UUID

from django.shortcuts import get_object_or_404
from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.throttling import WriteThrottle
from events import models, schema
from events.exceptions import TicketingPermissionError
from events.service import ticket_lifecycle, ticket_service

from .user_aware_controller import UserAwareController


@api_controller("/tickets", auth=JWTAuth(), tags=["Tickets"], throttle=WriteThrottle())
class TicketController(UserAwareController):
    @route.get("/", url_name="list_my_tickets", response={200: list[schema.TicketSchema]})
    def list_tickets(self) -> list[models.Ticket]:
        """The caller's tickets, all events."""
        return list(models.Ticket.objects.filter(user=self.user()).order_by("-issued_at", "serial"))

    @route.post(
        "/{uuid:ticket_id}/resale", url_name="toggle_resale", response={200: schema.TicketActionResponseSchema}
    )
    def toggle_resale(
        self, ticket_id: UUID, payload: schema.ResaleRequestSchema
    ) -> schema.TicketActionResponseSchema:
        """List a ticket for resale, take it off sale, or request a refund.

        - `sell`: only until the event ends. The price is capped at what was paid; without a price
          the cap is used.
        - `cancel_sell`: takes the ticket off sale.
        - `refund_request`: only after the event ended, once per ticket.
        """
        result = ticket_lifecycle.toggle_resale(
            ticket_id, self.user(), payload.action, price_cents=payload.price_cents, reason=payload.reason
        )
        if isinstance(result, models.RefundRequest):
            return schema.TicketActionResponseSchema(refund_request=schema.RefundRequestSchema.from_orm(result))
        return schema.TicketActionResponseSchema(ticket=schema.TicketSchema.from_orm(result))

    @route.post(
        "/refund-requests/{uuid:refund_request_id}/respond",
        url_name="respond_to_refund_request",
        response={200: schema.RefundRequestSchema},
    )
    def respond_to_refund_request(
        self, refund_request_id: UUID, payload: schema.RefundResponseRequestSchema
    ) -> models.RefundRequest:
        """Organizer answer to a refund request. Approval revokes the ticket."""
        return ticket_lifecycle.respond_to_refund_request(
            refund_request_id, self.user(), approve=payload.approve, message=payload.message
        )


@api_controller("/events", auth=JWTAuth(), tags=["Door"])
class DoorController(UserAwareController):
    @route.post("/{uuid:event_id}/scan", url_name="scan_ticket", response={200: schema.ScanResponseSchema})
    def scan(self, event_id: UUID, payload: schema.ScanRequestSchema) -> schema.ScanResponseSchema:
        """Admit a ticket at the door. Only the organizer's owner can scan."""
        event = get_object_or_404(models.Event.objects.select_related("organizer"), pk=event_id)
        if event.organizer.owner_id != self.user().pk:
            raise TicketingPermissionError()
        ticket = ticket_service.scan_ticket(event, payload.token)
        return schema.ScanResponseSchema(
            id=ticket.id,
            serial=ticket.serial,
            status=ticket.status,
            used_at=ticket.used_at,
            holder_name=ticket.user.display_name,
            tier_name=ticket.tier.name if ticket.tier else None,
        )
