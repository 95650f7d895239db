from django.shortcuts import get_object_or_404
from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.authentication import OptionalAuth
from common.throttling import CheckoutThrottle, WriteThrottle
from events import models, schema
from events.service import group_order_service

from .user_aware_controller import UserAwareController


@api_controller("/group-orders", auth=OptionalAuth(), tags=["Group orders"])
class GroupOrderController(UserAwareController):
    """Split payments: one group order, one share per participant."""

    @route.post(
        "/",
        url_name="create_group_order",
        response={201: schema.GroupOrderCreatedSchema},
        auth=JWTAuth(),
        throttle=WriteThrottle(),
    )
    def create(self, payload: schema.GroupOrderCreateSchema) -> tuple[int, models.GroupOrder]:
        """Create a group order for one paid tier, with one participant slot per email.

        `total_tickets` must equal the number of emails. The caller's own email, if listed, is
        linked to the caller.
        """
        tier = get_object_or_404(models.TicketTier.objects.select_related("event"), pk=payload.tier_id)
        group_order = group_order_service.create_group_order(
            tier.event,
            tier,
            self.user(),
            [str(email) for email in payload.participant_emails],
            total_tickets=payload.total_tickets,
        )
        return 201, group_order

    @route.get("/{share_code}", url_name="get_group_order", response={200: schema.GroupOrderSchema})
    def retrieve(self, share_code: str) -> schema.GroupOrderSchema:
        """Public view of a group order. Participant emails are masked."""
        view = group_order_service.get_group_order_view(share_code, self.authenticated_user())
        group_order = view.group_order
        return schema.GroupOrderSchema(
            id=group_order.id,
            share_code=group_order.share_code,
            event_id=group_order.event_id,
            tier_id=group_order.tier_id,
            total_tickets=group_order.total_tickets,
            price_per_ticket_cents=group_order.price_per_ticket_cents,
            currency=group_order.currency,
            status=group_order.status,
            expires_at=group_order.expires_at,
            completed_at=group_order.completed_at,
            paid_count=view.paid_count,
            participants=[
                schema.GroupParticipantSchema(
                    id=p.id,
                    masked_email=p.masked_email,
                    status=p.status,
                    paid_at=p.paid_at,
                    is_current_user=p.is_current_user,
                )
                for p in view.participants
            ],
        )

    @route.post(
        "/{share_code}/join",
        url_name="join_group_order",
        response={200: schema.GroupParticipantSchema},
        auth=JWTAuth(),
        throttle=WriteThrottle(),
    )
    def join(self, share_code: str, payload: schema.GroupJoinSchema) -> schema.GroupParticipantSchema:
        """Claim a participant slot. A slot already claimed by someone else returns 409."""
        participant = group_order_service.join_group_order(share_code, self.user(), payload.participant_id)
        return schema.GroupParticipantSchema(
            id=participant.id,
            masked_email=group_order_service.mask_email(participant.email),
            status=participant.status,
            paid_at=participant.paid_at,
            is_current_user=True,
        )

    @route.post(
        "/{share_code}/pay",
        url_name="pay_group_share",
        response={200: schema.GroupPayResponseSchema},
        throttle=CheckoutThrottle(),
    )
    def pay(self, share_code: str, payload: schema.GroupPayRequestSchema) -> schema.GroupPayResponseSchema:
        """Open a Stripe Checkout for the caller's share.

        Logged-in callers are matched by account or email; guests pass `participant_id` or `email`.
        """
        session, participant = group_order_service.create_group_share_checkout(
            share_code,
            self.authenticated_user(),
            participant_id=payload.participant_id,
            email=str(payload.email) if payload.email else None,
        )
        return schema.GroupPayResponseSchema(
            checkout_url=session.url, participant_id=participant.id, amount_cents=participant.amount_cents
        )
