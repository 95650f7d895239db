import time
import typing as t
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken

from accounts.models import TurnstileUser
from common.signing import compute_webhook_signature
from conftest import TurnstileUserFactory
from events.models import Event, GroupOrder, GroupOrderParticipant, Order, OrderItem, Organizer, TicketTier
from events.service.codes import generate_code


@pytest.fixture
def organizer_owner(turnstile_user_factory: TurnstileUserFactory) -> TurnstileUser:
    return turnstile_user_factory(username="owner@example.com", email="owner@example.com")


@pytest.fixture
def buyer(turnstile_user_factory: TurnstileUserFactory) -> TurnstileUser:
    return turnstile_user_factory(username="buyer@example.com", email="buyer@example.com")


@pytest.fixture
def organizer(organizer_owner: TurnstileUser) -> Organizer:
    return Organizer.objects.create(
        name="Night Owls", slug="night-owls", owner=organizer_owner, stripe_account_id="acct_123"
    )


@pytest.fixture
def event(organizer: Organizer, next_week: datetime) -> Event:
    return Event.objects.create(organizer=organizer, name="Warehouse Party", start=next_week)


@pytest.fixture
def past_event(organizer: Organizer) -> Event:
    start = timezone.now() - timedelta(days=2)
    return Event.objects.create(organizer=organizer, name="Last Week", start=start, end=start + timedelta(hours=5))


@pytest.fixture
def tier_x(event: Event) -> TicketTier:
    return TicketTier.objects.create(event=event, name="General", price_cents=3000, quota=100, display_order=0)


@pytest.fixture
def tier_y(event: Event) -> TicketTier:
    return TicketTier.objects.create(event=event, name="VIP", price_cents=6000, quota=10, display_order=1)


@pytest.fixture
def free_tier(event: Event) -> TicketTier:
    return TicketTier.objects.create(event=event, name="Guest list", price_cents=0, quota=5, display_order=2)


def _make_order(
    event: Event,
    user: TurnstileUser,
    items: list[tuple[TicketTier, int]],
    status: str = Order.OrderStatus.PENDING,
    checkout_session_id: str | None = None,
    **fields: t.Any,
) -> Order:
    subtotal = sum(tier.price_cents * quantity for tier, quantity in items)
    order = Order.objects.create(
        event=event,
        user=user,
        email=user.email,
        status=status,
        short_code=generate_code(),
        subtotal_cents=subtotal,
        amount_total_cents=subtotal,
        checkout_session_id=checkout_session_id,
        **fields,
    )
    for tier, quantity in items:
        OrderItem.objects.create(order=order, tier=tier, quantity=quantity, unit_price_cents=tier.price_cents)
    return order


@pytest.fixture
def order_factory() -> t.Callable[..., Order]:
    return _make_order


@pytest.fixture
def pending_order(event: Event, buyer: TurnstileUser, tier_x: TicketTier, tier_y: TicketTier) -> Order:
    """Tier X x2 and tier Y x1, waiting for Stripe."""
    return _make_order(event, buyer, [(tier_x, 2), (tier_y, 1)], checkout_session_id="cs_test_123")


@pytest.fixture
def group_order(event: Event, tier_x: TicketTier, buyer: TurnstileUser) -> GroupOrder:
    """Three participants owing 2000 cents each; the first slot belongs to the buyer."""
    group = GroupOrder.objects.create(
        event=event,
        tier=tier_x,
        creator=buyer,
        total_tickets=3,
        price_per_ticket_cents=2000,
        share_code="SHARE0000001",
        expires_at=timezone.now() + timedelta(hours=48),
    )
    for index, email in enumerate(["buyer@example.com", "p2@example.com", "p3@example.com"]):
        GroupOrderParticipant.objects.create(
            group_order=group, email=email, user=buyer if index == 0 else None, amount_cents=2000
        )
    return group


@pytest.fixture
def mock_dispatch() -> t.Iterator[MagicMock]:
    """The ticket email dispatch as seen by settlement."""
    with patch("events.service.settlement.dispatch_ticket_email") as mock:
        yield mock


@pytest.fixture
def owner_client(organizer_owner: TurnstileUser) -> Client:
    refresh = RefreshToken.for_user(organizer_owner)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def buyer_client(buyer: TurnstileUser) -> Client:
    refresh = RefreshToken.for_user(buyer)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def stripe_signature(settings: t.Any) -> t.Callable[..., str]:
    """Build a ``Stripe-Signature`` header for a raw body, signed with the configured secret."""

    def _sign(payload: bytes, secret: str | None = None) -> str:
        timestamp = int(time.time())
        signed = compute_webhook_signature(f"{timestamp}.".encode() + payload, secret or settings.STRIPE_WEBHOOK_SECRET)
        return f"t={timestamp},v1={signed}"

    return _sign


@pytest.fixture
def bridge_signature(settings: t.Any) -> t.Callable[[bytes], str]:
    def _sign(payload: bytes) -> str:
        return compute_webhook_signature(payload, settings.BRIDGE_WEBHOOK_SECRET)

    return _sign
