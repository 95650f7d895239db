import typing as t
from unittest.mock import MagicMock, patch

import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client
from ninja_jwt.tokens import RefreshToken

from conftest import TurnstileUserFactory
from events.models import GroupOrder, GroupOrderParticipant, TicketTier

pytestmark = pytest.mark.django_db


@pytest.fixture
def mock_session_create() -> t.Iterator[MagicMock]:
    with patch("events.service.stripe_checkout.Session.create") as mock:
        mock.return_value = MagicMock(id="cs_share_api", url="https://checkout.stripe.com/c/pay/cs_share_api")
        yield mock


class TestCreateGroupOrder:
    def test_create(self, buyer_client: Client, tier_x: TicketTier) -> None:
        payload = {
            "tier_id": str(tier_x.pk),
            "total_tickets": 2,
            "participant_emails": ["buyer@example.com", "friend@example.com"],
        }

        response = buyer_client.post(reverse("api:create_group_order"), data=payload, content_type="application/json")

        assert response.status_code == 201, response.content
        group_order = GroupOrder.objects.get(share_code=response.json()["share_code"])
        assert group_order.participants.count() == 2
        assert group_order.creator.email == "buyer@example.com"

    def test_requires_login(self, tier_x: TicketTier) -> None:
        payload = {"tier_id": str(tier_x.pk), "total_tickets": 1, "participant_emails": ["a@example.com"]}

        response = Client().post(reverse("api:create_group_order"), data=payload, content_type="application/json")

        assert response.status_code == 401

    def test_count_mismatch(self, buyer_client: Client, tier_x: TicketTier) -> None:
        payload = {"tier_id": str(tier_x.pk), "total_tickets": 3, "participant_emails": ["a@example.com"]}

        response = buyer_client.post(reverse("api:create_group_order"), data=payload, content_type="application/json")

        assert response.status_code == 400
        assert not GroupOrder.objects.exists()


class TestRetrieveGroupOrder:
    def test_public_view_masks_emails(self, group_order: GroupOrder) -> None:
        response = Client().get(reverse("api:get_group_order", kwargs={"share_code": group_order.share_code}))

        assert response.status_code == 200
        data = response.json()
        assert data["paid_count"] == 0
        assert data["price_per_ticket_cents"] == 2000
        assert sorted(p["masked_email"] for p in data["participants"]) == [
            "bu***@example.com",
            "p2***@example.com",
            "p3***@example.com",
        ]
        assert "p2@example.com" not in response.content.decode()

    def test_current_user_is_flagged(self, buyer_client: Client, group_order: GroupOrder) -> None:
        response = buyer_client.get(reverse("api:get_group_order", kwargs={"share_code": group_order.share_code}))

        flagged = [p["masked_email"] for p in response.json()["participants"] if p["is_current_user"]]
        assert flagged == ["bu***@example.com"]

    def test_unknown(self) -> None:
        response = Client().get(reverse("api:get_group_order", kwargs={"share_code": "NOPE"}))

        assert response.status_code == 404


class TestJoinGroupOrder:
    def test_join_by_email(self, group_order: GroupOrder, turnstile_user_factory: TurnstileUserFactory) -> None:
        friend = turnstile_user_factory(email="p3@example.com")
        refresh = RefreshToken.for_user(friend)
        client = Client(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")  # type: ignore[attr-defined]

        response = client.post(
            reverse("api:join_group_order", kwargs={"share_code": group_order.share_code}),
            data={},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        assert response.json()["is_current_user"] is True
        assert GroupOrderParticipant.objects.get(email="p3@example.com").user == friend

    def test_slot_taken(self, group_order: GroupOrder, owner_client: Client) -> None:
        buyer_slot = group_order.participants.get(email="buyer@example.com")

        response = owner_client.post(
            reverse("api:join_group_order", kwargs={"share_code": group_order.share_code}),
            data={"participant_id": str(buyer_slot.id)},
            content_type="application/json",
        )

        assert response.status_code == 409


class TestPayGroupShare:
    def test_guest_pays_by_email(self, group_order: GroupOrder, mock_session_create: MagicMock) -> None:
        response = Client().post(
            reverse("api:pay_group_share", kwargs={"share_code": group_order.share_code}),
            data={"email": "p2@example.com"},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        data = response.json()
        assert data["checkout_url"] == "https://checkout.stripe.com/c/pay/cs_share_api"
        assert data["amount_cents"] == 2000
        assert data["participant_id"] == str(group_order.participants.get(email="p2@example.com").id)

    def test_logged_in_participant(
        self, buyer_client: Client, group_order: GroupOrder, mock_session_create: MagicMock
    ) -> None:
        response = buyer_client.post(
            reverse("api:pay_group_share", kwargs={"share_code": group_order.share_code}),
            data={},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert mock_session_create.call_args.kwargs["customer_email"] == "buyer@example.com"

    def test_already_paid(self, group_order: GroupOrder, mock_session_create: MagicMock) -> None:
        GroupOrderParticipant.objects.filter(email="p2@example.com").update(
            status=GroupOrderParticipant.ParticipantStatus.PAID
        )

        response = Client().post(
            reverse("api:pay_group_share", kwargs={"share_code": group_order.share_code}),
            data={"email": "p2@example.com"},
            content_type="application/json",
        )

        assert response.status_code == 409
        assert response.json() == {"detail": "This share has already been paid."}
