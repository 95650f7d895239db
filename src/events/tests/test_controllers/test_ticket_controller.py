import typing as t

import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client

from accounts.models import TurnstileUser
from events.models import Event, Order, RefundRequest, Ticket, TicketTier
from events.service.ticket_issuer import issue_tickets

pytestmark = pytest.mark.django_db


@pytest.fixture
def tickets(pending_order: Order) -> list[Ticket]:
    return issue_tickets(pending_order)


@pytest.fixture
def past_ticket(past_event: Event, buyer: TurnstileUser, order_factory: t.Callable[..., Order]) -> Ticket:
    tier = TicketTier.objects.create(event=past_event, name="Door", price_cents=1500)
    return issue_tickets(order_factory(past_event, buyer, [(tier, 1)], status=Order.OrderStatus.COMPLETED))[0]


class TestListTickets:
    def test_lists_only_own_tickets(self, buyer_client: Client, owner_client: Client, tickets: list[Ticket]) -> None:
        response = buyer_client.get(reverse("api:list_my_tickets"))

        assert response.status_code == 200
        assert sorted(ticket["serial"] for ticket in response.json()) == sorted(ticket.serial for ticket in tickets)
        assert owner_client.get(reverse("api:list_my_tickets")).json() == []

    def test_requires_login(self) -> None:
        assert Client().get(reverse("api:list_my_tickets")).status_code == 401


class TestToggleResale:
    def test_sell_clamps_price(self, buyer_client: Client, tickets: list[Ticket]) -> None:
        ticket = tickets[0]

        response = buyer_client.post(
            reverse("api:toggle_resale", kwargs={"ticket_id": ticket.id}),
            data={"action": "sell", "price_cents": 9999},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        data = response.json()
        assert data["ticket"]["is_for_sale"] is True
        assert data["ticket"]["resale_price_cents"] == 3000
        assert data["refund_request"] is None

    def test_refund_before_event_ends(self, buyer_client: Client, tickets: list[Ticket]) -> None:
        response = buyer_client.post(
            reverse("api:toggle_resale", kwargs={"ticket_id": tickets[0].id}),
            data={"action": "refund_request"},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json() == {
            "detail": "This event has not finished yet. Put your ticket up for resale instead."
        }

    def test_refund_after_event(self, buyer_client: Client, past_ticket: Ticket) -> None:
        response = buyer_client.post(
            reverse("api:toggle_resale", kwargs={"ticket_id": past_ticket.id}),
            data={"action": "refund_request", "reason": "  Could not make it  "},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        refund = response.json()["refund_request"]
        assert refund["status"] == RefundRequest.RefundStatus.PENDING
        assert refund["reason"] == "Could not make it"
        assert refund["ticket_id"] == str(past_ticket.id)

    def test_someone_elses_ticket(self, owner_client: Client, tickets: list[Ticket]) -> None:
        response = owner_client.post(
            reverse("api:toggle_resale", kwargs={"ticket_id": tickets[0].id}),
            data={"action": "sell"},
            content_type="application/json",
        )

        assert response.status_code == 404

    def test_unknown_action(self, buyer_client: Client, tickets: list[Ticket]) -> None:
        response = buyer_client.post(
            reverse("api:toggle_resale", kwargs={"ticket_id": tickets[0].id}),
            data={"action": "donate"},
            content_type="application/json",
        )

        assert response.status_code == 422


class TestRespondToRefundRequest:
    @pytest.fixture
    def refund_request(self, buyer_client: Client, past_ticket: Ticket) -> RefundRequest:
        buyer_client.post(
            reverse("api:toggle_resale", kwargs={"ticket_id": past_ticket.id}),
            data={"action": "refund_request"},
            content_type="application/json",
        )
        return RefundRequest.objects.get(ticket=past_ticket)

    def test_owner_approves(self, owner_client: Client, refund_request: RefundRequest, past_ticket: Ticket) -> None:
        response = owner_client.post(
            reverse("api:respond_to_refund_request", kwargs={"refund_request_id": refund_request.id}),
            data={"approve": True, "message": "Refunded on Stripe"},
            content_type="application/json",
        )

        assert response.status_code == 200, response.content
        assert response.json()["status"] == RefundRequest.RefundStatus.APPROVED
        past_ticket.refresh_from_db()
        assert past_ticket.status == Ticket.TicketStatus.REVOKED

    def test_holder_cannot_answer(self, buyer_client: Client, refund_request: RefundRequest) -> None:
        response = buyer_client.post(
            reverse("api:respond_to_refund_request", kwargs={"refund_request_id": refund_request.id}),
            data={"approve": True},
            content_type="application/json",
        )

        assert response.status_code == 403

    def test_second_answer_conflicts(self, owner_client: Client, refund_request: RefundRequest) -> None:
        url = reverse("api:respond_to_refund_request", kwargs={"refund_request_id": refund_request.id})
        owner_client.post(url, data={"approve": False}, content_type="application/json")

        response = owner_client.post(url, data={"approve": True}, content_type="application/json")

        assert response.status_code == 409


class TestScan:
    def test_owner_scans_once(self, owner_client: Client, event: Event, tickets: list[Ticket]) -> None:
        url = reverse("api:scan_ticket", kwargs={"event_id": event.id})

        response = owner_client.post(url, data={"token": tickets[2].token}, content_type="application/json")

        assert response.status_code == 200, response.content
        data = response.json()
        assert data["serial"] == tickets[2].serial
        assert data["status"] == Ticket.TicketStatus.USED
        assert data["tier_name"] == "VIP"

        again = owner_client.post(url, data={"token": tickets[2].token}, content_type="application/json")
        assert again.status_code == 409
        assert again.json() == {"detail": "This ticket has already been used."}

    def test_only_owner_scans(self, buyer_client: Client, event: Event, tickets: list[Ticket]) -> None:
        response = buyer_client.post(
            reverse("api:scan_ticket", kwargs={"event_id": event.id}),
            data={"token": tickets[0].token},
            content_type="application/json",
        )

        assert response.status_code == 403
        assert Ticket.objects.get(pk=tickets[0].pk).status == Ticket.TicketStatus.VALID

    def test_unknown_token(self, owner_client: Client, event: Event) -> None:
        response = owner_client.post(
            reverse("api:scan_ticket", kwargs={"event_id": event.id}),
            data={"token": "bogus"},
            content_type="application/json",
        )

        assert response.status_code == 404
