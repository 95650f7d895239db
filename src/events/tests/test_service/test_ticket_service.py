import typing as t

import pytest
from django.utils import timezone

from events.exceptions import TicketAlreadyUsedError, TicketNotFoundError, TicketNotValidError
from events.models import Event, Order, Ticket
from events.service.ticket_issuer import issue_tickets
from events.service.ticket_service import scan_ticket

pytestmark = pytest.mark.django_db


@pytest.fixture
def ticket(pending_order: Order) -> Ticket:
    return issue_tickets(pending_order)[0]


class TestScanTicket:
    def test_admits_once(self, event: Event, ticket: Ticket) -> None:
        scanned = scan_ticket(event, ticket.token)

        assert scanned.status == Ticket.TicketStatus.USED
        assert scanned.used_at is not None

        with pytest.raises(TicketAlreadyUsedError):
            scan_ticket(event, ticket.token)

    def test_records_scan_time(self, event: Event, ticket: Ticket) -> None:
        now = timezone.now()

        assert scan_ticket(event, ticket.token, now=now).used_at == now

    def test_unknown_token(self, event: Event) -> None:
        with pytest.raises(TicketNotFoundError):
            scan_ticket(event, "not-a-token")

    def test_token_for_another_event(self, past_event: Event, ticket: Ticket) -> None:
        with pytest.raises(TicketNotFoundError):
            scan_ticket(past_event, ticket.token)

    def test_tampered_serial(self, event: Event, ticket: Ticket) -> None:
        Ticket.objects.filter(pk=ticket.pk).update(serial="FORGED00-001")

        with pytest.raises(TicketNotValidError):
            scan_ticket(event, ticket.token)

    def test_rotated_secret(self, event: Event, ticket: Ticket, settings: t.Any) -> None:
        settings.TICKET_SECRET = "rotated"

        with pytest.raises(TicketNotValidError):
            scan_ticket(event, ticket.token)

    def test_revoked_ticket(self, event: Event, ticket: Ticket) -> None:
        Ticket.objects.filter(pk=ticket.pk).update(status=Ticket.TicketStatus.REVOKED)

        with pytest.raises(TicketNotValidError):
            scan_ticket(event, ticket.token)
