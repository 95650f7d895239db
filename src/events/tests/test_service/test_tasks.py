import typing as t
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.core import mail
from django.utils import timezone

from common.models import EmailLog
from events.models import GroupOrder, Order
from events.service.settlement import settle_order
from events.tasks import expire_group_orders, send_ticket_email

pytestmark = pytest.mark.django_db


class TestSendTicketEmail:
    def test_sends_tickets_of_completed_order(self, pending_order: Order, mock_dispatch: MagicMock) -> None:
        settle_order(pending_order.id)

        count = send_ticket_email(str(pending_order.id))

        assert count == 3
        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.subject == "Your tickets for Warehouse Party"
        assert f"{pending_order.short_code}-001" in message.body
        assert f"{pending_order.short_code}-003" in message.body
        assert EmailLog.objects.filter(subject="Your tickets for Warehouse Party").count() == 1

    def test_skips_orders_that_are_not_completed(self, pending_order: Order) -> None:
        assert send_ticket_email(str(pending_order.id)) == 0
        assert mail.outbox == []

    def test_dispatched_after_settlement_commits(
        self, pending_order: Order, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):
            settle_order(pending_order.id)

        assert len(mail.outbox) == 1

    def test_dispatch_failure_is_swallowed(
        self, pending_order: Order, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        with patch("events.tasks.send_ticket_email.delay", side_effect=RuntimeError("broker down")) as delay:
            with django_capture_on_commit_callbacks(execute=True):
                settle_order(pending_order.id)

        delay.assert_called_once_with(str(pending_order.id))
        assert Order.objects.get(pk=pending_order.pk).status == Order.OrderStatus.COMPLETED


class TestExpireGroupOrders:
    def test_expires_only_overdue_pending_groups(self, group_order: GroupOrder) -> None:
        overdue = GroupOrder.objects.create(
            event=group_order.event,
            tier=group_order.tier,
            creator=group_order.creator,
            total_tickets=1,
            price_per_ticket_cents=2000,
            share_code="SHARE0000002",
            expires_at=timezone.now() - timedelta(minutes=5),
        )
        completed = GroupOrder.objects.create(
            event=group_order.event,
            tier=group_order.tier,
            creator=group_order.creator,
            total_tickets=1,
            price_per_ticket_cents=2000,
            share_code="SHARE0000003",
            status=GroupOrder.GroupOrderStatus.COMPLETED,
            expires_at=timezone.now() - timedelta(minutes=5),
        )

        assert expire_group_orders() == 1

        overdue.refresh_from_db()
        completed.refresh_from_db()
        group_order.refresh_from_db()
        assert overdue.status == GroupOrder.GroupOrderStatus.EXPIRED
        assert completed.status == GroupOrder.GroupOrderStatus.COMPLETED
        assert group_order.status == GroupOrder.GroupOrderStatus.PENDING
