"""Ticket lifecycle and scanning schemas."""

import typing as t
from datetime import datetime
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import Field

from common.schema import StrippedString
from events.models import RefundRequest, Ticket
from events.service.ticket_lifecycle import ResaleAction


class TicketSchema(ModelSchema):
    status: Ticket.TicketStatus
    event_id: UUID
    tier_id: UUID | None = None

    class Meta:
        model = Ticket
        fields = [
            "id",
            "serial",
            "token",
            "status",
            "original_price_cents",
            "is_for_sale",
            "resale_price_cents",
            "issued_at",
            "used_at",
        ]


class ResaleRequestSchema(Schema):
    action: ResaleAction
    price_cents: int | None = Field(None, ge=0)
    reason: StrippedString = ""


class RefundRequestSchema(ModelSchema):
    status: RefundRequest.RefundStatus
    ticket_id: UUID

    class Meta:
        model = RefundRequest
        fields = ["id", "status", "reason", "response_message", "responded_at", "created_at"]


class TicketActionResponseSchema(Schema):
    ticket: TicketSchema | None = None
    refund_request: RefundRequestSchema | None = None


class RefundResponseRequestSchema(Schema):
    approve: bool
    message: StrippedString = ""


class ScanRequestSchema(Schema):
    token: t.Annotated[str, Field(min_length=1, max_length=64)]


class ScanResponseSchema(Schema):
    id: UUID
    serial: str
    status: Ticket.TicketStatus
    used_at: datetime | None
    holder_name: str
    tier_name: str | None = None
