"""Group order schemas."""

from datetime import datetime
from uuid import UUID

from ninja import Schema
from pydantic import EmailStr, Field

from events.models import GroupOrder, GroupOrderParticipant


class GroupOrderCreateSchema(Schema):
    tier_id: UUID
    total_tickets: int = Field(..., ge=1, le=50)
    participant_emails: list[EmailStr] = Field(..., min_length=1, max_length=50)


class GroupParticipantSchema(Schema):
    id: UUID
    masked_email: str
    status: GroupOrderParticipant.ParticipantStatus
    paid_at: datetime | None = None
    is_current_user: bool


class GroupOrderSchema(Schema):
    id: UUID
    share_code: str
    event_id: UUID
    tier_id: UUID
    total_tickets: int
    price_per_ticket_cents: int
    currency: str
    status: GroupOrder.GroupOrderStatus
    expires_at: datetime
    completed_at: datetime | None = None
    paid_count: int
    participants: list[GroupParticipantSchema]


class GroupOrderCreatedSchema(Schema):
    id: UUID
    share_code: str
    expires_at: datetime


class GroupJoinSchema(Schema):
    participant_id: UUID | None = None


class GroupPayRequestSchema(Schema):
    participant_id: UUID | None = None
    email: EmailStr | None = None


class GroupPayResponseSchema(Schema):
    checkout_url: str
    participant_id: UUID
    amount_cents: int
