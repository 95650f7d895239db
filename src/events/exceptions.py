"""Ticketing error taxonomy.

Every error carries an HTTP status and a message meant for the person who triggered it. The API
layer turns them into ``{"detail": message}`` responses (see ``api.exception_handlers``).
"""

import enum

from django.utils.translation import gettext_lazy as _


class TicketingError(Exception):
    status_code = 400
    default_message = _("The request could not be processed.")

    def __init__(self, message: str | None = None) -> None:
        self.message = str(message or self.default_message)
        super().__init__(self.message)


class TicketingValidationError(TicketingError):
    """Malformed or unacceptable input. Retrying the same request will not help."""


class TicketingNotFoundError(TicketingError):
    """A referenced record is missing. May be transient while a write is still committing."""

    status_code = 404
    default_message = _("Not found.")


class TicketingPermissionError(TicketingError):
    status_code = 403
    default_message = _("You do not have permission to perform this action.")


class StateConflictError(TicketingError):
    """The record exists but is not in a state that allows the operation."""

    status_code = 409


class TransientInfraError(TicketingError):
    """A storage or issuance write failed. State is unchanged and the call can be retried."""

    status_code = 503
    default_message = _("Temporary failure, please retry.")


# --- Validation ---


class NonFreeTierError(TicketingValidationError):
    default_message = _("Only free ticket tiers can be reserved without payment.")


class InvalidOrderItemsError(TicketingValidationError):
    default_message = _("The requested tickets are not valid for this event.")


class ParticipantCountMismatchError(TicketingValidationError):
    default_message = _("The number of participants must match the number of tickets.")


class InvalidWebhookPayloadError(TicketingValidationError):
    default_message = _("Malformed webhook payload.")


class InvalidWebhookSignatureError(TicketingValidationError):
    status_code = 401
    default_message = _("Invalid webhook signature.")


class WebhookSignatureRequiredError(TicketingValidationError):
    status_code = 401
    default_message = _("Webhook signature verification is not configured.")


class PromoCodeRejectedError(TicketingValidationError):
    class Reason(enum.StrEnum):
        NOT_FOUND = "not_found"
        SCOPE_MISMATCH = "scope_mismatch"
        USAGE_EXCEEDED = "usage_exceeded"
        NOT_YET_ACTIVE = "not_yet_active"
        EXPIRED = "expired"

    MESSAGES = {
        Reason.NOT_FOUND: _("This promo code does not exist."),
        Reason.SCOPE_MISMATCH: _("This promo code is not valid for this event."),
        Reason.USAGE_EXCEEDED: _("This promo code has reached its usage limit."),
        Reason.NOT_YET_ACTIVE: _("This promo code is not active yet."),
        Reason.EXPIRED: _("This promo code has expired."),
    }

    def __init__(self, reason: "PromoCodeRejectedError.Reason") -> None:
        self.reason = reason
        super().__init__(str(self.MESSAGES[reason]))


# --- Not found ---


class OrderNotFoundError(TicketingNotFoundError):
    default_message = _("Order not found.")


class TicketNotFoundError(TicketingNotFoundError):
    default_message = _("Ticket not found.")


class GroupOrderNotFoundError(TicketingNotFoundError):
    default_message = _("Group order not found.")


class ParticipantNotFoundError(TicketingNotFoundError):
    default_message = _("You are not a participant of this group order.")


# --- State conflicts ---


class AlreadyPaidError(StateConflictError):
    default_message = _("This share has already been paid.")


class GroupOrderClosedError(StateConflictError):
    default_message = _("This group order is no longer accepting payments.")


class GroupOrderExpiredError(StateConflictError):
    default_message = _("This group order has expired.")


class ParticipantAlreadyLinkedError(StateConflictError):
    default_message = _("This participant slot is already claimed by another account.")


class SoldOutError(StateConflictError):
    default_message = _("Not enough tickets left in this tier.")


class PaymentsNotConfiguredError(StateConflictError):
    default_message = _("This organizer is not configured to accept payments.")


class TicketNotValidError(StateConflictError):
    status_code = 400
    default_message = _("This ticket is no longer valid.")


class EventFinishedError(StateConflictError):
    status_code = 400
    default_message = _("This event has already finished. Request a refund instead.")


class EventNotFinishedError(StateConflictError):
    status_code = 400
    default_message = _("This event has not finished yet. Put your ticket up for resale instead.")


class DuplicateRefundRequestError(StateConflictError):
    status_code = 400
    default_message = _("A refund request already exists for this ticket.")


class RefundRequestAlreadyAnsweredError(StateConflictError):
    default_message = _("This refund request has already been answered.")


class TicketAlreadyUsedError(StateConflictError):
    default_message = _("This ticket has already been used.")


# --- Infrastructure ---


class IssuanceError(TransientInfraError):
    default_message = _("Tickets could not be issued, please retry.")


class ShortCodeExhaustedError(TransientInfraError):
    default_message = _("Could not allocate an order code, please retry.")


class PaymentProviderError(TransientInfraError):
    status_code = 502
    default_message = _("The payment provider could not be reached, please retry.")
