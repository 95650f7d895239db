"""HMAC helpers for ticket integrity hashes and webhook signatures.

Ticket hashes:
    A ticket carries a public token (the QR payload) and an integrity hash. The hash is an
    HMAC-SHA256 over ``{serial}.{event_id}`` keyed with ``settings.TICKET_SECRET``. The secret never
    leaves the server, so a hash can be recomputed at the door but not forged by a holder.

Webhook signatures:
    Payment providers that sign deliveries with a shared secret send the hex HMAC-SHA256 of the raw
    request body in a header. ``verify_webhook_signature`` checks it in constant time.
"""

import hashlib
import hmac
from functools import lru_cache

from django.conf import settings

__all__ = [
    "compute_ticket_hash",
    "verify_ticket_hash",
    "compute_webhook_signature",
    "verify_webhook_signature",
]

# Domain separator for key derivation.
# Keeps the ticket key isolated from other uses of the same secret.
_TICKET_KEY_DOMAIN = "turnstile:ticket-hash:v1"


@lru_cache(maxsize=4)
def _derive_ticket_key(secret: str) -> bytes:
    return hashlib.sha256(f"{_TICKET_KEY_DOMAIN}:{secret}".encode()).digest()


def compute_ticket_hash(serial: str, event_id: object) -> str:
    """Compute the integrity hash of a ticket.

    Args:
        serial: The ticket serial, e.g. ``"AB12CD34-001"``.
        event_id: The id of the event the ticket admits to.

    Returns:
        Hex-encoded HMAC-SHA256 digest.
    """
    message = f"{serial}.{event_id}"
    return hmac.new(_derive_ticket_key(settings.TICKET_SECRET), message.encode(), hashlib.sha256).hexdigest()


def verify_ticket_hash(serial: str, event_id: object, candidate: str) -> bool:
    """Recompute the hash for a serial and compare it with a stored one."""
    return hmac.compare_digest(compute_ticket_hash(serial, event_id), candidate or "")


def compute_webhook_signature(payload: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of a raw webhook body."""
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """Check a webhook signature header against the raw body.

    Returns:
        True if the signature matches, False if it is missing or wrong.
    """
    if not signature:
        return False
    return hmac.compare_digest(compute_webhook_signature(payload, secret), signature.strip().lower())
