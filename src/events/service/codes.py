"""Random identifiers: order short codes, share codes and ticket tokens."""

import secrets
import string

from django.conf import settings
from django.db import models

from events.exceptions import ShortCodeExhaustedError

SHORT_CODE_ALPHABET = string.ascii_uppercase + string.digits
SHORT_CODE_LENGTH = 8
SHARE_CODE_LENGTH = 12
TICKET_TOKEN_BYTES = 32


def generate_code(length: int = SHORT_CODE_LENGTH, alphabet: str = SHORT_CODE_ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_unique_code(model: type[models.Model], field: str, length: int = SHORT_CODE_LENGTH) -> str:
    """Draw codes until one is unused in ``model.field``.

    The unique constraint on the column still decides under concurrency; this only keeps
    collisions away from the insert path.
    """
    for _ in range(settings.SHORT_CODE_MAX_ATTEMPTS):
        code = generate_code(length)
        if not model._default_manager.filter(**{field: code}).exists():
            return code
    raise ShortCodeExhaustedError()


def generate_ticket_token() -> str:
    """256 bits from the OS CSPRNG, URL-safe. Uniqueness is by construction, not by lookup."""
    return secrets.token_urlsafe(TICKET_TOKEN_BYTES)
