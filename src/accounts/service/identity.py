"""Purchaser identity resolution for guest checkout."""

import structlog
from django.contrib.auth.hashers import make_password
from django.db import IntegrityError, transaction

from accounts.models import TurnstileUser

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_or_create_guest_user(email: str, first_name: str = "", last_name: str = "") -> TurnstileUser:
    """Resolve the account that owns an email address, provisioning a guest if there is none.

    Matching is case-insensitive. A concurrent request may create the same account between the
    lookup and the insert; the unique username then rejects our insert and the winner is returned.

    Args:
        email: Purchaser email address.
        first_name: Used only when a new guest is created.
        last_name: Used only when a new guest is created.

    Returns:
        The existing user for that email, or a freshly created guest.
    """
    email = normalize_email(email)

    if existing_user := TurnstileUser.objects.filter(email__iexact=email).order_by("date_joined").first():
        return existing_user

    try:
        with transaction.atomic():
            user = TurnstileUser.objects.create(
                username=email,
                email=email,
                first_name=first_name,
                last_name=last_name,
                guest=True,
                email_verified=False,
                is_active=True,
                password=make_password(None),
            )
    except IntegrityError:
        logger.info("guest_user_already_exists", email=email)
        return TurnstileUser.objects.get(username=email)

    logger.info("guest_user_created", email=email, user_id=str(user.id))
    return user
