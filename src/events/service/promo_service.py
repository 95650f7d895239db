"""Promo code validation and discount arithmetic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

import structlog
from django.db.models import F, Q
from django.utils import timezone

from events.exceptions import PromoCodeRejectedError
from events.models import PromoCode

logger = structlog.get_logger(__name__)

Reason = PromoCodeRejectedError.Reason


@dataclass(frozen=True)
class DiscountDescriptor:
    promo_code_id: UUID
    code: str
    discount_type: str
    discount_value: int


def canonicalize_code(code: str) -> str:
    return code.strip().upper()


def validate_promo_code(code: str, event_id: UUID | str, now: datetime | None = None) -> DiscountDescriptor:
    """Check a promo code against an event and the current time.

    Checks run in a fixed order and the first failure wins: existence (inactive codes count as
    missing), event scope, usage limit, start, expiry. Usage is not consumed here, see
    ``redeem_promo_code``.

    Raises:
        PromoCodeRejectedError: With the reason of the first failed check.
    """
    now = now or timezone.now()
    promo = PromoCode.objects.filter(code=canonicalize_code(code), is_active=True).first()
    if promo is None:
        raise PromoCodeRejectedError(Reason.NOT_FOUND)
    if promo.event_id is not None and str(promo.event_id) != str(event_id):
        raise PromoCodeRejectedError(Reason.SCOPE_MISMATCH)
    if promo.usage_limit is not None and promo.usage_count >= promo.usage_limit:
        raise PromoCodeRejectedError(Reason.USAGE_EXCEEDED)
    if promo.starts_at is not None and promo.starts_at > now:
        raise PromoCodeRejectedError(Reason.NOT_YET_ACTIVE)
    if promo.expires_at is not None and promo.expires_at < now:
        raise PromoCodeRejectedError(Reason.EXPIRED)

    return DiscountDescriptor(
        promo_code_id=promo.id,
        code=promo.code,
        discount_type=promo.discount_type,
        discount_value=promo.discount_value,
    )


def compute_discount(subtotal_cents: int, descriptor: DiscountDescriptor) -> int:
    """Discount in minor units, never more than the subtotal.

    Percentage discounts round half up to the nearest cent.
    """
    if subtotal_cents <= 0:
        return 0
    if descriptor.discount_type == PromoCode.DiscountType.PERCENTAGE:
        raw = (Decimal(subtotal_cents) * Decimal(descriptor.discount_value) / Decimal(100)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        discount = int(raw)
    else:
        discount = descriptor.discount_value
    return max(0, min(discount, subtotal_cents))


def redeem_promo_code(promo_code_id: UUID) -> bool:
    """Consume one use of a promo code.

    A conditional increment: the row is only updated while it is under its usage limit, so
    concurrent redemptions can never push ``usage_count`` past ``usage_limit``.

    Returns:
        True if a use was recorded, False if the limit had already been reached.
    """
    updated = (
        PromoCode.objects.filter(pk=promo_code_id)
        .filter(Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit")))
        .update(usage_count=F("usage_count") + 1, updated_at=timezone.now())
    )
    if not updated:
        logger.warning("promo_code_usage_limit_reached", promo_code_id=str(promo_code_id))
    return bool(updated)

