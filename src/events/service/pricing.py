"""Per-ticket fee and total calculation.

All amounts are integers in minor currency units. ``fee_percent`` is a fraction (``0.011`` is
1.1%) and ``fee_fixed`` is in major units (``1.50``), both configured per plan in
``settings.PRICING_PLANS``.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from events.exceptions import TicketingValidationError


@dataclass(frozen=True)
class PricingPlan:
    name: str
    fee_percent: Decimal
    fee_fixed: Decimal


@dataclass(frozen=True)
class TicketPrice:
    base_price_cents: int
    application_fee_cents: int
    total_amount_cents: int
    currency: str


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_plan(name: str) -> PricingPlan:
    try:
        preset = settings.PRICING_PLANS[name]
    except KeyError:
        raise TicketingValidationError(f"Unknown pricing plan: {name}")
    return PricingPlan(name=name, fee_percent=Decimal(preset["fee_percent"]), fee_fixed=Decimal(preset["fee_fixed"]))


def calculate_application_fee(base_price_cents: int, plan: PricingPlan) -> int:
    """``round(base * fee_percent) + round(fee_fixed * 100)``."""
    if base_price_cents < 0:
        raise TicketingValidationError("Price cannot be negative.")
    percentage_part = _round_half_up(Decimal(base_price_cents) * plan.fee_percent)
    fixed_part = _round_half_up(plan.fee_fixed * 100)
    return percentage_part + fixed_part


def calculate_ticket_price(
    base_price_cents: int, plan: PricingPlan | str = "starter", currency: str | None = None
) -> TicketPrice:
    """Compute the application fee and payable total of one ticket."""
    if isinstance(plan, str):
        plan = get_plan(plan)
    fee = calculate_application_fee(base_price_cents, plan)
    return TicketPrice(
        base_price_cents=base_price_cents,
        application_fee_cents=fee,
        total_amount_cents=base_price_cents + fee,
        currency=currency or settings.DEFAULT_CURRENCY,
    )


def calculate_group_share_fee(amount_cents: int, bps: int | None = None, fixed_cents: int | None = None) -> int:
    """Platform commission on a single group share: ``round(amount * bps / 10000) + fixed``."""
    bps = settings.GROUP_ORDER_COMMISSION_BPS if bps is None else bps
    fixed_cents = settings.GROUP_ORDER_COMMISSION_FIXED_CENTS if fixed_cents is None else fixed_cents
    return _round_half_up(Decimal(amount_cents) * Decimal(bps) / Decimal(10000)) + fixed_cents
