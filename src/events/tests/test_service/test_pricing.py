import pytest

from events.exceptions import TicketingValidationError
from events.service.pricing import calculate_group_share_fee, calculate_ticket_price


class TestCalculateTicketPrice:
    def test_starter_plan(self) -> None:
        price = calculate_ticket_price(2000, "starter", "EUR")

        # round(2000 * 0.011) + round(1.50 * 100)
        assert price.application_fee_cents == 22 + 150
        assert price.total_amount_cents == 2000 + 172
        assert price.base_price_cents == 2000
        assert price.currency == "EUR"

    def test_pro_plan_is_fixed_fee_only(self) -> None:
        price = calculate_ticket_price(2000, "pro")

        assert price.application_fee_cents == 99
        assert price.total_amount_cents == 2099

    def test_percentage_part_rounds_half_up(self) -> None:
        # 50 * 0.011 = 0.55 -> 1
        assert calculate_ticket_price(50, "starter").application_fee_cents == 1 + 150

    def test_defaults_to_configured_currency(self, settings: object) -> None:
        settings.DEFAULT_CURRENCY = "USD"  # type: ignore[attr-defined]

        assert calculate_ticket_price(1000).currency == "USD"

    def test_unknown_plan(self) -> None:
        with pytest.raises(TicketingValidationError):
            calculate_ticket_price(1000, "enterprise")

    def test_negative_price(self) -> None:
        with pytest.raises(TicketingValidationError):
            calculate_ticket_price(-1)

    @pytest.mark.parametrize("plan", ["starter", "pro"])
    def test_fee_is_monotonic_and_at_least_fixed_part(self, plan: str) -> None:
        fixed = calculate_ticket_price(0, plan).application_fee_cents
        previous = fixed
        for base in range(0, 20000, 137):
            price = calculate_ticket_price(base, plan)
            assert price.application_fee_cents >= fixed
            assert price.application_fee_cents >= previous
            assert price.total_amount_cents == base + price.application_fee_cents
            previous = price.application_fee_cents

    def test_is_deterministic(self) -> None:
        assert calculate_ticket_price(4321, "starter") == calculate_ticket_price(4321, "starter")


class TestGroupShareFee:
    def test_default_commission(self) -> None:
        # 110 bps of 2000 = 22
        assert calculate_group_share_fee(2000) == 22

    def test_explicit_commission(self) -> None:
        assert calculate_group_share_fee(1000, bps=250, fixed_cents=30) == 25 + 30
