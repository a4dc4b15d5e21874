"""
Unit tests for valuation and margin calculations
File: tests/unit/test_calculator.py
Target: src/valuation/calculator.py
"""

import pytest

from src.valuation.calculator import (
    calculate_contract_valuation,
    calculate_futures_value,
    calculate_leverage,
    calculate_margin_requirement,
    calculate_tick_pl,
    safe_percent,
)


class TestFuturesValue:
    """Notional value = price * quantity * multiplier"""

    def test_long_notional(self):
        assert calculate_futures_value(4500, 2, 50) == pytest.approx(450000)

    def test_short_notional_is_negative(self):
        assert calculate_futures_value(72.50, -1, 1000) == pytest.approx(-72500)

    def test_zero_quantity(self):
        assert calculate_futures_value(4500, 0, 50) == 0


class TestMarginRequirement:
    """Margin is a magnitude regardless of direction"""

    def test_short_position_margin_positive(self):
        assert calculate_margin_requirement(-2, 13200) == pytest.approx(26400)

    def test_long_and_short_symmetric(self):
        assert calculate_margin_requirement(3, 1320) == calculate_margin_requirement(-3, 1320)


class TestTickPL:
    """Test tick-based P&L"""

    def test_es_eight_ticks(self):
        """ES long 1 from 4500.00 to 4502.00 = 8 ticks * $12.50 = $100"""
        assert calculate_tick_pl(4500.00, 4502.00, 1, 0.25, 12.50) == pytest.approx(100.0)

    def test_short_profits_when_price_falls(self):
        """CL short 2 from 72.50 to 72.00 = 50 ticks * $10 * 2 = $1000"""
        assert calculate_tick_pl(72.50, 72.00, -2, 0.01, 10.00) == pytest.approx(1000.0)

    def test_long_loses_when_price_falls(self):
        assert calculate_tick_pl(4500.00, 4499.00, 1, 0.25, 12.50) == pytest.approx(-50.0)

    def test_tick_pl_matches_notional_change(self):
        """For tick_value = tick_size * multiplier both views agree"""
        entry, exit_, qty = 4500.00, 4517.75, 3
        by_ticks = calculate_tick_pl(entry, exit_, qty, 0.25, 12.50)
        by_notional = calculate_futures_value(exit_, qty, 50) - calculate_futures_value(entry, qty, 50)

        assert by_ticks == pytest.approx(by_notional)


class TestPercentAndLeverage:
    """Test the division guards"""

    def test_safe_percent(self):
        assert safe_percent(1500, 15000) == pytest.approx(10.0)
        assert safe_percent(-275, 50) == pytest.approx(-550.0)

    def test_safe_percent_zero_denominator(self):
        assert safe_percent(100, 0) == 0.0

    def test_leverage(self):
        assert calculate_leverage(450000, 26400) == pytest.approx(17.0454545)

    @pytest.mark.parametrize('margin', [None, 0, 0.0])
    def test_leverage_without_margin_is_none(self, margin):
        assert calculate_leverage(450000, margin) is None


class TestContractValuation:
    """Test the pre-trade valuation preview"""

    def test_es_order_preview(self, es_spec):
        """
        Long 2 ES @ 4500:
        notional = 450,000; margin = 2 * 13,200; fees = 2 * 2.50
        """
        result = calculate_contract_valuation(es_spec, 4500, 2)

        assert result.notional_value == pytest.approx(450000)
        assert result.margin_required == pytest.approx(26400)
        assert result.total_fees == pytest.approx(5.0)
        assert result.leverage == pytest.approx(450000 / 26400)

    def test_maintenance_basis(self, es_spec):
        result = calculate_contract_valuation(es_spec, 4500, -1, margin_basis='maintenance')

        assert result.notional_value == pytest.approx(-225000)
        assert result.margin_required == pytest.approx(12000)
        assert result.total_fees == pytest.approx(2.50)

    def test_fee_override(self, es_spec):
        result = calculate_contract_valuation(es_spec, 4500, -4, fees_per_contract=1.25)
        assert result.total_fees == pytest.approx(5.0)

    def test_zero_fee_override_is_respected(self, es_spec):
        """An explicit 0 fee is not replaced by the spec default"""
        result = calculate_contract_valuation(es_spec, 4500, 2, fees_per_contract=0)
        assert result.total_fees == 0

    def test_no_margin_configured(self, no_margin_spec):
        """Missing margin yields None for margin and leverage, not zero or an error"""
        result = calculate_contract_valuation(no_margin_spec, 450.25, 2)

        assert result.notional_value == pytest.approx(45025)
        assert result.margin_required is None
        assert result.leverage is None
        assert result.total_fees == pytest.approx(6.0)

    def test_invalid_margin_basis(self, es_spec):
        with pytest.raises(ValueError, match="margin_basis"):
            calculate_contract_valuation(es_spec, 4500, 1, margin_basis='overnight')

    def test_spec_not_modified(self, es_spec):
        calculate_contract_valuation(es_spec, 4500, 2, fees_per_contract=9.99)
        assert es_spec.fees_per_contract == 2.50
