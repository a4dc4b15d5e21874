"""Valuation and margin calculations"""

from src.valuation.calculator import (
    calculate_futures_value,
    calculate_margin_requirement,
    calculate_tick_pl,
    calculate_contract_valuation,
)

__all__ = [
    'calculate_futures_value',
    'calculate_margin_requirement',
    'calculate_tick_pl',
    'calculate_contract_valuation',
]
