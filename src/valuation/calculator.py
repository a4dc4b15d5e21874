"""
Valuation and margin calculations for futures and tick-quoted instruments.

Pure functions: floats in, floats out, no rounding. Display formatting is
left to the caller. Sign conventions:
- Notional value carries the sign of quantity
- Margin is always a magnitude
- Tick P&L: positive quantity (long) profits when price rises
"""

import logging
from typing import Optional

from src.core.models import ContractSpecification, ValuationResult


logger = logging.getLogger(__name__)

MARGIN_BASES = ('initial', 'maintenance')


def calculate_futures_value(price: float, quantity: float, multiplier: float) -> float:
    """
    Notional value of a futures position: price * quantity * multiplier.

    Example:
        >>> calculate_futures_value(4500, 2, 50)
        450000
    """
    return price * quantity * multiplier


def calculate_margin_requirement(quantity: float, margin_per_contract: float) -> float:
    """
    Total margin: |quantity| * margin_per_contract.

    Example:
        >>> calculate_margin_requirement(-2, 13200)
        26400
    """
    return abs(quantity) * margin_per_contract


def calculate_tick_pl(
    entry_price: float,
    exit_price: float,
    quantity: float,
    tick_size: float,
    tick_value: float
) -> float:
    """
    Profit/loss of a tick-quoted position.

    P&L = ((exit - entry) / tick_size) * tick_value * quantity

    Example:
        >>> # ES long 1 from 4500.00 to 4502.00 = 8 ticks * $12.50
        >>> calculate_tick_pl(4500.00, 4502.00, 1, 0.25, 12.50)
        100.0
    """
    ticks = (exit_price - entry_price) / tick_size
    return ticks * tick_value * quantity


def safe_percent(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is zero"""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def calculate_leverage(notional_value: float, margin_required: Optional[float]) -> Optional[float]:
    """Notional / margin, or None when margin is None or zero"""
    if not margin_required:
        return None
    return notional_value / margin_required


def calculate_contract_valuation(
    spec: ContractSpecification,
    price: float,
    quantity: float,
    fees_per_contract: Optional[float] = None,
    margin_basis: str = 'initial'
) -> ValuationResult:
    """
    Pre-trade preview of a futures order.

    Args:
        spec: Contract specification (not modified)
        price: Order price
        quantity: Signed number of contracts
        fees_per_contract: Fee override; defaults to spec.fees_per_contract
        margin_basis: 'initial' or 'maintenance' margin

    Returns:
        ValuationResult with notional, margin (None if the spec has no
        margin for the basis), total fees and leverage (None without margin)

    Raises:
        ValueError: If margin_basis is not recognised
    """
    if margin_basis not in MARGIN_BASES:
        raise ValueError(f"Invalid margin_basis: {margin_basis}. Must be one of {list(MARGIN_BASES)}")

    notional_value = calculate_futures_value(price, quantity, spec.multiplier)

    margin_per_contract = spec.margin_per_contract(margin_basis)
    margin_required = (
        calculate_margin_requirement(quantity, margin_per_contract)
        if margin_per_contract else None
    )

    fee = spec.fees_per_contract if fees_per_contract is None else fees_per_contract
    total_fees = fee * abs(quantity)

    leverage = calculate_leverage(notional_value, margin_required)

    logger.debug(
        f"{spec.symbol}: qty={quantity} @ {price} -> notional={notional_value:,.2f}, "
        f"margin={margin_required}, leverage={leverage}"
    )

    return ValuationResult(
        notional_value=notional_value,
        margin_required=margin_required,
        total_fees=total_fees,
        leverage=leverage,
    )
