"""
Realized P&L aggregation across positions and multi-leg strategies.

Stored cost basis is cash-flow signed: a credit received is positive, a
debit paid is negative. An option that expired worthless therefore realizes
exactly its cost basis, which is what adjusted_realized_pl falls back to
when the stored realized figure was never filled in.

Strategy-level realized P&L, when recorded, supersedes the figures of the
positions that belong to that strategy so legs are not double counted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from src.core.models import AssetType, PositionRecord, PositionStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyRecord:
    """Stored multi-leg strategy with its realized P&L"""
    id: str
    realized_pl: Optional[float] = None
    status: Optional[str] = None


def _as_record(position: Union[PositionRecord, Mapping[str, Any]]) -> PositionRecord:
    if isinstance(position, PositionRecord):
        return position
    return PositionRecord.from_dict(position)


def adjusted_realized_pl(position: Union[PositionRecord, Mapping[str, Any]]) -> float:
    """
    Realized P&L of one position.

    Expired options with no recorded realized P&L and a non-zero cost basis
    realize their cost basis (premium kept for shorts, premium lost for longs).
    """
    record = _as_record(position)
    realized = record.realized_pl or 0.0

    if (
        str(record.asset_type).lower() == AssetType.OPTION.value
        and str(record.status).lower() == PositionStatus.EXPIRED.value
        and realized == 0
        and record.total_cost_basis
    ):
        realized = record.total_cost_basis

    return realized


def aggregate_realized_pl(
    positions: Iterable[Union[PositionRecord, Mapping[str, Any]]],
    strategies: Iterable[StrategyRecord] = ()
) -> float:
    """
    Total realized P&L for a set of closed positions and strategies.

    Strategies with a non-zero realized figure are counted once at the
    strategy level; their member positions are excluded. Positions of
    strategies without a realized figure are counted individually.

    Example:
        >>> positions = [
        ...     {'symbol': 'SPY', 'asset_type': 'option', 'side': 'short', 'quantity': 0,
        ...      'average_opening_price': 1.2, 'total_cost_basis': 120,
        ...      'realized_pl': 80, 'strategy_id': 's1'},
        ...     {'symbol': 'AAPL', 'asset_type': 'stock', 'side': 'long', 'quantity': 0,
        ...      'average_opening_price': 150, 'total_cost_basis': -1500,
        ...      'realized_pl': 200},
        ... ]
        >>> aggregate_realized_pl(positions, [StrategyRecord('s1', realized_pl=95)])
        295.0
    """
    records = [_as_record(p) for p in positions]

    excluded_strategy_ids = set()
    strategy_pl = 0.0
    for strategy in strategies:
        value = float(strategy.realized_pl or 0)
        if value != 0:
            strategy_pl += value
            excluded_strategy_ids.add(strategy.id)

    position_pl = sum(
        adjusted_realized_pl(record)
        for record in records
        if not record.strategy_id or record.strategy_id not in excluded_strategy_ids
    )

    logger.debug(
        f"Realized P&L: positions={position_pl:,.2f}, strategies={strategy_pl:,.2f} "
        f"({len(excluded_strategy_ids)} strategies counted at strategy level)"
    )

    return float(position_pl + strategy_pl)
