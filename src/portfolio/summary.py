"""
Tabular views over position snapshots.

Converts snapshot objects into a pandas DataFrame (one row per position)
and aggregates it per asset type for dashboard totals.

Usage:
    >>> frame = snapshots_to_frame(snapshots)
    >>> by_type = summarize_by_asset_type(frame)
    >>> by_type.loc['futures', 'unrealized_pl']
"""

import logging
from typing import Iterable

import numpy as np
import pandas as pd

from src.core.models import Snapshot, StrategySnapshot


logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = [
    'id', 'kind', 'asset_type', 'symbol', 'side', 'quantity', 'average_price',
    'current_price', 'market_value', 'cost_basis', 'unrealized_pl',
    'unrealized_pl_percent', 'has_live_quote', 'multiplier', 'expiration_date',
    'contract_month', 'option_symbol',
]

SUMMARY_COLUMNS = [
    'positions', 'live_quotes', 'market_value', 'cost_basis',
    'unrealized_pl', 'unrealized_pl_percent',
]


def _kind(snapshot: Snapshot) -> str:
    if isinstance(snapshot, StrategySnapshot):
        return 'strategy'
    return snapshot.asset_type.value


def snapshots_to_frame(snapshots: Iterable[Snapshot]) -> pd.DataFrame:
    """
    One row per snapshot with the shared valuation columns.

    Asset-specific fields (multiplier, expiration_date, contract_month,
    option_symbol) are None where the snapshot type has none.
    """
    rows = []
    for snap in snapshots:
        rows.append({
            'id': snap.id,
            'kind': _kind(snap),
            'asset_type': snap.asset_type.value,
            'symbol': snap.symbol,
            'side': snap.side.value,
            'quantity': snap.quantity,
            'average_price': snap.average_price,
            'current_price': snap.current_price,
            'market_value': snap.market_value,
            'cost_basis': snap.cost_basis,
            'unrealized_pl': snap.unrealized_pl,
            'unrealized_pl_percent': snap.unrealized_pl_percent,
            'has_live_quote': snap.has_live_quote,
            'multiplier': getattr(snap, 'multiplier', None),
            'expiration_date': getattr(snap, 'expiration_date', None),
            'contract_month': getattr(snap, 'contract_month', None),
            'option_symbol': getattr(snap, 'option_symbol', None),
        })
    return pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)


def summarize_by_asset_type(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate snapshot rows per asset type.

    cost_basis is summed as a magnitude so net-credit strategies add to
    the capital at risk. unrealized_pl_percent is 0 where there is no
    cost basis.

    Returns:
        DataFrame indexed by asset_type with SUMMARY_COLUMNS
    """
    if frame.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS, index=pd.Index([], name='asset_type'))

    working = frame.assign(cost_basis=frame['cost_basis'].abs())
    grouped = working.groupby('asset_type').agg(
        positions=('symbol', 'size'),
        live_quotes=('has_live_quote', 'sum'),
        market_value=('market_value', 'sum'),
        cost_basis=('cost_basis', 'sum'),
        unrealized_pl=('unrealized_pl', 'sum'),
    )

    basis = grouped['cost_basis'].to_numpy(dtype=float)
    pl = grouped['unrealized_pl'].to_numpy(dtype=float)
    grouped['unrealized_pl_percent'] = np.divide(
        pl * 100, basis, out=np.zeros_like(pl), where=basis > 0
    )
    grouped['live_quotes'] = grouped['live_quotes'].astype(int)

    logger.debug(f"Summarized {len(frame)} snapshots into {len(grouped)} asset types")
    return grouped[SUMMARY_COLUMNS]


def portfolio_totals(frame: pd.DataFrame) -> dict:
    """Whole-portfolio totals with a guarded unrealized percent"""
    if frame.empty:
        return {col: 0 for col in SUMMARY_COLUMNS}

    cost_basis = float(frame['cost_basis'].abs().sum())
    unrealized_pl = float(frame['unrealized_pl'].sum())
    return {
        'positions': int(len(frame)),
        'live_quotes': int(frame['has_live_quote'].sum()),
        'market_value': float(frame['market_value'].sum()),
        'cost_basis': cost_basis,
        'unrealized_pl': unrealized_pl,
        'unrealized_pl_percent': unrealized_pl / cost_basis * 100 if cost_basis > 0 else 0.0,
    }
