"""Position snapshots and portfolio aggregation"""

from src.portfolio.snapshots import build_snapshot, build_snapshots, position_from_record
from src.portfolio.realized import aggregate_realized_pl, adjusted_realized_pl

__all__ = [
    'build_snapshot',
    'build_snapshots',
    'position_from_record',
    'aggregate_realized_pl',
    'adjusted_realized_pl',
]
