"""
Value stored positions against a quote file and write snapshots.

Reads a positions export (one row per stored position), optional quotes
and contract specs, builds a snapshot per position and saves the snapshot
table. A per-asset-type summary is printed to the console.

Input Formats:
    positions: id,symbol,asset_type,side,quantity,average_opening_price,
               total_cost_basis[,option_type,strike_price,expiration_date,
               contract_month,multiplier,tick_size,tick_value,
               margin_requirement,quantity_multiplier,legs]
               (legs is a JSON list of leg objects)
    quotes:    symbol,price
    specs:     symbol,name,exchange,multiplier,tick_size,tick_value,
               initial_margin,maintenance_margin,contract_months,
               fees_per_contract,is_active,description

Usage:
    python scripts/value_positions.py exports/positions.csv --quotes exports/quotes.csv
    python scripts/value_positions.py exports/positions.parquet --specs data/contract_specs.csv \\
        --output results/snapshots.csv --verbose
"""

import sys
import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.config import EngineConfig
from src.contracts.specs import ContractSpecDB
from src.core.models import PositionRecord
from src.portfolio.snapshots import build_snapshots
from src.portfolio.summary import snapshots_to_frame, summarize_by_asset_type, portfolio_totals

logger = logging.getLogger(__name__)


def read_table(file_path: str) -> pd.DataFrame:
    """Read CSV or Parquet based on file extension"""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix == '.parquet':
        return pd.read_parquet(path)
    return pd.read_csv(path)


def load_position_records(file_path: str) -> List[PositionRecord]:
    """Load stored positions; a JSON 'legs' column is decoded per row."""
    df = read_table(file_path)
    logger.info(f"Loaded {len(df):,} positions from {file_path}")

    records = []
    for row in df.to_dict('records'):
        legs = row.get('legs')
        if isinstance(legs, str) and legs.strip():
            row['legs'] = json.loads(legs)
        else:
            row['legs'] = ()
        records.append(PositionRecord.from_dict(row))
    return records


def load_quotes(file_path: Optional[str]) -> Dict[str, float]:
    """Quote table -> {symbol: price}; rows without a price are dropped"""
    if not file_path:
        return {}
    df = read_table(file_path).dropna(subset=['price'])
    quotes = dict(zip(df['symbol'].astype(str), df['price'].astype(float)))
    logger.info(f"Loaded {len(quotes):,} quotes from {file_path}")
    return quotes


def print_summary(summary: pd.DataFrame, totals: dict):
    """Print per-asset-type valuation summary to console"""
    print("\n" + "=" * 80)
    print("POSITION VALUATION")
    print("=" * 80)

    for asset_type, row in summary.iterrows():
        print(f"\n{asset_type.upper()}")
        print(f"  Positions:        {int(row['positions']):>12} ({int(row['live_quotes'])} live)")
        print(f"  Market Value:     ${row['market_value']:>12,.2f}")
        print(f"  Cost Basis:       ${row['cost_basis']:>12,.2f}")
        print(f"  Unrealized P&L:   ${row['unrealized_pl']:>12,.2f} ({row['unrealized_pl_percent']:.2f}%)")

    print("\nTOTAL")
    print(f"  Market Value:     ${totals['market_value']:>12,.2f}")
    print(f"  Unrealized P&L:   ${totals['unrealized_pl']:>12,.2f} ({totals['unrealized_pl_percent']:.2f}%)")
    print("=" * 80 + "\n")


def main():
    parser = argparse.ArgumentParser(
        description='Value stored positions and write snapshots',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            python scripts/value_positions.py exports/positions.csv --quotes exports/quotes.csv
            python scripts/value_positions.py exports/positions.csv --specs data/contract_specs.csv -v
        """
    )

    parser.add_argument('positions', type=str, help='Positions file (.csv or .parquet)')
    parser.add_argument('--quotes', type=str, default=None, help='Quotes file with symbol,price')
    parser.add_argument('--specs', type=str, default=None, help='Contract specs file')
    parser.add_argument('--overrides', type=str, default=None,
                        help='User contract spec overrides (same columns as --specs)')
    parser.add_argument('--config', type=str, default=None, help='Engine JSON config')
    parser.add_argument('--output', type=str, default='results/snapshots.csv',
                        help='Output snapshot CSV (default: results/snapshots.csv)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose (DEBUG) logging')

    args = parser.parse_args()

    try:
        config = EngineConfig.from_json(args.config) if args.config else EngineConfig()
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}")
        sys.exit(1)

    if args.verbose:
        config.logging['level'] = 'DEBUG'
    config.setup_logging()

    try:
        spec_db = None
        if args.specs:
            spec_db = ContractSpecDB.load(args.specs)
            if args.overrides:
                spec_db = spec_db.with_overrides(read_table(args.overrides))

        records = load_position_records(args.positions)
        quotes = load_quotes(args.quotes)

        snapshots = build_snapshots(records, quotes, specs=spec_db, config=config)
        frame = snapshots_to_frame(snapshots)

        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(output_path, index=False)
        logger.info(f"Saved {len(frame):,} snapshots to {output_path}")

        print_summary(summarize_by_asset_type(frame), portfolio_totals(frame))

    except Exception as e:
        logger.error(f"Valuation failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
