"""
Shared pytest fixtures for unit tests.

This module provides reusable test fixtures including:
- Contract specifications loaded from the CSV seed table
- Stored position records and quotes loaded from CSV exports
- Hand-built positions for the common asset classes
"""

import json
import sys
from pathlib import Path
from typing import Dict, List

import pytest
import pandas as pd

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.config import EngineConfig
from src.contracts.specs import ContractSpecDB
from src.core.models import (
    ContractSpecification,
    Leg,
    PositionRecord,
    StrategyPosition,
)

# Fixture directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


# =============================================================================
# Helper Functions
# =============================================================================

def load_position_records_from_csv(csv_filename: str) -> List[PositionRecord]:
    """
    Load stored position records from CSV fixture file.

    The 'legs' column holds a JSON list for multi-leg strategies.

    Raises:
        FileNotFoundError: If CSV file doesn't exist
    """
    csv_path = FIXTURES_DIR / csv_filename

    if not csv_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {csv_path}")

    df = pd.read_csv(csv_path)

    records = []
    for row in df.to_dict('records'):
        legs = row.get('legs')
        row['legs'] = json.loads(legs) if isinstance(legs, str) else ()
        records.append(PositionRecord.from_dict(row))

    return records


def load_quotes_from_csv(csv_filename: str) -> Dict[str, float]:
    """Quotes fixture as {symbol: price}; blank prices stay NaN"""
    df = pd.read_csv(FIXTURES_DIR / csv_filename)
    return dict(zip(df['symbol'], df['price']))


# =============================================================================
# Contract Spec Fixtures
# =============================================================================

@pytest.fixture
def spec_csv_file() -> str:
    """Path to the contract spec seed table"""
    return str(FIXTURES_DIR / "contract_specs.csv")


@pytest.fixture
def spec_db(spec_csv_file) -> ContractSpecDB:
    """ContractSpecDB loaded from the seed table (12 roots, ZC inactive)"""
    return ContractSpecDB.load(spec_csv_file)


@pytest.fixture
def es_spec() -> ContractSpecification:
    """E-mini S&P 500 spec: $50/point, 0.25 tick = $12.50"""
    return ContractSpecification(
        symbol='ES',
        name='E-mini S&P 500',
        exchange='CME',
        multiplier=50,
        tick_size=0.25,
        tick_value=12.50,
        initial_margin=13200,
        maintenance_margin=12000,
        contract_months=('H', 'M', 'U', 'Z'),
        fees_per_contract=2.50,
    )


@pytest.fixture
def no_margin_spec() -> ContractSpecification:
    """Contract with no margin configured"""
    return ContractSpecification(
        symbol='ZC',
        name='Corn',
        multiplier=50,
        tick_size=0.25,
        tick_value=12.50,
        fees_per_contract=3.00,
    )


# =============================================================================
# Position Fixtures
# =============================================================================

@pytest.fixture
def position_records() -> List[PositionRecord]:
    """
    One stored position per asset class:
    p1 AAPL stock, p2 BTC crypto, p3 TSLA short put, p4 ESH25 long futures,
    p5 CL short futures (Z25, no quote), p6 SPY two-leg credit strategy
    """
    return load_position_records_from_csv("positions.csv")


@pytest.fixture
def quotes() -> Dict[str, float]:
    """Live quotes: AAPL, TSLA put (OCC key), ESH25, strategy p6; BTC blank"""
    return load_quotes_from_csv("quotes.csv")


@pytest.fixture
def credit_strategy() -> StrategyPosition:
    """
    Short call 430 @1.25 + long put 420 @0.75, sold as a package.

    Net credit of 0.50 per unit -> strategy cost basis -0.50.
    """
    return StrategyPosition(
        id='s1',
        symbol='SPY',
        side='short',
        quantity=1,
        average_opening_price=-0.50,
        total_cost_basis=50,
        legs=(
            Leg(option_type='call', direction='short', quantity=1,
                strike_price=430, expiration_date='2025-03-21', entry_price=1.25),
            Leg(option_type='put', direction='long', quantity=1,
                strike_price=420, expiration_date='2025-03-21', entry_price=0.75),
        ),
        quantity_multiplier=1,
    )


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()
