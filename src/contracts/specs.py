"""
Contract specification lookup for futures valuation.

Specs normally live in the application database; this module provides the
read-only, in-memory view the valuation engine consumes. A user-specific
override table can be layered over the system defaults; overrides replace
the default row for the same symbol.

Usage:
    >>> spec_db = ContractSpecDB.load('data/contract_specs.csv')
    >>> es = spec_db.get('ES')
    >>> es.multiplier
    50.0
    >>> user_db = spec_db.with_overrides(user_specs_df)
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

import pandas as pd

from src.core.models import ContractSpecification


logger = logging.getLogger(__name__)


# Display names for common roots when no spec row is available
CONTRACT_NAMES: Dict[str, str] = {
    'ES': 'E-mini S&P 500',
    'NQ': 'E-mini Nasdaq-100',
    'YM': 'E-mini Dow',
    'RTY': 'E-mini Russell 2000',
    'CL': 'Crude Oil',
    'GC': 'Gold',
    'SI': 'Silver',
    'ZB': '30-Year Treasury Bond',
    'ZN': '10-Year Treasury Note',
}

# Fallback multipliers by root when neither the position nor a spec has one
DEFAULT_MULTIPLIERS: Dict[str, float] = {
    'ES': 50,
    'NQ': 20,
    'YM': 5,
    'RTY': 50,
    'CL': 1000,
    'GC': 100,
    'SI': 5000,
    'ZB': 1000,
    'ZN': 1000,
}

REQUIRED_COLUMNS = ['symbol', 'multiplier', 'tick_size', 'tick_value']


class IContractSpecRepository(Protocol):
    """
    Protocol for contract spec lookups.

    Resolution of user overrides versus system defaults is the
    repository's job; the engine only asks for the effective spec.
    """

    def get(self, symbol: str) -> Optional[ContractSpecification]:
        """Effective spec for a root symbol, or None if unknown"""
        ...


def _parse_contract_months(value) -> tuple[str, ...]:
    """Accept 'H,M,U,Z', 'HMUZ', "['H', 'M']" or a list of letters."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ()
    if isinstance(value, str):
        return tuple(re.findall(r'[A-Z]', value.upper()))
    return tuple(str(v).strip().upper() for v in value)


def _optional(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _optional_str(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    value = str(value).strip()
    return value or None


def _parse_bool(value) -> bool:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return True
    if isinstance(value, str):
        return value.strip().lower() not in ('false', '0', 'no', 'f')
    return bool(value)


def spec_from_row(row) -> ContractSpecification:
    """
    Build a ContractSpecification from a dict or DataFrame row.

    Raises:
        ValueError: If sizing fields are missing or non-positive
    """
    symbol = str(row['symbol']).strip().upper()
    return ContractSpecification(
        symbol=symbol,
        name=_optional_str(row.get('name')) or symbol,
        exchange=_optional_str(row.get('exchange')),
        multiplier=float(row['multiplier']),
        tick_size=float(row['tick_size']),
        tick_value=float(row['tick_value']),
        initial_margin=_optional(row.get('initial_margin')),
        maintenance_margin=_optional(row.get('maintenance_margin')),
        contract_months=_parse_contract_months(row.get('contract_months')),
        fees_per_contract=_optional(row.get('fees_per_contract')) or 0.0,
        is_active=_parse_bool(row.get('is_active')),
        description=_optional_str(row.get('description')),
    )


class ContractSpecDB:
    """
    In-memory contract spec repository.

    Specs are converted to frozen ContractSpecification objects once at
    construction and keyed by upper-case root symbol.
    """

    def __init__(self, df: pd.DataFrame):
        """
        Initialize database from DataFrame.

        Args:
            df: DataFrame with at least [symbol, multiplier, tick_size, tick_value]

        Raises:
            ValueError: If required columns are missing or a row is invalid
        """
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Contract spec table missing columns: {missing}")

        self.df = df.copy()
        self.df['symbol'] = self.df['symbol'].astype(str).str.strip().str.upper()
        self.df = self.df.drop_duplicates(subset='symbol', keep='last').reset_index(drop=True)

        self._specs: Dict[str, ContractSpecification] = {}
        for record in self.df.to_dict('records'):
            spec = spec_from_row(record)
            self._specs[spec.symbol] = spec

        logger.info(f"Loaded {len(self._specs)} contract specs")

    @classmethod
    def load(cls, file_path: str) -> 'ContractSpecDB':
        """
        Load contract specs from a CSV or Parquet file.

        Args:
            file_path: Path to specs file (.csv or .parquet)

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Contract spec file not found: {path}")

        logger.info(f"Loading contract specs from {path}...")

        if path.suffix == '.parquet':
            df = pd.read_parquet(path)
        else:
            df = pd.read_csv(path)

        return cls(df)

    @classmethod
    def from_specs(cls, specs: Iterable[ContractSpecification]) -> 'ContractSpecDB':
        rows = []
        for spec in specs:
            rows.append({
                'symbol': spec.symbol,
                'name': spec.name,
                'exchange': spec.exchange,
                'multiplier': spec.multiplier,
                'tick_size': spec.tick_size,
                'tick_value': spec.tick_value,
                'initial_margin': spec.initial_margin,
                'maintenance_margin': spec.maintenance_margin,
                'contract_months': ','.join(spec.contract_months),
                'fees_per_contract': spec.fees_per_contract,
                'is_active': spec.is_active,
                'description': spec.description,
            })
        return cls(pd.DataFrame(rows, columns=list(rows[0].keys()) if rows else REQUIRED_COLUMNS))

    def with_overrides(self, overrides: pd.DataFrame) -> 'ContractSpecDB':
        """
        New database with override rows replacing defaults per symbol.

        The current instance is left untouched.
        """
        if overrides.empty:
            return ContractSpecDB(self.df)
        combined = pd.concat([self.df, overrides], ignore_index=True)
        logger.info(f"Applying {len(overrides)} contract spec overrides")
        return ContractSpecDB(combined)

    def get(self, symbol: str) -> Optional[ContractSpecification]:
        """
        Spec for a root symbol (case-insensitive).

        Returns:
            ContractSpecification, or None if the symbol is unknown
        """
        if not symbol:
            return None
        return self._specs.get(symbol.strip().upper())

    def __contains__(self, symbol: str) -> bool:
        return self.get(symbol) is not None

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def symbols(self) -> List[str]:
        return sorted(self._specs)

    def active_specs(self) -> List[ContractSpecification]:
        """Active specs sorted by symbol"""
        return [self._specs[s] for s in self.symbols if self._specs[s].is_active]
