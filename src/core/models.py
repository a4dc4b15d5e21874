"""
Core data models for the position valuation engine.

This module defines immutable data structures for:
- ContractSpecification: Static per-symbol futures contract facts
- PositionRecord: Loose stored position shape handed over by persistence
- Leg: Single option contract within a multi-leg strategy
- StockPosition / CryptoPosition / OptionPosition / FuturesPosition /
  StrategyPosition: Validated position variants tagged by asset type
- ValuationResult: Pre-trade notional / margin / leverage preview
- *Snapshot: Derived per-asset-class views with cost basis and P&L
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union


class InvalidPositionError(ValueError):
    """Stored position is missing fields its asset class requires."""


class AssetType(Enum):
    """Asset classes tracked by the journal"""
    STOCK = "stock"
    OPTION = "option"
    CRYPTO = "crypto"
    FUTURES = "futures"
    CASH = "cash"


class OptionType(Enum):
    CALL = "call"
    PUT = "put"


class PositionSide(Enum):
    LONG = "long"
    SHORT = "short"


class PositionStatus(Enum):
    """Lifecycle status of a stored position"""
    OPEN = "open"
    CLOSED = "closed"
    EXPIRED = "expired"
    ASSIGNED = "assigned"
    EXERCISED = "exercised"


VALID_MONTH_LETTERS = frozenset("FGHJKMNQUVXZ")


def _coerce_enum(enum_cls, value):
    """Accept enum members or their (case-insensitive) string values."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def _optional_float(value) -> Optional[float]:
    """Convert to float, mapping None / NaN / empty string to None."""
    if value is None or value == "":
        return None
    result = float(value)
    if result != result:  # NaN from DataFrame rows
        return None
    return result


@dataclass(frozen=True)
class ContractSpecification:
    """
    Static facts about one futures contract root.

    Read-only to the calculation core. The same instance is shared across
    every valuation of that root, so it is frozen.
    """
    symbol: str                                   # Root symbol (ES, NQ, CL)
    name: str = ""                                # Display name
    exchange: Optional[str] = None                # CME, CBOT, NYMEX, COMEX
    multiplier: float = 1.0                       # Dollars per 1.0 price point
    tick_size: float = 0.01                       # Minimum price increment
    tick_value: float = 0.01                      # Dollar value of one tick
    initial_margin: Optional[float] = None        # USD per contract
    maintenance_margin: Optional[float] = None    # USD per contract
    contract_months: tuple[str, ...] = ()         # Valid month letter codes
    fees_per_contract: float = 0.0                # Typical fees per contract
    is_active: bool = True                        # Currently tradeable
    description: Optional[str] = None

    def __post_init__(self):
        """Validate contract sizing fields"""
        if self.multiplier <= 0:
            raise ValueError(f"{self.symbol}: multiplier must be positive, got {self.multiplier}")
        if self.tick_size <= 0:
            raise ValueError(f"{self.symbol}: tick_size must be positive, got {self.tick_size}")
        if self.tick_value <= 0:
            raise ValueError(f"{self.symbol}: tick_value must be positive, got {self.tick_value}")
        invalid = [m for m in self.contract_months if m not in VALID_MONTH_LETTERS]
        if invalid:
            raise ValueError(f"{self.symbol}: invalid contract month codes {invalid}")

    def margin_per_contract(self, basis: str = 'initial') -> Optional[float]:
        """Margin per contract for 'initial' or 'maintenance' basis"""
        if basis == 'maintenance':
            return self.maintenance_margin
        return self.initial_margin


@dataclass(frozen=True)
class Leg:
    """
    One option contract within a multi-leg strategy.

    Owned by its parent StrategyPosition. Long legs are debits (positive
    signed cost), short legs are credits (negative signed cost).
    """
    option_type: OptionType
    direction: PositionSide
    quantity: float
    strike_price: float
    expiration_date: Optional[str]   # YYYY-MM-DD
    entry_price: float

    def __post_init__(self):
        object.__setattr__(self, 'option_type', _coerce_enum(OptionType, self.option_type))
        object.__setattr__(self, 'direction', _coerce_enum(PositionSide, self.direction))
        if self.option_type is None:
            raise InvalidPositionError("Leg is missing a valid option_type")
        if self.direction is None:
            raise InvalidPositionError("Leg is missing a valid direction")

    @property
    def is_long(self) -> bool:
        return self.direction is PositionSide.LONG

    @property
    def signed_cost(self) -> float:
        """entry_price * quantity, positive for long legs, negative for short"""
        sign = 1 if self.is_long else -1
        return self.entry_price * self.quantity * sign

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Leg':
        return cls(
            option_type=data.get('option_type'),
            direction=data.get('direction'),
            quantity=float(data.get('quantity') or 0),
            strike_price=float(data.get('strike_price') or 0),
            expiration_date=data.get('expiration_date'),
            entry_price=float(data.get('entry_price') or 0),
        )


@dataclass(frozen=True)
class PositionRecord:
    """
    Stored position exactly as the persistence layer hands it over.

    Asset-class-specific fields are optional here. Conversion into one of the
    typed position variants is where required fields are enforced.
    """
    symbol: str
    asset_type: str
    side: str
    quantity: float
    average_opening_price: float
    total_cost_basis: float                  # Cash-flow signed (credit > 0)
    id: Optional[str] = None
    # Options
    option_type: Optional[str] = None
    strike_price: Optional[float] = None
    expiration_date: Optional[str] = None
    # Futures
    contract_month: Optional[str] = None
    multiplier: Optional[float] = None
    tick_size: Optional[float] = None
    tick_value: Optional[float] = None
    margin_requirement: Optional[float] = None
    # P&L bookkeeping
    unrealized_pl: Optional[float] = None
    realized_pl: Optional[float] = None
    status: Optional[str] = None
    strategy_id: Optional[str] = None
    # Multi-leg strategies
    legs: tuple[Leg, ...] = ()
    quantity_multiplier: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PositionRecord':
        """
        Build a record from a dict or DataFrame row.

        Unknown keys are ignored. Empty strings and NaN become None.
        Legs may be given as Leg instances or dicts.
        """
        names = {f.name for f in fields(cls)}
        kwargs = {}
        for key in names:
            if key not in data:
                continue
            value = data[key]
            if isinstance(value, float) and value != value:
                value = None
            if value == "":
                value = None
            kwargs[key] = value

        for key in ('strike_price', 'multiplier', 'tick_size', 'tick_value',
                    'margin_requirement', 'unrealized_pl', 'realized_pl',
                    'quantity_multiplier'):
            if key in kwargs:
                kwargs[key] = _optional_float(kwargs[key])

        if kwargs.get('id') is not None:
            kwargs['id'] = str(kwargs['id'])

        kwargs['quantity'] = float(kwargs.get('quantity') or 0)
        kwargs['average_opening_price'] = float(kwargs.get('average_opening_price') or 0)
        kwargs['total_cost_basis'] = float(kwargs.get('total_cost_basis') or 0)

        legs = kwargs.get('legs') or ()
        kwargs['legs'] = tuple(
            leg if isinstance(leg, Leg) else Leg.from_dict(leg) for leg in legs
        )
        return cls(**kwargs)


@dataclass(frozen=True)
class _BasePosition:
    """Fields shared by every validated position variant"""
    asset_type: ClassVar[AssetType]

    symbol: str
    side: PositionSide
    quantity: float
    average_opening_price: float
    total_cost_basis: float
    id: Optional[str] = None

    def __post_init__(self):
        side = _coerce_enum(PositionSide, self.side)
        if side is None:
            raise InvalidPositionError(
                f"Invalid {self.asset_type.value} position {self.symbol}: "
                f"side must be 'long' or 'short', got {self.side!r}"
            )
        object.__setattr__(self, 'side', side)

    @property
    def cost_basis(self) -> float:
        """Magnitude of the stored cost basis"""
        return abs(self.total_cost_basis)


@dataclass(frozen=True)
class StockPosition(_BasePosition):
    asset_type: ClassVar[AssetType] = AssetType.STOCK


@dataclass(frozen=True)
class CryptoPosition(_BasePosition):
    asset_type: ClassVar[AssetType] = AssetType.CRYPTO


@dataclass(frozen=True)
class OptionPosition(_BasePosition):
    """Single-leg listed option. Type, strike and expiration are required."""
    asset_type: ClassVar[AssetType] = AssetType.OPTION

    option_type: Optional[OptionType] = None
    strike_price: Optional[float] = None
    expiration_date: Optional[str] = None
    multiplier: Optional[float] = None

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, 'option_type', _coerce_enum(OptionType, self.option_type))
        missing = [
            name for name in ('option_type', 'strike_price', 'expiration_date')
            if not getattr(self, name)
        ]
        if missing:
            raise InvalidPositionError(
                f"Invalid option position {self.symbol}: missing required fields {missing}"
            )


@dataclass(frozen=True)
class FuturesPosition(_BasePosition):
    """
    Futures position. Expiration may be absent here; the snapshot builder
    resolves it from the contract month and fails if it cannot.
    """
    asset_type: ClassVar[AssetType] = AssetType.FUTURES

    contract_month: Optional[str] = None
    expiration_date: Optional[str] = None
    multiplier: Optional[float] = None
    tick_size: Optional[float] = None
    tick_value: Optional[float] = None
    margin_requirement: Optional[float] = None


@dataclass(frozen=True)
class StrategyPosition(_BasePosition):
    """
    Multi-leg option strategy priced and closed as one unit.

    side is the strategy direction (long = bought the package, short = sold).
    quantity_multiplier scales the per-unit leg costs and strategy price.
    """
    asset_type: ClassVar[AssetType] = AssetType.OPTION

    legs: tuple[Leg, ...] = ()
    quantity_multiplier: float = 1.0

    def __post_init__(self):
        super().__post_init__()
        if not self.legs:
            raise InvalidPositionError(
                f"Invalid strategy position {self.symbol}: legs must be non-empty"
            )

    @property
    def strategy_cost_basis(self) -> float:
        """Signed net cost of all legs scaled by quantity_multiplier"""
        return sum(leg.signed_cost for leg in self.legs) * self.quantity_multiplier

    @property
    def is_credit(self) -> bool:
        return self.strategy_cost_basis < 0


Position = Union[StockPosition, CryptoPosition, OptionPosition, FuturesPosition, StrategyPosition]


@dataclass(frozen=True)
class ValuationResult:
    """
    Pre-trade preview for a futures order. Never persisted.

    margin_required and leverage are None when the contract has no margin
    configured for the requested basis.
    """
    notional_value: float
    margin_required: Optional[float]
    total_fees: float
    leverage: Optional[float]


@dataclass(frozen=True)
class _BaseSnapshot:
    symbol: str
    side: PositionSide
    quantity: float
    average_price: float
    current_price: float
    market_value: float
    cost_basis: float
    unrealized_pl: float
    unrealized_pl_percent: float
    has_live_quote: bool
    id: Optional[str] = None


@dataclass(frozen=True)
class StockSnapshot(_BaseSnapshot):
    asset_type: ClassVar[AssetType] = AssetType.STOCK


@dataclass(frozen=True)
class CryptoSnapshot(_BaseSnapshot):
    asset_type: ClassVar[AssetType] = AssetType.CRYPTO

    name: str = ""


@dataclass(frozen=True)
class OptionSnapshot(_BaseSnapshot):
    """Single-leg option view. Greeks are never estimated and stay None."""
    asset_type: ClassVar[AssetType] = AssetType.OPTION

    option_symbol: str = ""
    occ_symbol: str = ""
    option_type: Optional[OptionType] = None
    strike_price: float = 0.0
    expiration_date: str = ""
    multiplier: float = 100.0
    delta: Optional[float] = None
    gamma: Optional[float] = None
    theta: Optional[float] = None
    vega: Optional[float] = None
    implied_volatility: Optional[float] = None


@dataclass(frozen=True)
class FuturesSnapshot(_BaseSnapshot):
    asset_type: ClassVar[AssetType] = AssetType.FUTURES

    contract_name: str = ""
    contract_month: str = ""
    expiration_date: str = ""
    multiplier: float = 50.0
    tick_size: float = 0.25
    tick_value: float = 12.50
    margin_requirement: float = 0.0
    ticks_moved: float = 0.0


@dataclass(frozen=True)
class StrategySnapshot(_BaseSnapshot):
    """
    Multi-leg strategy view.

    cost_basis is signed here: negative for a net credit. The percent uses
    its magnitude so credits do not flip the sign of the return.
    """
    asset_type: ClassVar[AssetType] = AssetType.OPTION

    legs: tuple[Leg, ...] = field(default_factory=tuple)
    quantity_multiplier: float = 1.0
    num_legs: int = 0


Snapshot = Union[StockSnapshot, CryptoSnapshot, OptionSnapshot, FuturesSnapshot, StrategySnapshot]
