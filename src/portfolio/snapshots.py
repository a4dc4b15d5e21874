"""
Position snapshot builder: stored position + live quote -> valuation view.

Key Design Principle:
- Builders are PURE FUNCTIONS: position record + quote + specs -> snapshot
- NO I/O, no caching, inputs are never modified
- Same code serves table views, dashboards and transaction-entry previews

Single-leg rule (stocks, crypto, options, futures):
    cost_basis          = |total_cost_basis|
    market_value        = |quantity| * multiplier * current_price
    unrealized_pl       = market_value - cost_basis   (long)
                          cost_basis - market_value   (short)
    unrealized_pl_pct   = unrealized_pl / cost_basis * 100  (0 if no basis)

Multi-leg rule (option strategies priced as one unit):
    cost_basis          = sum(leg signed cost) * quantity_multiplier
    current_value       = strategy_price * quantity_multiplier
    unrealized_pl       = current_value - cost_basis  (long)
                          cost_basis - current_value  (short)
    unrealized_pl_pct   = unrealized_pl / |cost_basis| * 100

Without a live quote, current_price falls back to the average opening
price and unrealized P&L is exactly 0. Missing market data never produces
a P&L figure.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

from src.config import EngineConfig
from src.contracts.calendar import (
    calculate_expiration_date,
    contract_month_from_symbol,
    normalize_contract_month,
    parse_contract_symbol,
)
from src.contracts.specs import CONTRACT_NAMES, DEFAULT_MULTIPLIERS, IContractSpecRepository
from src.core.models import (
    AssetType,
    CryptoPosition,
    CryptoSnapshot,
    FuturesPosition,
    FuturesSnapshot,
    InvalidPositionError,
    OptionPosition,
    OptionSnapshot,
    OptionType,
    Position,
    PositionRecord,
    PositionSide,
    Snapshot,
    StockPosition,
    StockSnapshot,
    StrategyPosition,
    StrategySnapshot,
)
from src.valuation.calculator import (
    calculate_futures_value,
    calculate_margin_requirement,
    safe_percent,
)


logger = logging.getLogger(__name__)

Quotes = Mapping[str, Optional[float]]

CRYPTO_NAMES = {
    'BTC': 'Bitcoin',
    'ETH': 'Ethereum',
    'SOL': 'Solana',
    'ADA': 'Cardano',
    'DOT': 'Polkadot',
    'MATIC': 'Polygon',
    'AVAX': 'Avalanche',
    'LINK': 'Chainlink',
    'UNI': 'Uniswap',
    'AAVE': 'Aave',
}


@dataclass(frozen=True)
class _Marks:
    """Figures shared by every snapshot type"""
    current_price: float
    market_value: float
    cost_basis: float
    unrealized_pl: float
    unrealized_pl_percent: float
    has_live_quote: bool


def _directional_pl(side: PositionSide, current_value: float, cost_basis: float) -> float:
    if side is PositionSide.LONG:
        return current_value - cost_basis
    return cost_basis - current_value


def _mark_single_leg(position: Position, multiplier: float, live_price: Optional[float]) -> _Marks:
    """Apply the single-leg rule to one position."""
    cost_basis = position.cost_basis

    if live_price is None:
        current_price = position.average_opening_price
        market_value = calculate_futures_value(current_price, abs(position.quantity), multiplier)
        return _Marks(current_price, market_value, cost_basis, 0.0, 0.0, False)

    market_value = calculate_futures_value(live_price, abs(position.quantity), multiplier)
    unrealized_pl = _directional_pl(position.side, market_value, cost_basis)
    unrealized_pl_percent = safe_percent(unrealized_pl, cost_basis) if cost_basis > 0 else 0.0
    return _Marks(live_price, market_value, cost_basis, unrealized_pl, unrealized_pl_percent, True)


def get_quote(quotes: Optional[Quotes], *keys: Optional[str]) -> Optional[float]:
    """
    First usable price among keys.

    Missing keys, None and NaN all count as "no live quote".
    """
    if not quotes:
        return None
    for key in keys:
        if key is None or key == '':
            continue
        key = str(key)
        price = quotes.get(key)
        if price is None:
            price = quotes.get(key.upper())
        if price is None:
            continue
        price = float(price)
        if price != price:
            continue
        return price
    return None


def _format_strike(strike: float) -> str:
    """155.0 -> '155', 47.5 -> '47.5'"""
    return ('%f' % strike).rstrip('0').rstrip('.')


def build_option_symbol(
    underlying: str,
    expiration_date: str,
    option_type: Union[OptionType, str],
    strike_price: float
) -> str:
    """
    Canonical journal identifier for a single option contract.

    Example:
        >>> build_option_symbol('AAPL', '2025-03-21', 'call', 155)
        'AAPL_2025-03-21_CALL_155'
    """
    if isinstance(option_type, OptionType):
        option_type = option_type.value
    return f"{underlying}_{expiration_date}_{option_type.upper()}_{_format_strike(strike_price)}"


def build_occ_option_symbol(
    underlying: str,
    expiration_date: str,
    option_type: Union[OptionType, str],
    strike_price: float
) -> str:
    """
    OCC-style option symbol used by quote providers.

    Format: {ROOT}{YYMMDD}{C|P}{strike * 1000, zero-padded to 8}

    Example:
        >>> build_occ_option_symbol('AAPL', '2024-03-22', 'call', 180)
        'AAPL240322C00180000'

    Raises:
        ValueError: If expiration_date is not YYYY-MM-DD
    """
    parts = str(expiration_date).split('-')
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid expiration date format: {expiration_date}. Expected YYYY-MM-DD")

    year, month, day = parts
    exp_str = f"{year[-2:]}{month.zfill(2)}{day.zfill(2)}"

    if isinstance(option_type, OptionType):
        option_type = option_type.value
    type_char = 'C' if option_type.upper() == 'CALL' else 'P'

    strike_str = str(round(strike_price * 1000)).zfill(8)

    return f"{underlying.strip().upper()}{exp_str}{type_char}{strike_str}"


def position_from_record(record: Union[PositionRecord, Mapping[str, Any]]) -> Position:
    """
    Convert a stored record into its typed position variant.

    Records with legs become StrategyPosition regardless of their option
    fields. Validation of required fields happens in the variant's
    constructor.

    Raises:
        InvalidPositionError: Unknown asset type or missing required fields
    """
    if not isinstance(record, PositionRecord):
        record = PositionRecord.from_dict(record)

    try:
        asset_type = AssetType(str(record.asset_type).strip().lower())
    except ValueError:
        raise InvalidPositionError(
            f"Unsupported asset type {record.asset_type!r} for position {record.symbol}"
        ) from None

    common = dict(
        symbol=record.symbol,
        side=record.side,
        quantity=record.quantity,
        average_opening_price=record.average_opening_price,
        total_cost_basis=record.total_cost_basis,
        id=record.id,
    )

    if record.legs:
        average_price = record.average_opening_price
        if not average_price:
            # Net per-unit entry price of the package
            average_price = sum(leg.signed_cost for leg in record.legs)
        common['average_opening_price'] = average_price
        return StrategyPosition(
            legs=tuple(record.legs),
            quantity_multiplier=record.quantity_multiplier or 1.0,
            **common,
        )

    if asset_type is AssetType.STOCK:
        return StockPosition(**common)

    if asset_type is AssetType.CRYPTO:
        return CryptoPosition(**common)

    if asset_type is AssetType.OPTION:
        return OptionPosition(
            option_type=record.option_type,
            strike_price=record.strike_price,
            expiration_date=record.expiration_date,
            multiplier=record.multiplier,
            **common,
        )

    if asset_type is AssetType.FUTURES:
        return FuturesPosition(
            contract_month=record.contract_month,
            expiration_date=record.expiration_date,
            multiplier=record.multiplier,
            tick_size=record.tick_size,
            tick_value=record.tick_value,
            margin_requirement=record.margin_requirement,
            **common,
        )

    raise InvalidPositionError(
        f"No snapshot available for asset type {asset_type.value} ({record.symbol})"
    )


def build_stock_snapshot(position: StockPosition, current_price: Optional[float] = None) -> StockSnapshot:
    """Stock snapshot; multiplier is 1."""
    marks = _mark_single_leg(position, 1.0, current_price)
    return StockSnapshot(
        id=position.id,
        symbol=position.symbol,
        side=position.side,
        quantity=position.quantity,
        average_price=position.average_opening_price,
        current_price=marks.current_price,
        market_value=marks.market_value,
        cost_basis=marks.cost_basis,
        unrealized_pl=marks.unrealized_pl,
        unrealized_pl_percent=marks.unrealized_pl_percent,
        has_live_quote=marks.has_live_quote,
    )


def build_crypto_snapshot(position: CryptoPosition, current_price: Optional[float] = None) -> CryptoSnapshot:
    """Crypto snapshot; multiplier is 1, name from a fixed table."""
    marks = _mark_single_leg(position, 1.0, current_price)
    return CryptoSnapshot(
        id=position.id,
        symbol=position.symbol,
        name=CRYPTO_NAMES.get(position.symbol.upper(), position.symbol),
        side=position.side,
        quantity=position.quantity,
        average_price=position.average_opening_price,
        current_price=marks.current_price,
        market_value=marks.market_value,
        cost_basis=marks.cost_basis,
        unrealized_pl=marks.unrealized_pl,
        unrealized_pl_percent=marks.unrealized_pl_percent,
        has_live_quote=marks.has_live_quote,
    )


def build_option_snapshot(
    position: OptionPosition,
    quotes: Optional[Quotes] = None,
    config: Optional[EngineConfig] = None
) -> OptionSnapshot:
    """
    Single-leg option snapshot.

    The live quote is looked up by OCC symbol first, then by the journal
    option symbol. Greeks are left unset.

    Raises:
        InvalidPositionError: If the expiration date is malformed
    """
    config = config or EngineConfig()
    multiplier = position.multiplier or config.option_multiplier

    option_symbol = build_option_symbol(
        position.symbol, position.expiration_date, position.option_type, position.strike_price
    )
    try:
        occ_symbol = build_occ_option_symbol(
            position.symbol, position.expiration_date, position.option_type, position.strike_price
        )
    except ValueError as e:
        raise InvalidPositionError(f"Invalid option position {position.symbol}: {e}") from e

    live_price = get_quote(quotes, occ_symbol, option_symbol)
    if live_price is None:
        logger.debug(f"No live quote for {option_symbol}; using average opening price")

    marks = _mark_single_leg(position, multiplier, live_price)
    return OptionSnapshot(
        id=position.id,
        symbol=position.symbol,
        option_symbol=option_symbol,
        occ_symbol=occ_symbol,
        option_type=position.option_type,
        strike_price=position.strike_price,
        expiration_date=position.expiration_date,
        multiplier=multiplier,
        side=position.side,
        quantity=position.quantity,
        average_price=position.average_opening_price,
        current_price=marks.current_price,
        market_value=marks.market_value,
        cost_basis=marks.cost_basis,
        unrealized_pl=marks.unrealized_pl,
        unrealized_pl_percent=marks.unrealized_pl_percent,
        has_live_quote=marks.has_live_quote,
    )


def _futures_root(symbol: str) -> str:
    """'ESH25' -> 'ES'; plain roots pass through upper-cased"""
    symbol = symbol.strip().upper()
    parsed = parse_contract_symbol(symbol)
    return parsed.base_symbol if parsed else symbol


def resolve_contract_month(position: FuturesPosition) -> str:
    """
    Display label for the contract month ('MAR25').

    Uses the stored label (normalized from 'H25' when needed) or falls back
    to parsing the position symbol. Unrecognised stored labels are kept
    as-is; an empty string means nothing could be resolved.
    """
    if position.contract_month:
        normalized = normalize_contract_month(position.contract_month)
        if normalized is None:
            logger.warning(
                f"Unrecognised contract month {position.contract_month!r} for {position.symbol}"
            )
            return position.contract_month
        return normalized
    return contract_month_from_symbol(position.symbol.strip().upper()) or ''


def build_futures_snapshot(
    position: FuturesPosition,
    current_price: Optional[float] = None,
    specs: Optional[IContractSpecRepository] = None,
    config: Optional[EngineConfig] = None
) -> FuturesSnapshot:
    """
    Futures snapshot.

    Sizing fields are taken from the position, then the contract spec, then
    defaults. Expiration is the stored date or is derived from the contract
    month.

    Raises:
        InvalidPositionError: If no expiration date can be resolved
    """
    config = config or EngineConfig()
    root = _futures_root(position.symbol)
    spec = specs.get(root) if specs is not None else None
    if specs is not None and spec is None:
        logger.warning(f"No contract spec for {root}; using position fields and defaults")

    multiplier = (
        position.multiplier
        or (spec.multiplier if spec else None)
        or DEFAULT_MULTIPLIERS.get(root)
        or config.futures_multiplier
    )
    tick_size = position.tick_size or (spec.tick_size if spec else None) or config.futures_tick_size
    tick_value = position.tick_value or (spec.tick_value if spec else None) or config.futures_tick_value

    contract_month = resolve_contract_month(position)
    expiration_date = position.expiration_date
    if not expiration_date and contract_month:
        expiration_date = calculate_expiration_date(contract_month, root)
    if not expiration_date:
        raise InvalidPositionError(
            f"Invalid futures position {position.symbol}: missing expiration date "
            f"and none derivable from contract month {contract_month!r}"
        )

    margin_requirement = position.margin_requirement
    if margin_requirement is None and spec is not None:
        margin_per_contract = spec.margin_per_contract(config.margin_basis)
        if margin_per_contract:
            margin_requirement = calculate_margin_requirement(position.quantity, margin_per_contract)

    marks = _mark_single_leg(position, multiplier, current_price)
    ticks_moved = 0.0
    if marks.has_live_quote:
        ticks_moved = (marks.current_price - position.average_opening_price) / tick_size

    contract_name = (spec.name if spec and spec.name else None) or CONTRACT_NAMES.get(root, position.symbol)

    logger.debug(
        f"{position.symbol} {contract_month}: mv={marks.market_value:,.2f}, "
        f"upl={marks.unrealized_pl:,.2f}, expires {expiration_date}"
    )

    return FuturesSnapshot(
        id=position.id,
        symbol=position.symbol,
        contract_name=contract_name,
        contract_month=contract_month,
        expiration_date=expiration_date,
        multiplier=multiplier,
        tick_size=tick_size,
        tick_value=tick_value,
        margin_requirement=margin_requirement or 0.0,
        ticks_moved=ticks_moved,
        side=position.side,
        quantity=position.quantity,
        average_price=position.average_opening_price,
        current_price=marks.current_price,
        market_value=marks.market_value,
        cost_basis=marks.cost_basis,
        unrealized_pl=marks.unrealized_pl,
        unrealized_pl_percent=marks.unrealized_pl_percent,
        has_live_quote=marks.has_live_quote,
    )


def build_strategy_snapshot(
    position: StrategyPosition,
    current_price: Optional[float] = None
) -> StrategySnapshot:
    """
    Multi-leg strategy snapshot.

    The strategy is repriced as one unit from current_price (the package
    quote), not leg by leg. A net-credit strategy has a negative cost basis;
    the percent divides by its magnitude.

    Example:
        >>> # Short 430 call @1.25, long 420 put @0.75, sold as a package
        >>> snap = build_strategy_snapshot(position, current_price=2.25)
        >>> snap.cost_basis
        -0.5
    """
    qm = position.quantity_multiplier
    cost_basis = position.strategy_cost_basis

    if current_price is None:
        price = position.average_opening_price
        return StrategySnapshot(
            id=position.id,
            symbol=position.symbol,
            side=position.side,
            quantity=position.quantity,
            average_price=position.average_opening_price,
            current_price=price,
            market_value=price * qm,
            cost_basis=cost_basis,
            unrealized_pl=0.0,
            unrealized_pl_percent=0.0,
            has_live_quote=False,
            legs=position.legs,
            quantity_multiplier=qm,
            num_legs=len(position.legs),
        )

    current_value = current_price * qm
    unrealized_pl = _directional_pl(position.side, current_value, cost_basis)
    unrealized_pl_percent = safe_percent(unrealized_pl, abs(cost_basis))

    return StrategySnapshot(
        id=position.id,
        symbol=position.symbol,
        side=position.side,
        quantity=position.quantity,
        average_price=position.average_opening_price,
        current_price=current_price,
        market_value=current_value,
        cost_basis=cost_basis,
        unrealized_pl=unrealized_pl,
        unrealized_pl_percent=unrealized_pl_percent,
        has_live_quote=True,
        legs=position.legs,
        quantity_multiplier=qm,
        num_legs=len(position.legs),
    )


def build_snapshot(
    position: Union[Position, PositionRecord, Mapping[str, Any]],
    quotes: Optional[Quotes] = None,
    specs: Optional[IContractSpecRepository] = None,
    config: Optional[EngineConfig] = None
) -> Snapshot:
    """
    Build the asset-class-specific snapshot for one position.

    Quote keys: stocks and crypto by symbol, futures by full contract symbol
    (then root), options by OCC or journal option symbol, strategies by
    position id.

    Raises:
        InvalidPositionError: If the position is malformed for its asset class
    """
    if isinstance(position, (PositionRecord, Mapping)):
        position = position_from_record(position)

    if isinstance(position, StrategyPosition):
        return build_strategy_snapshot(position, get_quote(quotes, position.id))

    if isinstance(position, OptionPosition):
        return build_option_snapshot(position, quotes, config)

    if isinstance(position, FuturesPosition):
        price = get_quote(quotes, position.symbol, _futures_root(position.symbol))
        return build_futures_snapshot(position, price, specs, config)

    if isinstance(position, CryptoPosition):
        return build_crypto_snapshot(position, get_quote(quotes, position.symbol))

    if isinstance(position, StockPosition):
        return build_stock_snapshot(position, get_quote(quotes, position.symbol))

    raise InvalidPositionError(f"Unsupported position type: {type(position).__name__}")


def build_snapshots(
    positions: Iterable[Union[Position, PositionRecord, Mapping[str, Any]]],
    quotes: Optional[Quotes] = None,
    specs: Optional[IContractSpecRepository] = None,
    config: Optional[EngineConfig] = None
) -> List[Snapshot]:
    """
    Snapshots for a batch of positions.

    Malformed derivative positions raise; they are not skipped.
    """
    config = config or EngineConfig()
    snapshots = [build_snapshot(p, quotes, specs, config) for p in positions]
    live = sum(1 for s in snapshots if s.has_live_quote)
    logger.info(f"Built {len(snapshots)} snapshots ({live} with live quotes)")
    return snapshots
