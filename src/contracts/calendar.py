"""
Futures contract calendar: symbol codec, month codes and expirations.

Contract symbols follow the CME convention ROOT + MONTH LETTER + YEAR,
e.g. ESH25 = E-mini S&P 500, March 2025.

Everything here is tolerant of malformed input: an unparseable symbol or
label yields None (or the input itself for display lookups) and never
raises. One bad row from a broker import must not abort a batch.

Usage:
    >>> parse_contract_symbol('ESH25')
    ParsedContractSymbol(base_symbol='ES', month_code='H', year='25')
    >>> calculate_expiration_date('MAR25', 'ES')
    '2025-03-21'
    >>> calculate_expiration_date('MAR25', 'CL')
    '2025-03-31'
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union

from dateutil.relativedelta import relativedelta, FR


logger = logging.getLogger(__name__)


class MonthCode(Enum):
    """CME contract month letters, January through December"""
    F = 1
    G = 2
    H = 3
    J = 4
    K = 5
    M = 6
    N = 7
    Q = 8
    U = 9
    V = 10
    X = 11
    Z = 12

    @property
    def month(self) -> int:
        """Calendar month, 1-12"""
        return self.value

    @property
    def month_index(self) -> int:
        """Zero-based month index (0 = January)"""
        return self.value - 1

    @property
    def month_name(self) -> str:
        return date(2000, self.value, 1).strftime('%B')

    @property
    def abbreviation(self) -> str:
        """Upper-case three-letter month, as used in labels like MAR25"""
        return self.month_name[:3].upper()

    @classmethod
    def from_month(cls, month: int) -> 'MonthCode':
        return cls(month)

    @classmethod
    def from_letter(cls, letter: str) -> Optional['MonthCode']:
        """Lookup by letter; None for anything outside the 12 codes"""
        try:
            return cls[letter]
        except (KeyError, TypeError):
            return None

    @classmethod
    def from_abbreviation(cls, abbreviation: str) -> Optional['MonthCode']:
        for code in cls:
            if code.abbreviation == abbreviation:
                return code
        return None


FUTURES_MONTH_CODES: dict[str, str] = {code.name: code.month_name for code in MonthCode}

# Mar, Jun, Sep, Dec
QUARTERLY_MONTHS = ('H', 'M', 'U', 'Z')

ALL_MONTHS = tuple(code.name for code in MonthCode)

# Roots that expire on the third Friday of the contract month
EQUITY_INDEX_ROOTS = frozenset({'ES', 'NQ', 'YM', 'RTY', 'MES', 'MNQ', 'MYM', 'M2K'})

_CONTRACT_SYMBOL_RE = re.compile(r'^([A-Z]{1,4})([FGHJKMNQUVXZ])(\d{2,4})$')
_MONTH_LABEL_RE = re.compile(r'^([A-Z]{3})(\d{2})$')
_CODE_LABEL_RE = re.compile(r'^([FGHJKMNQUVXZ])(\d{2}|\d{4})$')


@dataclass(frozen=True)
class ParsedContractSymbol:
    """Components of a contract symbol such as ESH25"""
    base_symbol: str     # Root, e.g. 'ES'
    month_code: str      # Month letter, e.g. 'H'
    year: str            # Year digits as written (2-4 digits)

    @property
    def month(self) -> MonthCode:
        return MonthCode[self.month_code]

    @property
    def full_year(self) -> int:
        """Four-digit year; two-digit years are taken as 2000+yy"""
        return _full_year(self.year)


def _full_year(year: str) -> int:
    value = int(year)
    return 2000 + value if len(year) == 2 else value


def _year_suffix(year: Union[int, str]) -> str:
    if isinstance(year, int):
        return f"{year % 100:02d}"
    return year[-2:] if len(year) == 4 else year


def parse_contract_symbol(symbol: str) -> Optional[ParsedContractSymbol]:
    """
    Split a contract symbol into root, month letter and year.

    Matches 1-4 letter root + month letter + 2-4 digit year.

    Returns:
        ParsedContractSymbol, or None if the symbol does not match
    """
    if not isinstance(symbol, str):
        return None
    match = _CONTRACT_SYMBOL_RE.match(symbol)
    if not match:
        return None
    return ParsedContractSymbol(
        base_symbol=match.group(1),
        month_code=match.group(2),
        year=match.group(3),
    )


def format_contract_symbol(
    base_symbol: str,
    month_code: Union[MonthCode, str],
    year: Union[int, str]
) -> str:
    """
    Build a contract symbol: root + month letter + 2-digit year.

    Example:
        >>> format_contract_symbol('ES', 'H', '2025')
        'ESH25'
    """
    if isinstance(month_code, MonthCode):
        month_code = month_code.name
    return f"{base_symbol}{month_code}{_year_suffix(year)}"


def get_month_name(month_code: str) -> str:
    """Full month name for a letter code, or the code itself if unknown"""
    return FUTURES_MONTH_CODES.get(month_code, month_code)


def get_third_friday(year: int, month_index: int) -> date:
    """
    Third Friday of a month.

    Args:
        year: Four-digit year
        month_index: Zero-based month (0 = January)

    The first Friday falls 0-6 days after the 1st; the third is 14 days
    later, so the result is always on day 15-21.
    """
    first_day = date(year, month_index + 1, 1)
    return first_day + relativedelta(weekday=FR(+3))


def get_last_day_of_month(year: int, month_index: int) -> date:
    return date(year, month_index + 1, 1) + relativedelta(day=31)


def is_equity_index_root(symbol: Optional[str]) -> bool:
    """True for equity-index roots (case-insensitive)"""
    if not isinstance(symbol, str):
        return False
    return symbol.strip().upper() in EQUITY_INDEX_ROOTS


def _parse_contract_month(label: str) -> Optional[tuple[MonthCode, int]]:
    """Resolve 'MAR25' or 'H25' / 'H2025' to (MonthCode, full year)."""
    if not isinstance(label, str):
        return None
    label = label.strip().upper()

    match = _MONTH_LABEL_RE.match(label)
    if match:
        code = MonthCode.from_abbreviation(match.group(1))
        if code is None:
            return None
        return code, _full_year(match.group(2))

    match = _CODE_LABEL_RE.match(label)
    if match:
        return MonthCode[match.group(1)], _full_year(match.group(2))

    return None


def calculate_expiration_date(contract_month: str, symbol: Optional[str] = None) -> Optional[str]:
    """
    Expiration date for a contract month label.

    Equity-index roots (ES, NQ, YM, RTY and their micros) expire on the
    third Friday of the contract month. Every other root falls back to the
    last calendar day of the month.

    Args:
        contract_month: 'MAR25' style or month-code style ('H25', 'H2025')
        symbol: Contract root used to pick the expiration rule

    Returns:
        ISO date string (YYYY-MM-DD), or None if the label is unparseable
    """
    if not contract_month:
        return None

    parsed = _parse_contract_month(contract_month)
    if parsed is None:
        logger.debug(f"Unparseable contract month label: {contract_month!r}")
        return None

    code, year = parsed
    if is_equity_index_root(symbol):
        expiration = get_third_friday(year, code.month_index)
    else:
        expiration = get_last_day_of_month(year, code.month_index)
    return expiration.isoformat()


def format_contract_month(month_code: Union[MonthCode, str], year: Union[int, str]) -> Optional[str]:
    """
    Display label for a contract month, e.g. ('H', 25) -> 'MAR25'.

    Returns None for an unknown month letter.
    """
    code = month_code if isinstance(month_code, MonthCode) else MonthCode.from_letter(month_code)
    if code is None:
        return None
    return f"{code.abbreviation}{_year_suffix(year)}"


def normalize_contract_month(label: Optional[str]) -> Optional[str]:
    """
    Normalize a stored contract month to the 'MAR25' display form.

    'MAR25' is returned as-is, 'H25' / 'H2025' become 'MAR25'.
    Anything else yields None.
    """
    parsed = _parse_contract_month(label)
    if parsed is None:
        return None
    code, year = parsed
    return format_contract_month(code, year)


def contract_month_from_symbol(symbol: Optional[str]) -> Optional[str]:
    """Contract month label parsed out of a full symbol ('MESH25' -> 'MAR25')"""
    parsed = parse_contract_symbol(symbol)
    if parsed is None:
        return None
    return format_contract_month(parsed.month_code, parsed.year)


def days_to_expiration(expiration: Union[str, date], as_of: date) -> Optional[int]:
    """Calendar days from as_of until expiration (negative once expired)"""
    if isinstance(expiration, str):
        try:
            expiration = date.fromisoformat(expiration)
        except ValueError:
            return None
    return (expiration - as_of).days
