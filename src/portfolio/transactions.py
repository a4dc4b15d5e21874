"""
Normalization of broker transaction codes and instrument text.

Tolerant like the contract calendar: imported rows with codes
or instruments this module does not recognise map to a neutral value
('other', '' or None) instead of raising.
"""

from datetime import date
from enum import Enum
from typing import Optional, Union

from src.contracts.calendar import contract_month_from_symbol
from src.core.models import OptionType


class CashTransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTEREST = "interest"
    DIVIDEND = "dividend"
    FEE = "fee"
    OTHER = "other"


class CryptoTransactionType(Enum):
    BUY = "buy"
    SELL = "sell"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


class OptionTransactionCode(Enum):
    """Broker option activity codes"""
    BTO = "BTO"      # Buy to open
    STO = "STO"      # Sell to open
    BTC = "BTC"      # Buy to close
    STC = "STC"      # Sell to close
    OEXP = "OEXP"    # Expiration
    OASGN = "OASGN"  # Assignment
    OEXCS = "OEXCS"  # Exercise
    OCC = "OCC"      # Cash component

    @property
    def is_opening(self) -> bool:
        return self in (OptionTransactionCode.BTO, OptionTransactionCode.STO)

    @property
    def is_closing(self) -> bool:
        return not self.is_opening and self is not OptionTransactionCode.OCC


CASH_CODE_TYPES = {
    'INT': CashTransactionType.INTEREST,
    'DIV': CashTransactionType.DIVIDEND,
    'CDIV': CashTransactionType.DIVIDEND,
    'SLIP': CashTransactionType.INTEREST,
    'ACH': CashTransactionType.DEPOSIT,
    'RTP': CashTransactionType.DEPOSIT,
    'DCF': CashTransactionType.DEPOSIT,
    'DEP': CashTransactionType.DEPOSIT,
    'WD': CashTransactionType.WITHDRAWAL,
    'WIRE': CashTransactionType.DEPOSIT,
    'GOLD': CashTransactionType.FEE,
    'FEE': CashTransactionType.FEE,
    'GMPC': CashTransactionType.OTHER,
    'OCC': CashTransactionType.OTHER,
}

# Direction of these transfers follows the sign of the amount
SIGNED_TRANSFER_CODES = ('ACH', 'WIRE')


def classify_cash_transaction(code: Optional[str], amount: float) -> CashTransactionType:
    """
    Cash transaction type for a broker code.

    ACH and WIRE are deposits when the amount is non-negative and
    withdrawals otherwise. Unknown codes are 'other'.
    """
    code = (code or '').strip().upper()
    if code in SIGNED_TRANSFER_CODES:
        return CashTransactionType.DEPOSIT if amount >= 0 else CashTransactionType.WITHDRAWAL
    return CASH_CODE_TYPES.get(code, CashTransactionType.OTHER)


def classify_crypto_transaction(code: Optional[str], amount: float) -> CryptoTransactionType:
    """Buy unless the code says sell or transfer; transfers by amount sign."""
    code = (code or '').strip()
    if code.lower() == 'sell':
        return CryptoTransactionType.SELL
    if 'transfer' in code.lower():
        return CryptoTransactionType.TRANSFER_IN if amount >= 0 else CryptoTransactionType.TRANSFER_OUT
    return CryptoTransactionType.BUY


def parse_option_transaction_code(code: Optional[str]) -> Optional[OptionTransactionCode]:
    try:
        return OptionTransactionCode((code or '').strip().upper())
    except ValueError:
        return None


def futures_contract_month_from_instrument(instrument: Optional[str]) -> str:
    """'ESH25' -> 'MAR25'; empty string when the instrument is unparseable"""
    return contract_month_from_symbol(instrument) or ''


def describe_option_contract(
    underlying: str,
    strike_price: float,
    option_type: Union[OptionType, str],
    expiration_date: str
) -> str:
    """
    Readable label for an option contract.

    Example:
        >>> describe_option_contract('AAPL', 155, 'call', '2025-03-21')
        'AAPL $155 Call Mar 21, 2025'
    """
    if isinstance(option_type, OptionType):
        option_type = option_type.value
    label = 'Call' if str(option_type).lower() == 'call' else 'Put'

    strike = ('%f' % strike_price).rstrip('0').rstrip('.')
    try:
        expiry = date.fromisoformat(expiration_date)
        expiry_text = f"{expiry.strftime('%b')} {expiry.day}, {expiry.year}"
    except (TypeError, ValueError):
        expiry_text = str(expiration_date)

    return f"{underlying} ${strike} {label} {expiry_text}"
