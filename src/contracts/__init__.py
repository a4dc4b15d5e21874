"""Futures contract calendar and specifications"""

from src.contracts.calendar import (
    MonthCode,
    parse_contract_symbol,
    format_contract_symbol,
    get_month_name,
    get_third_friday,
    calculate_expiration_date,
)
from src.contracts.specs import ContractSpecDB, IContractSpecRepository

__all__ = [
    'MonthCode',
    'parse_contract_symbol',
    'format_contract_symbol',
    'get_month_name',
    'get_third_friday',
    'calculate_expiration_date',
    'ContractSpecDB',
    'IContractSpecRepository',
]
