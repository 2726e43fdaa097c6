"""
Input Validation Helpers

Shared checks for amounts, currencies, owners, account types and date
filters. Each helper returns the normalized value or raises ValueError with a
message fit for the client.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .currency import Currency, to_decimal, quantize_amount
from .models import AccountType


# NUMERIC(15, 2) in the relational schema
MAX_AMOUNT = Decimal('9999999999999.99')


def validate_transfer_amount(value: Any) -> Decimal:
    """
    Validate a transaction amount.

    Args:
        value: Amount as supplied by the caller

    Returns:
        Amount rounded to two fractional digits

    Raises:
        ValueError: If the amount is not a finite number greater than zero
    """
    amount = _finite_amount(value)
    if amount is None or amount <= Decimal('0'):
        raise ValueError("amount must be positive")
    if amount > MAX_AMOUNT:
        raise ValueError(f"amount must not exceed {MAX_AMOUNT}")
    return amount


def validate_opening_balance(value: Any) -> Decimal:
    """Validate an opening balance; missing means zero"""
    if value is None:
        return Decimal('0.00')
    amount = _finite_amount(value)
    if amount is None or amount < Decimal('0'):
        raise ValueError("Balance must be a non-negative number")
    if amount > MAX_AMOUNT:
        raise ValueError(f"Balance must not exceed {MAX_AMOUNT}")
    return amount


def parse_currency(value: Any) -> Currency:
    currency = Currency.from_code(value)
    if currency is None:
        raise ValueError(f"Currency must be one of: {', '.join(Currency.codes())}")
    return currency


def parse_account_type(value: Any) -> AccountType:
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(value)
    except ValueError:
        valid = ", ".join(t.value for t in AccountType)
        raise ValueError(f"Account type must be one of: {valid}")


def validate_owner(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Owner name is required and must be a non-empty string")
    return value.strip()


def validate_date_filter(value: Optional[str]) -> Optional[str]:
    """Accept YYYY-MM-DD or nothing"""
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        raise ValueError("Date filters must use the YYYY-MM-DD format")


def _finite_amount(value: Any) -> Optional[Decimal]:
    amount = to_decimal(value)
    if amount is None:
        return None
    if abs(amount) > MAX_AMOUNT:
        # Left unrounded; the caller rejects it on size
        return amount
    return quantize_amount(amount)
