"""
Currency Module

The three workshop currencies and Decimal helpers for amounts. Every
currency carries two fractional digits. NEVER uses float for stored values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from enum import Enum
from typing import Any, Optional

getcontext().prec = 28


class Currency(Enum):
    """Fictional currency codes with precision info"""
    COSMIC_COINS = ("COSMIC_COINS", 2)
    GALAXY_GOLD = ("GALAXY_GOLD", 2)
    MOON_BUCKS = ("MOON_BUCKS", 2)

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @classmethod
    def from_code(cls, code: Any) -> Optional['Currency']:
        """Look up a currency by its code, None if unknown"""
        if isinstance(code, Currency):
            return code
        if not isinstance(code, str):
            return None
        try:
            return cls[code]
        except KeyError:
            return None

    @classmethod
    def codes(cls):
        return [currency.code for currency in cls]


CENT = Decimal('0.01')


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a request value to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1. Booleans, NaN, infinities and
    anything unparsable come back as None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def quantize_amount(value: Decimal) -> Decimal:
    """Round to two fractional digits"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal, currency: Currency) -> str:
    """Format for display"""
    return f"{value:,.{currency.precision}f} {currency.code}"
