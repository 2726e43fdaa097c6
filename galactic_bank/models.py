"""
Record Types

Accounts and transactions as stored by the ledger store. Amounts are Decimal
with two fractional digits; dates are ISO strings at day granularity.
"""

from dataclasses import dataclass, asdict, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional

from .currency import Currency


DEPOSIT_SOURCE_ID = "0"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class AccountType(Enum):
    """Account tiers; informational only"""
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    BUSINESS = "BUSINESS"


@dataclass
class Account:
    """
    Bank account holding a single-currency balance
    """
    account_id: str
    owner: str
    balance: Decimal
    currency: Currency
    created_at: str
    owner_key: str
    account_type: AccountType = AccountType.STANDARD
    deleted: bool = False

    def has_sufficient_funds(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def copy(self, **changes) -> 'Account':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Public representation; the ownership tag and delete flag stay internal"""
        return {
            "accountId": self.account_id,
            "owner": self.owner,
            "createdAt": self.created_at,
            "balance": self.balance,
            "currency": self.currency.code,
            "accountType": self.account_type.value,
        }


@dataclass(frozen=True)
class Transaction:
    """
    Immutable record of a committed money movement
    """
    transaction_id: str
    from_account_id: str
    to_account_id: str
    amount: Decimal
    currency: Currency
    created_at: str

    @property
    def is_deposit(self) -> bool:
        """Check if funds entered from outside the bank"""
        return self.from_account_id == DEPOSIT_SOURCE_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "fromAccountId": self.from_account_id,
            "toAccountId": self.to_account_id,
            "amount": self.amount,
            "currency": self.currency.code,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class TransactionFilters:
    """Optional equality filters for the transaction read path"""
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    created_at: Optional[str] = None

    def matches(self, transaction: Transaction) -> bool:
        for key, value in asdict(self).items():
            if value is not None and getattr(transaction, key) != value:
                return False
        return True
