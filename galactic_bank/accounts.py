"""
Account Management Module

Creates, reads, updates and soft-deletes accounts. Every account is tagged
with the API key it was created under; only that key (or the admin key) may
see or change it. Balances are never touched here after creation.
"""

from typing import Any, List, Optional
import uuid

from .logging_config import get_logger, log_action
from .models import Account, AccountType, utc_today
from .storage import LedgerStore, DuplicateRecordError
from .validation import (
    validate_owner, validate_opening_balance, parse_currency, parse_account_type, validate_date_filter
)


class AccountError(Exception):
    """Base class for account management errors"""


class AccountValidationError(AccountError):
    """Account data failed validation"""


class AccountNotFoundError(AccountError):
    """Account does not exist or has been soft-deleted"""


class AccountAccessDenied(AccountError):
    """Account belongs to a different API key"""


class AccountManager:
    """
    Manages account lifecycle and ownership checks
    """

    def __init__(self, store: LedgerStore, admin_key: Optional[str] = None):
        self.store = store
        self.admin_key = admin_key
        self.logger = get_logger("galactic_bank.accounts")

    def create_account(
        self,
        owner: Any,
        currency: Any,
        owner_key: str,
        balance: Any = None,
        account_type: Any = None,
        account_id: Optional[str] = None
    ) -> Account:
        """
        Create a new account

        Args:
            owner: Display name of the account holder
            currency: Currency code or Currency
            owner_key: API key that will own the account
            balance: Opening balance (defaults to zero)
            account_type: STANDARD, PREMIUM or BUSINESS (defaults to STANDARD)
            account_id: Specific id (generated if not provided)

        Returns:
            Created Account

        Raises:
            AccountValidationError: If any field is invalid
        """
        try:
            account = Account(
                account_id=account_id or uuid.uuid4().hex[:8],
                owner=validate_owner(owner),
                balance=validate_opening_balance(balance),
                currency=parse_currency(currency),
                created_at=utc_today().isoformat(),
                owner_key=owner_key,
                account_type=parse_account_type(account_type or AccountType.STANDARD)
            )
        except ValueError as e:
            raise AccountValidationError(str(e)) from e

        try:
            self.store.insert_account(account)
        except DuplicateRecordError as e:
            raise AccountValidationError(f"Account {account.account_id} already exists") from e

        log_action(
            self.logger, "info", f"Account created: {account.account_id}",
            api_key=owner_key, action="create_account", resource=f"account:{account.account_id}",
            extra={"currency": account.currency.code, "account_type": account.account_type.value}
        )
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get a live account by ID"""
        return self.store.fetch(account_id)

    def get_owned_account(self, account_id: str, api_key: str) -> Account:
        """
        Get a live account the caller is allowed to act on

        Raises:
            AccountNotFoundError: If missing or soft-deleted
            AccountAccessDenied: If owned by another key
        """
        account = self.store.fetch(account_id)
        if account is None:
            raise AccountNotFoundError("Account not found")
        if not self.can_access(account, api_key):
            raise AccountAccessDenied("You do not have permission to access this account")
        return account

    def can_access(self, account: Account, api_key: str) -> bool:
        return account.owner_key == api_key or (self.admin_key is not None and api_key == self.admin_key)

    def list_accounts(self, owner_key: str, owner: Optional[str] = None,
                      created_at: Optional[str] = None) -> List[Account]:
        """List the caller's live accounts; owner is a case-insensitive substring"""
        try:
            created_at = validate_date_filter(created_at)
        except ValueError as e:
            raise AccountValidationError(str(e)) from e
        return self.store.list_accounts(owner_key=owner_key, owner_contains=owner, created_at=created_at)

    def update_account(
        self,
        account_id: str,
        api_key: str,
        owner: Optional[Any] = None,
        account_type: Optional[Any] = None
    ) -> Account:
        """
        Update owner name and/or account type. Balance and currency are fixed.

        Raises:
            AccountNotFoundError, AccountAccessDenied, AccountValidationError
        """
        self.get_owned_account(account_id, api_key)

        if owner is None and account_type is None:
            raise AccountValidationError(
                "No valid fields to update. Only owner and accountType can be updated."
            )

        try:
            new_owner = validate_owner(owner) if owner is not None else None
            new_type = parse_account_type(account_type) if account_type is not None else None
        except ValueError as e:
            raise AccountValidationError(str(e)) from e

        updated = self.store.update_account(account_id, owner=new_owner, account_type=new_type)
        if updated is None:
            raise AccountNotFoundError("Account not found")

        log_action(
            self.logger, "info", f"Account updated: {account_id}",
            api_key=api_key, action="update_account", resource=f"account:{account_id}"
        )
        return updated

    def delete_account(self, account_id: str, api_key: str) -> None:
        """
        Soft-delete an account; its transactions stay readable

        Raises:
            AccountNotFoundError, AccountAccessDenied
        """
        self.get_owned_account(account_id, api_key)

        if not self.store.soft_delete_account(account_id):
            raise AccountNotFoundError("Account not found")

        log_action(
            self.logger, "info", f"Account soft deleted: {account_id}",
            api_key=api_key, action="delete_account", resource=f"account:{account_id}"
        )
