"""
Transaction Processing Module

Validates transfers and deposits, then debits the source, credits the
destination and appends the transaction record in one unit of work. Every
outcome is returned as a value: the created Transaction or a typed failure.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, List, Optional, Union
import uuid

from .currency import Currency, format_amount
from .logging_config import get_logger, log_action
from .models import DEPOSIT_SOURCE_ID, Account, Transaction, TransactionFilters, utc_today
from .storage import LedgerStore
from .validation import validate_transfer_amount


@dataclass(frozen=True)
class TransferRequest:
    """A proposed money movement, as parsed by the request layer"""
    from_account_id: str
    to_account_id: str
    amount: Any
    currency: Any

    @property
    def is_deposit(self) -> bool:
        return self.from_account_id == DEPOSIT_SOURCE_ID


@dataclass(frozen=True)
class TransactionFailure:
    """Base for the rejected outcomes of process()"""
    message: str

    error_name = "transactionError"
    http_status = 400


@dataclass(frozen=True)
class ValidationFailure(TransactionFailure):
    """Malformed or semantically invalid request"""
    error_name = "validationError"
    http_status = 400


@dataclass(frozen=True)
class NotFoundFailure(TransactionFailure):
    """Referenced account does not exist or is soft-deleted"""
    account_id: Optional[str] = None

    error_name = "notFoundError"
    http_status = 404


@dataclass(frozen=True)
class InsufficientFundsFailure(TransactionFailure):
    """Source balance is below the requested amount"""
    available: Optional[Decimal] = None
    requested: Optional[Decimal] = None

    error_name = "txInsufficientFunds"
    http_status = 403


@dataclass(frozen=True)
class ProcessingFailure(TransactionFailure):
    """The unit of work could not commit; nothing was applied"""
    error_name = "txProcessingError"
    http_status = 500


ProcessResult = Union[
    Transaction, ValidationFailure, NotFoundFailure, InsufficientFundsFailure, ProcessingFailure
]


class TransactionProcessor:
    """
    Processes transfers and deposits against the ledger store.

    Not idempotent: every accepted request creates one new transaction, so a
    caller retrying after a ProcessingFailure must know the first attempt did
    not commit.
    """

    def __init__(self, store: LedgerStore, today: Optional[Callable[[], date]] = None):
        self.store = store
        self._today = today or utc_today
        self.logger = get_logger("galactic_bank.transactions")

    def process(self, request: TransferRequest, api_key: Optional[str] = None) -> ProcessResult:
        """
        Validate and execute a money movement.

        Args:
            request: Source, destination, amount and currency
            api_key: Caller key, used for logging only

        Returns:
            The committed Transaction, or the first failure encountered
        """
        try:
            outcome = self._validate(request)
        except Exception as e:
            self.logger.error(f"Ledger lookup failed during validation: {e}", exc_info=True)
            outcome = ProcessingFailure(f"Transaction could not be completed: {e}")
        if isinstance(outcome, TransactionFailure):
            self._log_failure(request, outcome, api_key)
            return outcome

        amount, currency = outcome
        result = self._execute(request, amount, currency)

        if isinstance(result, TransactionFailure):
            self._log_failure(request, result, api_key)
        else:
            log_action(
                self.logger, "info",
                f"Transaction committed: {format_amount(amount, currency)}",
                api_key=api_key, action="create_transaction",
                resource=f"transaction:{result.transaction_id}",
                extra={
                    "transaction_id": result.transaction_id,
                    "from_account": result.from_account_id,
                    "to_account": result.to_account_id,
                    "amount": str(amount),
                    "currency": currency.code,
                    "deposit": result.is_deposit
                }
            )
        return result

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID"""
        return self.store.get_transaction(transaction_id)

    def list_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        """List transactions, oldest first, narrowed by optional filters"""
        return self.store.list_transactions(filters or TransactionFilters())

    def _validate(self, request: TransferRequest):
        """Run the checks in order; first violation wins"""
        try:
            amount = validate_transfer_amount(request.amount)
        except ValueError as e:
            return ValidationFailure(str(e))

        destination = self.store.fetch(request.to_account_id)
        if destination is None:
            return NotFoundFailure(
                f"Destination account {request.to_account_id} not found",
                account_id=request.to_account_id
            )

        source: Optional[Account] = None
        if not request.is_deposit:
            source = self.store.fetch(request.from_account_id)
            if source is None:
                return NotFoundFailure(
                    f"Source account {request.from_account_id} not found",
                    account_id=request.from_account_id
                )

        currency = Currency.from_code(request.currency)
        if currency is None or currency != destination.currency:
            return ValidationFailure("currency mismatch")

        if source is not None and not source.has_sufficient_funds(amount):
            return InsufficientFundsFailure(
                f"Insufficient funds: available {format_amount(source.balance, source.currency)}, "
                f"requested {format_amount(amount, currency)}",
                available=source.balance,
                requested=amount
            )

        return amount, currency

    def _execute(self, request: TransferRequest, amount: Decimal, currency: Currency) -> ProcessResult:
        """Apply both balance changes and the record insert as one unit"""
        transaction = Transaction(
            transaction_id=str(uuid.uuid4()),
            from_account_id=request.from_account_id,
            to_account_id=request.to_account_id,
            amount=amount,
            currency=currency,
            created_at=self._today().isoformat()
        )

        try:
            with self.store.atomic():
                if not transaction.is_deposit:
                    self.store.adjust_balance(transaction.from_account_id, -amount)
                self.store.adjust_balance(transaction.to_account_id, amount)
                self.store.insert_transaction(transaction)
        except Exception as e:
            self.logger.error(f"Transaction {transaction.transaction_id} rolled back: {e}", exc_info=True)
            return ProcessingFailure(f"Transaction could not be completed: {e}")

        return transaction

    def _log_failure(self, request: TransferRequest, failure: TransactionFailure,
                     api_key: Optional[str]) -> None:
        level = "error" if isinstance(failure, ProcessingFailure) else "warning"
        log_action(
            self.logger, level, f"Transaction rejected: {failure.message}",
            api_key=api_key, action="create_transaction",
            extra={
                "error": failure.error_name,
                "from_account": request.from_account_id,
                "to_account": request.to_account_id,
                "amount": str(request.amount),
                "currency": str(request.currency)
            }
        )
