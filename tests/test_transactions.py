"""
Test suite for transactions module

Tests transfers, deposits, the validation order and all-or-nothing
execution against the ledger store.
"""

import pytest
from datetime import date
from decimal import Decimal

from galactic_bank.currency import Currency
from galactic_bank.models import Account, Transaction, TransactionFilters
from galactic_bank.storage import InMemoryLedgerStore, SQLiteLedgerStore, StorageError
from galactic_bank.transactions import (
    TransactionProcessor, TransferRequest, ValidationFailure, NotFoundFailure,
    InsufficientFundsFailure, ProcessingFailure
)


class FailingInsertStore(InMemoryLedgerStore):
    """Store whose record append fails after balances were staged"""

    def insert_transaction(self, transaction):
        raise StorageError("disk full")


class FailingInsertSQLiteStore(SQLiteLedgerStore):
    def insert_transaction(self, transaction):
        raise StorageError("disk full")


class UnreachableStore(InMemoryLedgerStore):
    """Store whose account lookups fail, as with a dropped connection"""

    def fetch(self, account_id):
        raise StorageError("connection lost")


def seed_accounts(store):
    store.register_api_key("1234")
    for account_id, balance, currency in [
        ("acc-001", "10000", Currency.COSMIC_COINS),
        ("acc-002", "237", Currency.COSMIC_COINS),
        ("acc-003", "5000", Currency.GALAXY_GOLD),
        ("acc-004", "0", Currency.COSMIC_COINS),
    ]:
        store.insert_account(Account(
            account_id=account_id,
            owner=f"Owner {account_id}",
            balance=Decimal(balance).quantize(Decimal("0.01")),
            currency=currency,
            created_at="2024-06-15",
            owner_key="1234"
        ))


class TestTransactionProcessor:
    """Test transaction processing functionality"""

    def setup_method(self):
        """Set up test fixtures"""
        self.store = InMemoryLedgerStore()
        seed_accounts(self.store)
        self.processor = TransactionProcessor(self.store, today=lambda: date(2025, 3, 10))

    def balance(self, account_id):
        return self.store.fetch(account_id).balance

    def test_transfer_between_accounts(self):
        """500 from 10000 to 237 leaves 9500 and 737"""
        result = self.processor.process(
            TransferRequest("acc-001", "acc-002", 500, "COSMIC_COINS"), api_key="1234"
        )

        assert isinstance(result, Transaction)
        assert result.amount == Decimal("500.00")
        assert result.currency == Currency.COSMIC_COINS
        assert result.created_at == "2025-03-10"
        assert self.balance("acc-001") == Decimal("9500.00")
        assert self.balance("acc-002") == Decimal("737.00")
        assert self.store.get_transaction(result.transaction_id) == result

    def test_insufficient_funds(self):
        result = self.processor.process(TransferRequest("acc-002", "acc-001", 999999, "COSMIC_COINS"))

        assert isinstance(result, InsufficientFundsFailure)
        assert result.error_name == "txInsufficientFunds"
        assert result.http_status == 403
        assert result.available == Decimal("237.00")
        assert result.requested == Decimal("999999.00")
        assert self.balance("acc-002") == Decimal("237.00")
        assert self.balance("acc-001") == Decimal("10000.00")
        assert self.store.list_transactions() == []

    def test_currency_mismatch(self):
        result = self.processor.process(TransferRequest("acc-001", "acc-003", 100, "COSMIC_COINS"))

        assert isinstance(result, ValidationFailure)
        assert result.message == "currency mismatch"
        assert self.balance("acc-001") == Decimal("10000.00")
        assert self.balance("acc-003") == Decimal("5000.00")

    def test_unknown_currency_code_is_a_mismatch(self):
        result = self.processor.process(TransferRequest("acc-001", "acc-002", 100, "USD"))
        assert isinstance(result, ValidationFailure)
        assert result.message == "currency mismatch"

    def test_deposit(self):
        """Deposit credits the destination and touches no source"""
        result = self.processor.process(TransferRequest("0", "acc-003", 1000, "GALAXY_GOLD"))

        assert isinstance(result, Transaction)
        assert result.is_deposit
        assert result.from_account_id == "0"
        assert self.balance("acc-003") == Decimal("6000.00")
        assert self.balance("acc-001") == Decimal("10000.00")

    def test_transfer_to_deleted_account(self):
        self.store.soft_delete_account("acc-002")
        result = self.processor.process(TransferRequest("acc-001", "acc-002", 10, "COSMIC_COINS"))

        assert isinstance(result, NotFoundFailure)
        assert result.error_name == "notFoundError"
        assert result.account_id == "acc-002"
        assert result.message == "Destination account acc-002 not found"
        assert self.balance("acc-001") == Decimal("10000.00")

    def test_unknown_source(self):
        result = self.processor.process(TransferRequest("acc-999", "acc-002", 10, "COSMIC_COINS"))
        assert isinstance(result, NotFoundFailure)
        assert result.message == "Source account acc-999 not found"

    def test_transfer_entire_balance(self):
        result = self.processor.process(TransferRequest("acc-002", "acc-004", "237.00", "COSMIC_COINS"))
        assert isinstance(result, Transaction)
        assert self.balance("acc-002") == Decimal("0.00")
        assert self.balance("acc-004") == Decimal("237.00")

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, True])
    def test_invalid_amount(self, amount):
        result = self.processor.process(TransferRequest("acc-001", "acc-002", amount, "COSMIC_COINS"))
        assert isinstance(result, ValidationFailure)
        assert result.http_status == 400
        assert self.balance("acc-001") == Decimal("10000.00")

    def test_amount_is_checked_first(self):
        """An invalid amount wins over a missing destination"""
        result = self.processor.process(TransferRequest("acc-999", "acc-998", -1, "USD"))
        assert isinstance(result, ValidationFailure)

    def test_destination_is_checked_before_source(self):
        result = self.processor.process(TransferRequest("acc-999", "acc-998", 10, "COSMIC_COINS"))
        assert isinstance(result, NotFoundFailure)
        assert result.account_id == "acc-998"

    def test_currency_is_checked_before_funds(self):
        result = self.processor.process(TransferRequest("acc-002", "acc-003", 999999, "COSMIC_COINS"))
        assert isinstance(result, ValidationFailure)

    def test_conservation_of_funds(self):
        before = self.balance("acc-001") + self.balance("acc-002")
        for amount in ["0.01", "12.50", "99.99", "1000"]:
            self.processor.process(TransferRequest("acc-001", "acc-002", amount, "COSMIC_COINS"))
            self.processor.process(TransferRequest("acc-002", "acc-001", "3.33", "COSMIC_COINS"))
        after = self.balance("acc-001") + self.balance("acc-002")
        assert before == after

    def test_not_idempotent(self):
        """Every accepted call creates a new transaction"""
        request = TransferRequest("acc-001", "acc-002", 10, "COSMIC_COINS")
        first = self.processor.process(request)
        second = self.processor.process(request)

        assert first.transaction_id != second.transaction_id
        assert self.balance("acc-001") == Decimal("9980.00")

    def test_transactions_are_append_only(self):
        result = self.processor.process(TransferRequest("acc-001", "acc-002", 10, "COSMIC_COINS"))
        snapshot = result.to_dict()

        self.processor.process(TransferRequest("acc-002", "acc-001", 5, "COSMIC_COINS"))
        self.store.soft_delete_account("acc-001")

        assert self.processor.get_transaction(result.transaction_id).to_dict() == snapshot

    def test_list_transactions_with_filters(self):
        t1 = self.processor.process(TransferRequest("acc-001", "acc-002", 10, "COSMIC_COINS"))
        t2 = self.processor.process(TransferRequest("0", "acc-001", 20, "COSMIC_COINS"))
        t3 = self.processor.process(TransferRequest("acc-002", "acc-001", 5, "COSMIC_COINS"))

        assert self.processor.list_transactions() == [t1, t2, t3]
        assert self.processor.list_transactions(TransactionFilters(to_account_id="acc-001")) == [t2, t3]
        assert self.processor.list_transactions(TransactionFilters(from_account_id="0")) == [t2]
        assert self.processor.list_transactions(TransactionFilters(created_at="2025-03-11")) == []

    def test_get_unknown_transaction(self):
        assert self.processor.get_transaction("nope") is None


@pytest.mark.parametrize("store_class", [FailingInsertStore, FailingInsertSQLiteStore])
class TestAtomicity:
    """A failed record append must leave no balance change behind"""

    def test_failed_insert_rolls_back_balances(self, store_class):
        store = store_class()
        seed_accounts(store)
        processor = TransactionProcessor(store)

        result = processor.process(TransferRequest("acc-001", "acc-002", 500, "COSMIC_COINS"))

        assert isinstance(result, ProcessingFailure)
        assert result.error_name == "txProcessingError"
        assert result.http_status == 500
        assert "disk full" in result.message
        assert store.fetch("acc-001").balance == Decimal("10000.00")
        assert store.fetch("acc-002").balance == Decimal("237.00")
        assert store.list_transactions() == []
        assert not store.in_unit_of_work()
        store.close()

    def test_failed_deposit_rolls_back(self, store_class):
        store = store_class()
        seed_accounts(store)
        processor = TransactionProcessor(store)

        result = processor.process(TransferRequest("0", "acc-003", 1000, "GALAXY_GOLD"))

        assert isinstance(result, ProcessingFailure)
        assert store.fetch("acc-003").balance == Decimal("5000.00")
        store.close()


class TestLookupFailures:
    """Store errors while validating come back as ProcessingFailure"""

    @pytest.mark.parametrize("source", ["0", "acc-001"])
    def test_fetch_error_is_a_processing_failure(self, source):
        store = UnreachableStore()
        processor = TransactionProcessor(store)

        result = processor.process(TransferRequest(source, "acc-002", 10, "COSMIC_COINS"))

        assert isinstance(result, ProcessingFailure)
        assert result.error_name == "txProcessingError"
        assert "connection lost" in result.message
        assert store.list_transactions() == []

    def test_invalid_amount_needs_no_lookup(self):
        processor = TransactionProcessor(UnreachableStore())
        result = processor.process(TransferRequest("0", "acc-002", -1, "COSMIC_COINS"))
        assert isinstance(result, ValidationFailure)


class TestSQLiteProcessing:
    """Same flows against the relational store"""

    def setup_method(self):
        self.store = SQLiteLedgerStore()
        seed_accounts(self.store)
        self.processor = TransactionProcessor(self.store)

    def teardown_method(self):
        self.store.close()

    def test_transfer_and_deposit(self):
        transfer = self.processor.process(TransferRequest("acc-001", "acc-002", "500", "COSMIC_COINS"))
        deposit = self.processor.process(TransferRequest("0", "acc-003", "1000", "GALAXY_GOLD"))

        assert isinstance(transfer, Transaction)
        assert isinstance(deposit, Transaction)
        assert self.store.fetch("acc-001").balance == Decimal("9500.00")
        assert self.store.fetch("acc-002").balance == Decimal("737.00")
        assert self.store.fetch("acc-003").balance == Decimal("6000.00")
        assert self.processor.list_transactions() == [transfer, deposit]
