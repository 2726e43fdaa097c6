"""
Storage Backend Module

Provides the ledger store interface and implementations for in-memory
(testing), SQLite (local persistence) and PostgreSQL (production).

Balances are only ever changed through adjust_balance inside a unit of work
opened with atomic(); every backend either commits the whole unit or none
of it.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from decimal import Decimal
from pathlib import Path
from contextlib import contextmanager
import sqlite3
import threading

from .currency import Currency
from .logging_config import get_logger
from .models import Account, AccountType, Transaction, TransactionFilters, utc_today


logger = get_logger("galactic_bank.storage")


class StorageError(Exception):
    """Base class for ledger store failures"""


class UnitOfWorkRequiredError(StorageError):
    """A balance mutation was attempted outside atomic()"""


class BalanceConflictError(StorageError):
    """A balance update matched no row: account gone, deleted, or would go negative"""


class DuplicateRecordError(StorageError):
    """A record with the same primary key already exists"""


class LedgerStore(ABC):
    """Abstract interface for ledger store backends"""

    def __init__(self):
        self._local = threading.local()

    # Accounts

    @abstractmethod
    def fetch(self, account_id: str) -> Optional[Account]:
        """Load an account; None if unknown or soft-deleted"""
        pass

    @abstractmethod
    def insert_account(self, account: Account) -> None:
        """Insert a new account"""
        pass

    @abstractmethod
    def update_account(self, account_id: str, owner: Optional[str] = None,
                       account_type: Optional[AccountType] = None) -> Optional[Account]:
        """Update descriptive fields of a live account"""
        pass

    @abstractmethod
    def soft_delete_account(self, account_id: str) -> bool:
        """Flag an account as deleted; False if it was not live"""
        pass

    @abstractmethod
    def list_accounts(self, owner_key: Optional[str] = None, owner_contains: Optional[str] = None,
                      created_at: Optional[str] = None) -> List[Account]:
        """List live accounts matching the filters, ordered by creation date then id"""
        pass

    @abstractmethod
    def adjust_balance(self, account_id: str, delta: Decimal) -> None:
        """Apply balance += delta; only valid inside atomic()"""
        pass

    # Transactions

    @abstractmethod
    def insert_transaction(self, transaction: Transaction) -> None:
        """Append a transaction record"""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Load a transaction record"""
        pass

    @abstractmethod
    def list_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        """List transactions ordered by date, then insertion"""
        pass

    # API keys

    @abstractmethod
    def register_api_key(self, key: str) -> bool:
        """Register an API key; True if it was new"""
        pass

    @abstractmethod
    def api_key_exists(self, key: str) -> bool:
        pass

    # Lifecycle

    @abstractmethod
    def reset(self) -> None:
        """Drop all accounts, transactions and keys"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    # Unit of work

    @abstractmethod
    def begin_transaction(self) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    def in_unit_of_work(self) -> bool:
        """Check if the calling thread has an open unit of work"""
        return getattr(self._local, 'depth', 0) > 0

    @contextmanager
    def atomic(self):
        """
        Context manager for atomic operations.

        Commits when the block exits cleanly and rolls back on any exception,
        including cancellation. A nested atomic() joins the outer unit.
        """
        if self.in_unit_of_work():
            self._local.depth += 1
            try:
                yield self
            finally:
                self._local.depth -= 1
            return

        self.begin_transaction()
        self._local.depth = 1
        try:
            yield self
            self.commit()
        except BaseException:
            self.rollback()
            raise
        finally:
            self._local.depth = 0

    def _require_unit_of_work(self) -> None:
        if not self.in_unit_of_work():
            raise UnitOfWorkRequiredError("Balance changes must run inside atomic()")


class InMemoryLedgerStore(LedgerStore):
    """
    In-memory store for tests and development.

    A unit of work holds the store lock and snapshots balances and records,
    so rollback restores exactly the state seen at begin.
    """

    def __init__(self):
        super().__init__()
        self._accounts: Dict[str, Account] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._api_keys: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._snapshot = None

    def fetch(self, account_id: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            if account and not account.deleted:
                # Copy to prevent external mutation
                return account.copy()
            return None

    def insert_account(self, account: Account) -> None:
        with self._lock:
            if account.account_id in self._accounts:
                raise DuplicateRecordError(f"Account {account.account_id} already exists")
            self._accounts[account.account_id] = account.copy()

    def update_account(self, account_id: str, owner: Optional[str] = None,
                       account_type: Optional[AccountType] = None) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            if not account or account.deleted:
                return None
            if owner is not None:
                account.owner = owner
            if account_type is not None:
                account.account_type = account_type
            return account.copy()

    def soft_delete_account(self, account_id: str) -> bool:
        with self._lock:
            account = self._accounts.get(account_id)
            if not account or account.deleted:
                return False
            account.deleted = True
            return True

    def list_accounts(self, owner_key: Optional[str] = None, owner_contains: Optional[str] = None,
                      created_at: Optional[str] = None) -> List[Account]:
        with self._lock:
            results = []
            for account in self._accounts.values():
                if account.deleted:
                    continue
                if owner_key is not None and account.owner_key != owner_key:
                    continue
                if owner_contains and owner_contains.lower() not in account.owner.lower():
                    continue
                if created_at is not None and account.created_at != created_at:
                    continue
                results.append(account.copy())
        return sorted(results, key=lambda a: (a.created_at, a.account_id))

    def adjust_balance(self, account_id: str, delta: Decimal) -> None:
        self._require_unit_of_work()
        with self._lock:
            account = self._accounts.get(account_id)
            if not account or account.deleted:
                raise BalanceConflictError(f"Account {account_id} is not available")
            new_balance = account.balance + delta
            if new_balance < Decimal('0'):
                raise BalanceConflictError(f"Account {account_id} balance would become negative")
            account.balance = new_balance

    def insert_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.transaction_id in self._transactions:
                raise DuplicateRecordError(f"Transaction {transaction.transaction_id} already exists")
            self._transactions[transaction.transaction_id] = transaction

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def list_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        filters = filters or TransactionFilters()
        with self._lock:
            matching = [t for t in self._transactions.values() if filters.matches(t)]
        # sorted() is stable, so same-day records keep insertion order
        return sorted(matching, key=lambda t: t.created_at)

    def register_api_key(self, key: str) -> bool:
        with self._lock:
            if key in self._api_keys:
                return False
            self._api_keys[key] = utc_today().isoformat()
            return True

    def api_key_exists(self, key: str) -> bool:
        with self._lock:
            return key in self._api_keys

    def reset(self) -> None:
        with self._lock:
            self._accounts = {}
            self._transactions = {}
            self._api_keys = {}

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def begin_transaction(self) -> None:
        self._lock.acquire()
        self._snapshot = (
            {account_id: account.copy() for account_id, account in self._accounts.items()},
            dict(self._transactions),
        )

    def commit(self) -> None:
        self._snapshot = None
        self._lock.release()

    def rollback(self) -> None:
        try:
            if self._snapshot is not None:
                self._accounts, self._transactions = self._snapshot
        finally:
            self._snapshot = None
            self._lock.release()


SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS api_keys (
    key         TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS accounts (
    account_id     TEXT PRIMARY KEY,
    owner          TEXT NOT NULL,
    balance_cents  INTEGER NOT NULL DEFAULT 0 CHECK (balance_cents >= 0),
    currency       TEXT NOT NULL CHECK (currency IN ('COSMIC_COINS', 'GALAXY_GOLD', 'MOON_BUCKS')),
    created_at     TEXT NOT NULL,
    account_type   TEXT NOT NULL DEFAULT 'STANDARD' CHECK (account_type IN ('STANDARD', 'PREMIUM', 'BUSINESS')),
    owner_key      TEXT NOT NULL,
    deleted        INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS transactions (
    transaction_id   TEXT PRIMARY KEY,
    from_account_id  TEXT NOT NULL,
    to_account_id    TEXT NOT NULL REFERENCES accounts(account_id),
    amount_cents     INTEGER NOT NULL CHECK (amount_cents > 0),
    currency         TEXT NOT NULL,
    created_at       TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_accounts_owner_key ON accounts(owner_key, deleted);
CREATE INDEX IF NOT EXISTS idx_transactions_from ON transactions(from_account_id);
CREATE INDEX IF NOT EXISTS idx_transactions_to ON transactions(to_account_id);
"""


def _to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal('0.01'))


class SQLiteLedgerStore(LedgerStore):
    """
    SQLite store for local persistence.

    Amounts are kept as integer cents so `balance_cents + ?` stays exact.
    One connection is shared; a unit of work holds the connection lock from
    BEGIN IMMEDIATE to COMMIT/ROLLBACK.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        # Autocommit mode; units of work issue BEGIN/COMMIT explicitly
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()

        with self._lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
            self._connection.executescript(SQLITE_SCHEMA)

    def fetch(self, account_id: str) -> Optional[Account]:
        with self._lock:
            row = self._connection.execute(
                "SELECT * FROM accounts WHERE account_id = ? AND deleted = 0", (account_id,)
            ).fetchone()
            return self._row_to_account(row) if row else None

    def insert_account(self, account: Account) -> None:
        with self._lock:
            try:
                self._connection.execute("""
                    INSERT INTO accounts (account_id, owner, balance_cents, currency, created_at,
                                          account_type, owner_key, deleted)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (account.account_id, account.owner, _to_cents(account.balance), account.currency.code,
                      account.created_at, account.account_type.value, account.owner_key, int(account.deleted)))
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(f"Account {account.account_id} could not be inserted: {e}") from e

    def update_account(self, account_id: str, owner: Optional[str] = None,
                       account_type: Optional[AccountType] = None) -> Optional[Account]:
        assignments = []
        params: List[Any] = []
        if owner is not None:
            assignments.append("owner = ?")
            params.append(owner)
        if account_type is not None:
            assignments.append("account_type = ?")
            params.append(account_type.value)

        with self._lock:
            if assignments:
                params.append(account_id)
                self._connection.execute(
                    f"UPDATE accounts SET {', '.join(assignments)} WHERE account_id = ? AND deleted = 0",
                    params
                )
            return self.fetch(account_id)

    def soft_delete_account(self, account_id: str) -> bool:
        with self._lock:
            cursor = self._connection.execute(
                "UPDATE accounts SET deleted = 1 WHERE account_id = ? AND deleted = 0", (account_id,)
            )
            return cursor.rowcount > 0

    def list_accounts(self, owner_key: Optional[str] = None, owner_contains: Optional[str] = None,
                      created_at: Optional[str] = None) -> List[Account]:
        query = "SELECT * FROM accounts WHERE deleted = 0"
        params: List[Any] = []
        if owner_key is not None:
            query += " AND owner_key = ?"
            params.append(owner_key)
        if owner_contains:
            query += " AND instr(lower(owner), lower(?)) > 0"
            params.append(owner_contains)
        if created_at is not None:
            query += " AND created_at = ?"
            params.append(created_at)
        query += " ORDER BY created_at, account_id"

        with self._lock:
            rows = self._connection.execute(query, params).fetchall()
            return [self._row_to_account(row) for row in rows]

    def adjust_balance(self, account_id: str, delta: Decimal) -> None:
        self._require_unit_of_work()
        cents = _to_cents(delta)
        with self._lock:
            cursor = self._connection.execute("""
                UPDATE accounts SET balance_cents = balance_cents + ?
                WHERE account_id = ? AND deleted = 0 AND balance_cents + ? >= 0
            """, (cents, account_id, cents))
            if cursor.rowcount == 0:
                raise BalanceConflictError(f"Balance of account {account_id} could not be adjusted by {delta}")

    def insert_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            try:
                self._connection.execute("""
                    INSERT INTO transactions (transaction_id, from_account_id, to_account_id,
                                              amount_cents, currency, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (transaction.transaction_id, transaction.from_account_id, transaction.to_account_id,
                      _to_cents(transaction.amount), transaction.currency.code, transaction.created_at))
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(
                    f"Transaction {transaction.transaction_id} could not be inserted: {e}"
                ) from e

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            row = self._connection.execute(
                "SELECT * FROM transactions WHERE transaction_id = ?", (transaction_id,)
            ).fetchone()
            return self._row_to_transaction(row) if row else None

    def list_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        filters = filters or TransactionFilters()
        query = "SELECT * FROM transactions WHERE 1=1"
        params: List[Any] = []
        if filters.from_account_id is not None:
            query += " AND from_account_id = ?"
            params.append(filters.from_account_id)
        if filters.to_account_id is not None:
            query += " AND to_account_id = ?"
            params.append(filters.to_account_id)
        if filters.created_at is not None:
            query += " AND created_at = ?"
            params.append(filters.created_at)
        query += " ORDER BY created_at, rowid"

        with self._lock:
            rows = self._connection.execute(query, params).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def register_api_key(self, key: str) -> bool:
        with self._lock:
            cursor = self._connection.execute(
                "INSERT OR IGNORE INTO api_keys (key, created_at) VALUES (?, ?)",
                (key, utc_today().isoformat())
            )
            return cursor.rowcount > 0

    def api_key_exists(self, key: str) -> bool:
        with self._lock:
            row = self._connection.execute("SELECT 1 FROM api_keys WHERE key = ?", (key,)).fetchone()
            return row is not None

    def reset(self) -> None:
        with self._lock:
            self._connection.executescript("""
                DROP TABLE IF EXISTS transactions;
                DROP TABLE IF EXISTS accounts;
                DROP TABLE IF EXISTS api_keys;
            """)
            self._connection.executescript(SQLITE_SCHEMA)

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    def begin_transaction(self) -> None:
        self._lock.acquire()
        try:
            self._connection.execute("BEGIN IMMEDIATE")
        except Exception:
            self._lock.release()
            raise

    def commit(self) -> None:
        self._connection.execute("COMMIT")
        self._lock.release()

    def rollback(self) -> None:
        try:
            if self._connection.in_transaction:
                self._connection.execute("ROLLBACK")
        finally:
            self._lock.release()

    @staticmethod
    def _row_to_account(row) -> Account:
        return Account(
            account_id=row['account_id'],
            owner=row['owner'],
            balance=_from_cents(row['balance_cents']),
            currency=Currency[row['currency']],
            created_at=row['created_at'],
            owner_key=row['owner_key'],
            account_type=AccountType(row['account_type']),
            deleted=bool(row['deleted'])
        )

    @staticmethod
    def _row_to_transaction(row) -> Transaction:
        return Transaction(
            transaction_id=row['transaction_id'],
            from_account_id=row['from_account_id'],
            to_account_id=row['to_account_id'],
            amount=_from_cents(row['amount_cents']),
            currency=Currency[row['currency']],
            created_at=row['created_at']
        )


POSTGRES_SCHEMA = """
CREATE TABLE IF NOT EXISTS api_keys (
    key         VARCHAR(64) PRIMARY KEY,
    created_at  TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS accounts (
    account_id    VARCHAR(36) PRIMARY KEY,
    owner         VARCHAR(255) NOT NULL,
    balance       NUMERIC(15, 2) NOT NULL DEFAULT 0 CHECK (balance >= 0),
    currency      VARCHAR(32) NOT NULL CHECK (currency IN ('COSMIC_COINS', 'GALAXY_GOLD', 'MOON_BUCKS')),
    created_at    VARCHAR(10) NOT NULL,
    account_type  VARCHAR(32) NOT NULL DEFAULT 'STANDARD' CHECK (account_type IN ('STANDARD', 'PREMIUM', 'BUSINESS')),
    owner_key     VARCHAR(64) NOT NULL REFERENCES api_keys(key),
    deleted       BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS transactions (
    seq              BIGSERIAL,
    transaction_id   VARCHAR(36) PRIMARY KEY,
    from_account_id  VARCHAR(36) NOT NULL,
    to_account_id    VARCHAR(36) NOT NULL REFERENCES accounts(account_id),
    amount           NUMERIC(15, 2) NOT NULL CHECK (amount > 0),
    currency         VARCHAR(32) NOT NULL,
    created_at       VARCHAR(10) NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_accounts_owner_key_deleted ON accounts(owner_key, deleted);
CREATE INDEX IF NOT EXISTS idx_transactions_from ON transactions(from_account_id);
CREATE INDEX IF NOT EXISTS idx_transactions_to ON transactions(to_account_id);
"""


class PostgreSQLLedgerStore(LedgerStore):
    """
    PostgreSQL store with ACID transaction support.

    Connections come from a thread-safe pool. A unit of work pins one
    connection to the calling thread until commit or rollback; statements
    outside a unit borrow a connection and commit immediately.
    """

    def __init__(self, connection_string: str, min_connections: int = 1, max_connections: int = 10):
        super().__init__()
        try:
            import psycopg2
            import psycopg2.extras
            import psycopg2.pool
            self.psycopg2 = psycopg2
            self.extras = psycopg2.extras
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            min_connections, max_connections, connection_string,
            cursor_factory=self.extras.RealDictCursor
        )
        # getconn() fails at once when the pool is empty; callers wait here instead
        self._available = threading.BoundedSemaphore(max_connections)
        self._ensure_schema()

    def _getconn(self):
        self._available.acquire()
        try:
            return self._pool.getconn()
        except Exception:
            self._available.release()
            raise

    def _putconn(self, connection) -> None:
        try:
            self._pool.putconn(connection)
        finally:
            self._available.release()

    def _ensure_schema(self) -> None:
        with self._cursor() as cursor:
            cursor.execute(POSTGRES_SCHEMA)

    @contextmanager
    def _cursor(self):
        """Cursor on the pinned unit-of-work connection, or on a pooled autocommitting one"""
        pinned = getattr(self._local, 'connection', None)
        if pinned is not None:
            cursor = pinned.cursor()
            try:
                yield cursor
            finally:
                cursor.close()
            return

        connection = self._getconn()
        try:
            cursor = connection.cursor()
            try:
                yield cursor
            finally:
                cursor.close()
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            self._putconn(connection)

    def fetch(self, account_id: str) -> Optional[Account]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM accounts WHERE account_id = %s AND deleted = FALSE", (account_id,)
            )
            row = cursor.fetchone()
            return self._row_to_account(row) if row else None

    def insert_account(self, account: Account) -> None:
        try:
            with self._cursor() as cursor:
                cursor.execute("""
                    INSERT INTO accounts (account_id, owner, balance, currency, created_at,
                                          account_type, owner_key, deleted)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """, (account.account_id, account.owner, account.balance, account.currency.code,
                      account.created_at, account.account_type.value, account.owner_key, account.deleted))
        except self.psycopg2.IntegrityError as e:
            raise DuplicateRecordError(f"Account {account.account_id} could not be inserted: {e}") from e

    def update_account(self, account_id: str, owner: Optional[str] = None,
                       account_type: Optional[AccountType] = None) -> Optional[Account]:
        assignments = []
        params: List[Any] = []
        if owner is not None:
            assignments.append("owner = %s")
            params.append(owner)
        if account_type is not None:
            assignments.append("account_type = %s")
            params.append(account_type.value)

        if assignments:
            params.append(account_id)
            with self._cursor() as cursor:
                cursor.execute(
                    f"UPDATE accounts SET {', '.join(assignments)} WHERE account_id = %s AND deleted = FALSE",
                    params
                )
        return self.fetch(account_id)

    def soft_delete_account(self, account_id: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                "UPDATE accounts SET deleted = TRUE WHERE account_id = %s AND deleted = FALSE", (account_id,)
            )
            return cursor.rowcount > 0

    def list_accounts(self, owner_key: Optional[str] = None, owner_contains: Optional[str] = None,
                      created_at: Optional[str] = None) -> List[Account]:
        query = "SELECT * FROM accounts WHERE deleted = FALSE"
        params: List[Any] = []
        if owner_key is not None:
            query += " AND owner_key = %s"
            params.append(owner_key)
        if owner_contains:
            query += " AND POSITION(LOWER(%s) IN LOWER(owner)) > 0"
            params.append(owner_contains)
        if created_at is not None:
            query += " AND created_at = %s"
            params.append(created_at)
        query += " ORDER BY created_at, account_id"

        with self._cursor() as cursor:
            cursor.execute(query, params)
            return [self._row_to_account(row) for row in cursor.fetchall()]

    def adjust_balance(self, account_id: str, delta: Decimal) -> None:
        self._require_unit_of_work()
        with self._cursor() as cursor:
            # Single statement; the row lock serializes concurrent transfers
            cursor.execute("""
                UPDATE accounts SET balance = balance + %s
                WHERE account_id = %s AND deleted = FALSE AND balance + %s >= 0
            """, (delta, account_id, delta))
            if cursor.rowcount == 0:
                raise BalanceConflictError(f"Balance of account {account_id} could not be adjusted by {delta}")

    def insert_transaction(self, transaction: Transaction) -> None:
        try:
            with self._cursor() as cursor:
                cursor.execute("""
                    INSERT INTO transactions (transaction_id, from_account_id, to_account_id,
                                              amount, currency, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s)
                """, (transaction.transaction_id, transaction.from_account_id, transaction.to_account_id,
                      transaction.amount, transaction.currency.code, transaction.created_at))
        except self.psycopg2.IntegrityError as e:
            raise DuplicateRecordError(
                f"Transaction {transaction.transaction_id} could not be inserted: {e}"
            ) from e

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM transactions WHERE transaction_id = %s", (transaction_id,))
            row = cursor.fetchone()
            return self._row_to_transaction(row) if row else None

    def list_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        filters = filters or TransactionFilters()
        query = "SELECT * FROM transactions WHERE 1=1"
        params: List[Any] = []
        if filters.from_account_id is not None:
            query += " AND from_account_id = %s"
            params.append(filters.from_account_id)
        if filters.to_account_id is not None:
            query += " AND to_account_id = %s"
            params.append(filters.to_account_id)
        if filters.created_at is not None:
            query += " AND created_at = %s"
            params.append(filters.created_at)
        query += " ORDER BY created_at, seq"

        with self._cursor() as cursor:
            cursor.execute(query, params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def register_api_key(self, key: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                "INSERT INTO api_keys (key) VALUES (%s) ON CONFLICT (key) DO NOTHING", (key,)
            )
            return cursor.rowcount > 0

    def api_key_exists(self, key: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute("SELECT EXISTS(SELECT 1 FROM api_keys WHERE key = %s) AS valid", (key,))
            return cursor.fetchone()['valid']

    def reset(self) -> None:
        with self._cursor() as cursor:
            cursor.execute("DROP TABLE IF EXISTS transactions CASCADE")
            cursor.execute("DROP TABLE IF EXISTS accounts CASCADE")
            cursor.execute("DROP TABLE IF EXISTS api_keys CASCADE")
            cursor.execute(POSTGRES_SCHEMA)

    def close(self) -> None:
        """Close all pooled connections"""
        if self._pool:
            self._pool.closeall()
            self._pool = None

    def begin_transaction(self) -> None:
        # psycopg2 opens the transaction implicitly on the first statement
        self._local.connection = self._getconn()

    def commit(self) -> None:
        connection = self._local.connection
        connection.commit()
        self._local.connection = None
        self._putconn(connection)

    def rollback(self) -> None:
        connection = getattr(self._local, 'connection', None)
        if connection is None:
            return
        try:
            connection.rollback()
        finally:
            self._local.connection = None
            self._putconn(connection)

    @staticmethod
    def _row_to_account(row) -> Account:
        return Account(
            account_id=row['account_id'],
            owner=row['owner'],
            balance=Decimal(row['balance']),
            currency=Currency[row['currency']],
            created_at=row['created_at'],
            owner_key=row['owner_key'],
            account_type=AccountType(row['account_type']),
            deleted=row['deleted']
        )

    @staticmethod
    def _row_to_transaction(row) -> Transaction:
        return Transaction(
            transaction_id=row['transaction_id'],
            from_account_id=row['from_account_id'],
            to_account_id=row['to_account_id'],
            amount=Decimal(row['amount']),
            currency=Currency[row['currency']],
            created_at=row['created_at']
        )


def create_store(database_url: str, pool_min: int = 1, pool_max: int = 10) -> LedgerStore:
    """
    Build the ledger store named by a database URL.

    Args:
        database_url: memory://, sqlite:///path (sqlite:// for in-memory SQLite)
            or postgresql://...
        pool_min: Minimum pooled PostgreSQL connections
        pool_max: Maximum pooled PostgreSQL connections

    Returns:
        The selected backend

    Raises:
        ValueError: If the URL scheme is not supported
    """
    if database_url.startswith("memory://"):
        store = InMemoryLedgerStore()
    elif database_url.startswith("sqlite://"):
        path = database_url[len("sqlite:///"):] if database_url.startswith("sqlite:///") else ""
        store = SQLiteLedgerStore(path or ":memory:")
    elif database_url.startswith(("postgresql://", "postgres://")):
        store = PostgreSQLLedgerStore(database_url, pool_min, pool_max)
    else:
        raise ValueError(f"Unsupported database URL: {database_url}")

    logger.info(f"Ledger store ready: {type(store).__name__}")
    return store
