"""SQLite storage for parsed transactions."""

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from uuid import UUID

from smsledger.config import settings
from smsledger.db.store import StoreUnavailableError
from smsledger.models import BankCode, Direction, Transaction, TransactionCategory

logger = logging.getLogger(__name__)

# SQL schema
SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    bank TEXT NOT NULL,
    direction TEXT NOT NULL,
    amount REAL NOT NULL,
    timestamp INTEGER NOT NULL,
    description TEXT NOT NULL,
    merchant_name TEXT,
    original_message TEXT,
    fingerprint TEXT NOT NULL UNIQUE,
    category TEXT,
    is_recurring INTEGER NOT NULL DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_transactions_timestamp ON transactions(timestamp);
CREATE INDEX IF NOT EXISTS idx_transactions_fingerprint ON transactions(fingerprint);
"""

_COLUMNS = """
    id, bank, direction, amount, timestamp, description, merchant_name,
    original_message, fingerprint, category, is_recurring
"""


class SQLiteTransactionStore:
    """SQLite-backed transaction store."""

    def __init__(self, db_path: Path | str | None = None):
        if db_path is None:
            settings.ensure_directories()
            db_path = settings.db_path
        self.db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection, translating driver failures."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.warning(f"Could not open {self.db_path}: {e}")
            raise StoreUnavailableError(f"Could not open {self.db_path}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.warning(f"SQLite query failed: {e}")
            raise StoreUnavailableError(str(e)) from e
        finally:
            conn.close()

    def exists_by_fingerprint(self, fingerprint: str) -> bool:
        """Check if a transaction with this fingerprint already exists."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT 1 FROM transactions WHERE fingerprint = ?", (fingerprint,))
            return cursor.fetchone() is not None

    def find_between(self, start_ms: int, end_ms: int) -> list[Transaction]:
        """Get transactions whose timestamp falls inside [start_ms, end_ms]."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM transactions
                WHERE timestamp BETWEEN ? AND ?
                ORDER BY timestamp ASC
                """,
                (start_ms, end_ms),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def add_transaction(self, transaction: Transaction) -> bool:
        """Add a transaction. Returns True if added, False if duplicate."""
        with self._get_connection() as conn:
            try:
                conn.execute(
                    f"""
                    INSERT INTO transactions ({_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(transaction.id),
                        transaction.bank.value,
                        transaction.direction.value,
                        transaction.amount,
                        transaction.timestamp,
                        transaction.description,
                        transaction.merchant_name,
                        transaction.original_message,
                        transaction.fingerprint,
                        transaction.category.value,
                        int(transaction.is_recurring),
                    ),
                )
                conn.commit()
                return True
            except sqlite3.IntegrityError:
                # Duplicate fingerprint
                return False

    def get_transactions(self, limit: int = 100) -> list[Transaction]:
        """Get the most recent transactions."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM transactions ORDER BY timestamp DESC LIMIT ?",
                (limit,),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def get_transaction_count(self) -> int:
        """Get total number of transactions."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) as count FROM transactions")
            return cursor.fetchone()["count"]

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert a database row to a Transaction model."""
        return Transaction(
            id=UUID(row["id"]),
            bank=BankCode(row["bank"]),
            direction=Direction(row["direction"]),
            amount=row["amount"],
            timestamp=row["timestamp"],
            description=row["description"],
            merchant_name=row["merchant_name"],
            original_message=row["original_message"],
            fingerprint=row["fingerprint"],
            category=TransactionCategory(row["category"]) if row["category"] else TransactionCategory.OTHERS,
            is_recurring=bool(row["is_recurring"]),
        )
