"""In-memory transaction store, for tests and embedding without a database."""

import threading

from smsledger.models import Transaction


class InMemoryTransactionStore:
    """Keeps transactions in a list, unique by fingerprint."""

    def __init__(self, transactions: list[Transaction] | None = None):
        self._transactions: list[Transaction] = []
        self._lock = threading.Lock()
        for transaction in transactions or []:
            self.add_transaction(transaction)

    def add_transaction(self, transaction: Transaction) -> bool:
        """Add a transaction. Returns True if added, False if duplicate."""
        with self._lock:
            if any(t.fingerprint == transaction.fingerprint for t in self._transactions):
                return False
            self._transactions.append(transaction)
            return True

    def exists_by_fingerprint(self, fingerprint: str) -> bool:
        with self._lock:
            return any(t.fingerprint == fingerprint for t in self._transactions)

    def find_between(self, start_ms: int, end_ms: int) -> list[Transaction]:
        with self._lock:
            matches = [t for t in self._transactions if start_ms <= t.timestamp <= end_ms]
        return sorted(matches, key=lambda t: t.timestamp)

    def get_transactions(self, limit: int = 100) -> list[Transaction]:
        """Most recent transactions first."""
        with self._lock:
            ordered = sorted(self._transactions, key=lambda t: t.timestamp, reverse=True)
        return ordered[:limit]

    def get_transaction_count(self) -> int:
        with self._lock:
            return len(self._transactions)
