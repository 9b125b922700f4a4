"""Contract between the duplicate detector and transaction storage."""

from typing import Protocol

from smsledger.models import Transaction


class StoreUnavailableError(Exception):
    """The backing store could not answer a query."""


class TransactionStore(Protocol):
    """Read-only queries the duplicate detector needs."""

    def exists_by_fingerprint(self, fingerprint: str) -> bool:
        """Check if a transaction with this fingerprint is already stored."""
        ...

    def find_between(self, start_ms: int, end_ms: int) -> list[Transaction]:
        """Transactions with start_ms <= timestamp <= end_ms, oldest first."""
        ...


class WritableTransactionStore(TransactionStore, Protocol):
    """A store hosts can also persist accepted transactions into."""

    def add_transaction(self, transaction: Transaction) -> bool:
        """Add a transaction. Returns True if added, False if duplicate."""
        ...
