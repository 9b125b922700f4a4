"""Classify -> extract -> deduplicate.

`process` never writes to the store; hosts persist accepted transactions
through `persist` (see `main.py`).
"""

import logging

from smsledger.config import settings
from smsledger.db.store import StoreUnavailableError, TransactionStore, WritableTransactionStore
from smsledger.models import ProcessOutcome, ProcessStatus, Transaction
from smsledger.parsers.classifier import MessageClassifier, classifier
from smsledger.services.cache import FingerprintCache
from smsledger.services.similarity import SimilarityDetector

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class DuplicateDetector:
    """Three-tier duplicate check: cache, exact fingerprint, then similarity."""

    def __init__(
        self,
        cache: FingerprintCache | None = None,
        similarity: SimilarityDetector | None = None,
        window_hours: int | None = None,
    ):
        hours = window_hours if window_hours is not None else settings.duplicate_window_hours
        self.window_ms = hours * HOUR_MS
        self.cache = cache if cache is not None else FingerprintCache()
        self.similarity = similarity or SimilarityDetector(
            threshold=settings.similarity_threshold, window_ms=self.window_ms
        )

    def is_duplicate(self, candidate: Transaction, store: TransactionStore) -> bool:
        """
        Check a candidate against recent history.

        Args:
            candidate: Freshly parsed transaction
            store: Where previously accepted transactions live

        Returns:
            True if the candidate repeats something already seen

        Raises:
            StoreUnavailableError: If the store cannot be queried
        """
        fingerprint = candidate.fingerprint

        if self.cache.contains(fingerprint):
            logger.debug(f"Cache hit for fingerprint {fingerprint[:8]}...")
            return True

        try:
            if store.exists_by_fingerprint(fingerprint):
                logger.debug(f"Exact fingerprint match in store: {fingerprint[:8]}...")
                self.cache.add(fingerprint, candidate.timestamp)
                return True

            nearby = store.find_between(candidate.timestamp - self.window_ms, candidate.timestamp + self.window_ms)
        except StoreUnavailableError as e:
            logger.warning(f"Duplicate check failed, store unavailable: {e}")
            raise

        for existing in nearby:
            if self.similarity.are_transactions_similar(candidate, existing):
                logger.debug(f"Similar to stored transaction {existing.id}: {existing.description}")
                self.cache.add(fingerprint, candidate.timestamp)
                return True

        self.cache.add(fingerprint, candidate.timestamp)
        return False


class TransactionPipeline:
    """Public surface for hosts: classify, check for duplicates, process."""

    def __init__(
        self,
        message_classifier: MessageClassifier | None = None,
        duplicate_detector: DuplicateDetector | None = None,
    ):
        self.classifier = message_classifier or classifier
        self.duplicates = duplicate_detector or DuplicateDetector()

    @property
    def cache(self) -> FingerprintCache:
        return self.duplicates.cache

    def classify(self, message: str, sender: str | None, timestamp: int) -> Transaction | None:
        return self.classifier.classify(message, sender, timestamp)

    def is_duplicate(self, candidate: Transaction, store: TransactionStore) -> bool:
        return self.duplicates.is_duplicate(candidate, store)

    def process(self, message: str, sender: str | None, timestamp: int, store: TransactionStore) -> ProcessOutcome:
        """Run a message through classification and the duplicate check."""
        verdict, transaction = self.classifier.analyze(message, sender, timestamp)
        if transaction is None:
            return ProcessOutcome(status=ProcessStatus.REJECTED, reason=verdict.reason)

        if self.is_duplicate(transaction, store):
            logger.info(
                f"Duplicate: {transaction.description} ({transaction.amount:.2f}, {transaction.bank.value})"
            )
            return ProcessOutcome(status=ProcessStatus.DUPLICATE, transaction=transaction)

        logger.info(
            f"Accepted: {transaction.description} ({transaction.amount:.2f} "
            f"{transaction.direction.value}, {transaction.bank.value})"
        )
        return ProcessOutcome(status=ProcessStatus.ACCEPTED, transaction=transaction)

    def persist(self, transaction: Transaction, store: WritableTransactionStore) -> bool:
        """
        Store an accepted transaction.

        A failed write removes the fingerprint the duplicate check cached, so
        a retry of the same message is checked afresh.

        Returns:
            True if stored, False if the store already held the fingerprint

        Raises:
            StoreUnavailableError: If the write fails
        """
        try:
            return store.add_transaction(transaction)
        except StoreUnavailableError as e:
            logger.warning(f"Could not store {transaction.fingerprint[:8]}..., forgetting it: {e}")
            self.cache.discard(transaction.fingerprint)
            raise

    def cleanup_cache(self, now_ms: int) -> int:
        """Evict cache entries older than the configured maximum age."""
        cutoff = now_ms - settings.cache_max_age_days * DAY_MS
        removed = self.cache.cleanup(cutoff)
        logger.info(f"Cache cleanup removed {removed} entries, {len(self.cache)} remaining")
        return removed
