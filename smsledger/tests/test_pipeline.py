"""
Tests for duplicate detection and the full pipeline.

These tests ensure that:
1. The same message processed twice is accepted, then flagged as duplicate
2. Each tier (cache, exact fingerprint, similarity) catches duplicates
3. Store failures propagate instead of admitting the message
4. Cache cleanup evicts by age
5. A failed write leaves the message free to be retried
"""

import pytest

from smsledger.db.memory import InMemoryTransactionStore
from smsledger.db.store import StoreUnavailableError
from smsledger.models import ProcessStatus
from smsledger.parsers.classifier import DEFAULT_STAGES, MessageClassifier, Stage, classifier
from smsledger.services.cache import FingerprintCache
from smsledger.services.pipeline import DAY_MS, HOUR_MS, DuplicateDetector, TransactionPipeline

JAN_1_2024 = 1704067200000

SWIGGY_MESSAGE = "Rs.500.00 debited from your HDFC A/c for UPI payment to Swiggy on 01-01-24. Ref: ABC123"
SWIGGY_REWORDED = "Rs.500.00 debited from your HDFC A/c for UPI payment to Swiggy on 01-01-24"
OTP_MESSAGE = "Your OTP for login is 482913. Do not share."


class FailingStore:
    """Store whose every query fails."""

    def exists_by_fingerprint(self, fingerprint):
        raise StoreUnavailableError("database is locked")

    def find_between(self, start_ms, end_ms):
        raise StoreUnavailableError("database is locked")


class FlakyStore(InMemoryTransactionStore):
    """In-memory store whose first write fails."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    def add_transaction(self, transaction):
        self.writes += 1
        if self.writes == 1:
            raise StoreUnavailableError("database is locked")
        return super().add_transaction(transaction)


class RecordingStore(InMemoryTransactionStore):
    """In-memory store that counts queries."""

    def __init__(self, transactions=None):
        super().__init__(transactions)
        self.queries = 0

    def exists_by_fingerprint(self, fingerprint):
        self.queries += 1
        return super().exists_by_fingerprint(fingerprint)


def make_pipeline(capacity: int = 200) -> TransactionPipeline:
    return TransactionPipeline(duplicate_detector=DuplicateDetector(cache=FingerprintCache(capacity=capacity)))


class TestProcess:
    """Test the classify-then-deduplicate pipeline."""

    def test_same_message_twice(self):
        """Processing a message twice gives accepted, then duplicate."""
        pipeline = make_pipeline()
        store = InMemoryTransactionStore()

        first = pipeline.process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, store)
        second = pipeline.process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, store)

        assert first.status == ProcessStatus.ACCEPTED
        assert first.transaction.amount == 500.0
        assert second.status == ProcessStatus.DUPLICATE

    def test_process_does_not_write(self):
        """The pipeline leaves persistence to the caller."""
        store = InMemoryTransactionStore()
        make_pipeline().process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, store)
        assert store.get_transaction_count() == 0

    def test_rejected_message(self):
        """Non-transactions are rejected with the reason tag."""
        outcome = make_pipeline().process(OTP_MESSAGE, "HDFCBK", JAN_1_2024, InMemoryTransactionStore())
        assert outcome.status == ProcessStatus.REJECTED
        assert outcome.reason == "otp"
        assert outcome.transaction is None

    def test_classify_delegates(self):
        """Pipeline classify matches the classifier."""
        transaction = make_pipeline().classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024)
        assert transaction.fingerprint == classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024).fingerprint

    def test_store_failure_propagates(self):
        """A failed duplicate check never admits the message."""
        with pytest.raises(StoreUnavailableError):
            make_pipeline().process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, FailingStore())

    def test_zero_amount_rejected(self):
        """A message without a usable amount is rejected with invalid_amount."""
        outcome = make_pipeline().process("Rs.0 debited from your account", "", JAN_1_2024, InMemoryTransactionStore())
        assert outcome.status == ProcessStatus.REJECTED
        assert outcome.reason == "invalid_amount"

    def test_stages_run_once(self):
        """Processing evaluates the classifier stages a single time."""
        calls = []

        def record(ctx):
            calls.append(ctx.message)
            return None

        pipeline = TransactionPipeline(
            message_classifier=MessageClassifier(stages=DEFAULT_STAGES + (Stage("record", record),)),
            duplicate_detector=DuplicateDetector(cache=FingerprintCache(capacity=10)),
        )
        outcome = pipeline.process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, InMemoryTransactionStore())

        assert outcome.status == ProcessStatus.ACCEPTED
        assert len(calls) == 1


class TestPersist:
    """Test storing accepted transactions."""

    def test_persist_stores(self):
        """An accepted transaction is written once."""
        pipeline = make_pipeline()
        store = InMemoryTransactionStore()
        outcome = pipeline.process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, store)

        assert pipeline.persist(outcome.transaction, store) is True
        assert pipeline.persist(outcome.transaction, store) is False
        assert store.get_transaction_count() == 1

    def test_failed_write_forgets_fingerprint(self):
        """A failed write propagates and the retry is accepted, not a duplicate."""
        pipeline = make_pipeline()
        store = FlakyStore()
        outcome = pipeline.process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, store)

        with pytest.raises(StoreUnavailableError):
            pipeline.persist(outcome.transaction, store)
        assert pipeline.cache.contains(outcome.transaction.fingerprint) is False

        retry = pipeline.process(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024, store)
        assert retry.status == ProcessStatus.ACCEPTED
        assert pipeline.persist(retry.transaction, store) is True
        assert store.get_transaction_count() == 1


class TestDuplicateTiers:
    """Test each duplicate detection tier."""

    def test_exact_fingerprint_in_store(self):
        """A stored fingerprint is a duplicate and warms the cache."""
        stored = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024)
        store = RecordingStore([stored])
        pipeline = make_pipeline()
        candidate = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024 + HOUR_MS)

        assert pipeline.is_duplicate(candidate, store) is True
        assert pipeline.cache.contains(candidate.fingerprint) is True

        # Second check is answered by the cache
        assert pipeline.is_duplicate(candidate, store) is True
        assert store.queries == 1

    def test_similar_transaction_across_midnight(self):
        """Different UTC days give different fingerprints; similarity still catches it."""
        late = JAN_1_2024 + 23 * HOUR_MS
        stored = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", late)
        candidate = classifier.classify(SWIGGY_REWORDED, "HDFCBK", late + 2 * HOUR_MS)
        assert stored.fingerprint != candidate.fingerprint

        pipeline = make_pipeline()
        assert pipeline.is_duplicate(candidate, InMemoryTransactionStore([stored])) is True

    def test_new_transaction(self):
        """An unseen transaction is not a duplicate and gets cached."""
        pipeline = make_pipeline()
        candidate = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024)

        assert pipeline.is_duplicate(candidate, InMemoryTransactionStore()) is False
        assert pipeline.cache.contains(candidate.fingerprint) is True

    def test_outside_window_is_new(self):
        """The same payment two days later is a new transaction."""
        stored = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024)
        candidate = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024 + 2 * DAY_MS)
        assert make_pipeline().is_duplicate(candidate, InMemoryTransactionStore([stored])) is False

    def test_cache_hit_skips_store(self):
        """A cached fingerprint never reaches the store."""
        pipeline = make_pipeline()
        candidate = classifier.classify(SWIGGY_MESSAGE, "HDFCBK", JAN_1_2024)
        pipeline.cache.add(candidate.fingerprint, JAN_1_2024)

        assert pipeline.is_duplicate(candidate, FailingStore()) is True


class TestCleanupCache:
    """Test age-based cache cleanup."""

    def test_evicts_entries_older_than_seven_days(self):
        """Entries older than the configured age are evicted."""
        pipeline = make_pipeline()
        now = JAN_1_2024 + 30 * DAY_MS
        pipeline.cache.add("old", now - 8 * DAY_MS)
        pipeline.cache.add("recent", now - DAY_MS)

        assert pipeline.cleanup_cache(now) == 1
        assert pipeline.cache.contains("recent") is True
        assert pipeline.cache.contains("old") is False
