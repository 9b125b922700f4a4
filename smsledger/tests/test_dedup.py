"""Tests for transaction fingerprinting."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from smsledger.models import BankCode, Direction, Transaction
from smsledger.services.dedup import compute_fingerprint, fingerprint_day, fingerprint_for

JAN_1_2024 = 1704067200000  # 2024-01-01T00:00:00Z
HOUR_MS = 60 * 60 * 1000

BASE = dict(amount=500.0, timestamp=JAN_1_2024, merchant_name="Swiggy", bank=BankCode.HDFC, direction=Direction.DEBIT)


def fingerprint(**overrides) -> str:
    return compute_fingerprint(**{**BASE, **overrides})


class TestFingerprintDay:
    """Test UTC day bucketing."""

    def test_utc_day(self):
        """Should bucket by the UTC calendar day."""
        assert fingerprint_day(JAN_1_2024) == "2024-01-01"
        assert fingerprint_day(JAN_1_2024 + 23 * HOUR_MS) == "2024-01-01"
        assert fingerprint_day(JAN_1_2024 + 24 * HOUR_MS) == "2024-01-02"


class TestComputeFingerprint:
    """Test fingerprint properties."""

    def test_deterministic(self):
        """Same inputs give the same SHA-256 hex digest."""
        assert fingerprint() == fingerprint()
        assert len(fingerprint()) == 64

    def test_same_day_same_fingerprint(self):
        """Time of day does not matter within one UTC day."""
        assert fingerprint(timestamp=JAN_1_2024 + 5 * HOUR_MS) == fingerprint()

    def test_merchant_normalized(self):
        """Merchant case and surrounding whitespace are ignored."""
        assert fingerprint(merchant_name="  SWIGGY ") == fingerprint()

    def test_missing_merchant_matches_empty(self):
        """None and empty merchant hash the same."""
        assert fingerprint(merchant_name=None) == fingerprint(merchant_name="")

    def test_amount_formatting(self):
        """Amounts are compared at two decimals."""
        assert fingerprint(amount=500) == fingerprint(amount=500.001)

    def test_each_field_changes_fingerprint(self):
        """Changing any single field changes the fingerprint."""
        base = fingerprint()
        assert fingerprint(amount=500.01) != base
        assert fingerprint(timestamp=JAN_1_2024 + 24 * HOUR_MS) != base
        assert fingerprint(merchant_name="Zomato") != base
        assert fingerprint(bank=BankCode.SBI) != base
        assert fingerprint(direction=Direction.CREDIT) != base


class TestFingerprintFor:
    """Test recomputing fingerprints from transactions."""

    def test_matches_compute(self):
        """Should agree with compute_fingerprint for the same fields."""
        transaction = Transaction(
            id=uuid4(),
            description="UPI payment to Swiggy",
            fingerprint="placeholder",
            **BASE,
        )
        assert fingerprint_for(transaction) == fingerprint()


class TestTransactionCreate:
    """Test the fingerprinting constructor."""

    def test_fingerprint_derived(self):
        """create() fills in the fingerprint from the other fields."""
        transaction = Transaction.create(description="UPI payment to Swiggy", **BASE)
        assert transaction.fingerprint == fingerprint()
        assert fingerprint_for(transaction) == transaction.fingerprint

    def test_amount_must_be_positive(self):
        """Non-positive amounts fail validation."""
        with pytest.raises(ValidationError):
            Transaction.create(description="x", **{**BASE, "amount": 0})

    def test_frozen(self):
        """Transactions are immutable once built."""
        transaction = Transaction.create(description="x", **BASE)
        with pytest.raises(ValidationError):
            transaction.amount = 1.0
