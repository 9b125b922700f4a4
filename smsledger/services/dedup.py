"""Fingerprinting logic for exact-duplicate detection."""

import hashlib
from datetime import datetime, timezone

from smsledger.models import BankCode, Direction, Transaction


def fingerprint_day(timestamp: int) -> str:
    """UTC calendar day (ISO format) of an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).date().isoformat()


def compute_fingerprint(
    amount: float,
    timestamp: int,
    merchant_name: str | None,
    bank: BankCode,
    direction: Direction,
) -> str:
    """
    Compute a fingerprint for a transaction.

    Two messages that describe the same event on the same day hash to the same
    value even when their wording differs, since only derived fields are used.
    """
    # Normalize the data for consistent hashing
    merchant = (merchant_name or "").strip().lower()
    normalized = f"{amount:.2f}|{fingerprint_day(timestamp)}|{merchant}|{bank.value}:{direction.value}"
    return hashlib.sha256(normalized.encode()).hexdigest()


def fingerprint_for(transaction: Transaction) -> str:
    """Recompute the fingerprint from a transaction's own fields."""
    return compute_fingerprint(
        transaction.amount,
        transaction.timestamp,
        transaction.merchant_name,
        transaction.bank,
        transaction.direction,
    )
