"""Duplicate-by-meaning detection between two transactions.

Banks often deliver the same event twice with different wording, or the payer
and payee side of one transfer both land in the same inbox. Exact fingerprints
miss those, so pairs inside the duplicate window are compared by token overlap.
"""

import logging
import re

from smsledger.models import Transaction

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
AMOUNT_TOLERANCE = 0.01
SIMILARITY_THRESHOLD = 0.7
DESCRIPTION_WEIGHT = 0.7
MERCHANT_WEIGHT = 0.3
STRONG_MERCHANT_SIMILARITY = 0.8

STOP_WORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "against", "all", "am", "an", "and", "any", "are", "as",
        "at", "be", "because", "been", "before", "being", "below", "between", "both", "but", "by", "can",
        "did", "do", "does", "doing", "down", "during", "each", "few", "for", "from", "further", "had",
        "has", "have", "having", "he", "her", "here", "hers", "him", "his", "how", "i", "if", "in",
        "into", "is", "it", "its", "just", "me", "more", "most", "my", "no", "nor", "not", "now", "of",
        "off", "on", "once", "only", "or", "other", "our", "ours", "out", "over", "own", "same", "she",
        "should", "so", "some", "such", "than", "that", "the", "their", "them", "then", "there", "these",
        "they", "this", "those", "through", "to", "too", "under", "until", "up", "very", "was", "we",
        "were", "what", "when", "where", "which", "while", "who", "whom", "why", "will", "with", "would",
        "you", "your", "yours",
        # Banking vocabulary shared by every alert
        "account", "bank", "transaction", "transfer", "amount", "rs", "inr", "rupees", "credited",
        "debited", "balance", "available", "ref", "upi", "neft", "imps", "rtgs", "info", "alert", "id",
        "txn", "payment", "debit", "credit", "withdrawn", "received", "sent", "paid", "card",
    }
)

_COMPLEMENTARY_PAIRS = (("sent", "received"), (" to ", " from "))
_REFERENCE = re.compile(r"\bref(?:erence)?\b\s*(?:no)?\.?\s*[:#]?\s*([a-z0-9]*\d[a-z0-9]*)")


def tokenize(text: str | None) -> set[str]:
    """Lower-case word tokens longer than two characters, numbers excluded."""
    if not text:
        return set()

    normalized = re.sub(r"[^a-z0-9\s]", " ", text.lower())
    return {token for token in normalized.split() if len(token) > 2 and not token.isdigit()}


def jaccard_similarity(first: set[str], second: set[str]) -> float:
    """Intersection over union; 0.0 when both sets are empty."""
    if not first and not second:
        return 0.0
    return len(first & second) / len(first | second)


def normalize_reference(text: str) -> str:
    """Pull a reference number out of a description, lower-cased alphanumerics only."""
    match = _REFERENCE.search(text.lower())
    return match.group(1) if match else ""


class SimilarityDetector:
    """Decides whether two nearby transactions describe the same event."""

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD, window_ms: int = DAY_MS):
        self.threshold = threshold
        self.window_ms = window_ms

    def are_transactions_similar(self, first: Transaction, second: Transaction) -> bool:
        if abs(first.timestamp - second.timestamp) > self.window_ms:
            return False

        if abs(first.amount - second.amount) > AMOUNT_TOLERANCE:
            return False

        if first.direction != second.direction:
            return self.is_complementary_pair(first, second)

        return self.combined_similarity(first, second) >= self.threshold

    def is_complementary_pair(self, first: Transaction, second: Transaction) -> bool:
        """Opposite-direction views (payer and payee) of one transfer."""
        if first.direction == second.direction:
            return False

        desc1 = first.description.lower()
        desc2 = second.description.lower()

        complementary = any(
            (a in desc1 and b in desc2) or (b in desc1 and a in desc2) for a, b in _COMPLEMENTARY_PAIRS
        )
        if not complementary:
            return False

        ref1 = normalize_reference(desc1)
        ref2 = normalize_reference(desc2)
        if ref1 and ref1 == ref2:
            logger.debug(f"Complementary pair shares reference {ref1}")
            return True

        # Entity names left once the shared vocabulary is removed
        shared = (tokenize(desc1) - STOP_WORDS) & (tokenize(desc2) - STOP_WORDS)
        return bool(shared)

    def combined_similarity(self, first: Transaction, second: Transaction) -> float:
        """Weighted description + merchant similarity for same-direction pairs."""
        description_similarity = jaccard_similarity(tokenize(first.description), tokenize(second.description))

        merchant_similarity = 0.0
        if first.merchant_name and second.merchant_name:
            merchant_similarity = jaccard_similarity(
                tokenize(first.merchant_name), tokenize(second.merchant_name)
            )

        combined = description_similarity * DESCRIPTION_WEIGHT + merchant_similarity * MERCHANT_WEIGHT
        if merchant_similarity > STRONG_MERCHANT_SIMILARITY:
            combined = max(combined, STRONG_MERCHANT_SIMILARITY)

        return combined
