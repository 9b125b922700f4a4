"""Rule-weighted direction scoring used when surface patterns are ambiguous.

The weights are hand-authored, not learned. Credit-leaning tokens push the score
towards CREDIT, debit-leaning tokens towards DEBIT. Failure or negation wording
("failed", "declined", ...) swaps the two sides, since a failed debit means the
money stayed put or came back.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType

from smsledger.models import Direction

CREDIT_TOKENS = MappingProxyType(
    {
        "credited": 1.0,
        "received": 1.0,
        "added": 0.8,
        "deposited": 0.9,
        "cashback": 0.7,
        "refund": 0.8,
        "refunded": 0.8,
        "salary": 1.0,
        "interest": 0.6,
        "credit": 0.9,
        "income": 0.8,
        "bonus": 0.8,
        "reversed": 0.6,
    }
)

DEBIT_TOKENS = MappingProxyType(
    {
        "debited": 1.0,
        "withdrawn": 0.9,
        "spent": 0.8,
        "paid": 0.8,
        "sent": 0.8,
        "deducted": 0.9,
        "charged": 0.7,
        "payment": 0.6,
        "purchase": 0.7,
        "purchased": 0.7,
        "debit": 0.9,
        "transfer": 0.6,
        "transferred": 0.6,
        "bill": 0.7,
    }
)

CREDIT_PHRASES = ("credited to your", "received in your", "deposited to your", "deposited in your")
DEBIT_PHRASES = ("debited from your", "withdrawn from your", "paid from your")
PHRASE_BONUS = 1.5

NEGATION_TOKENS = frozenset({"not", "failed", "rejected", "declined", "unsuccessful", "cancelled"})

_WORD = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class SentimentScore:
    """Raw scores behind a sentiment verdict."""

    positive: float
    negative: float
    negated: bool

    @property
    def direction(self) -> Direction:
        if self.positive > self.negative:
            return Direction.CREDIT
        # Ties default to DEBIT, the majority class
        return Direction.DEBIT


def score(message: str) -> SentimentScore:
    """Score a message against the credit and debit lexicons."""
    lower_message = (message or "").lower()
    tokens = set(_WORD.findall(lower_message))

    positive = sum(weight for token, weight in CREDIT_TOKENS.items() if token in tokens)
    negative = sum(weight for token, weight in DEBIT_TOKENS.items() if token in tokens)

    positive += PHRASE_BONUS * sum(1 for phrase in CREDIT_PHRASES if phrase in lower_message)
    negative += PHRASE_BONUS * sum(1 for phrase in DEBIT_PHRASES if phrase in lower_message)

    negated = not tokens.isdisjoint(NEGATION_TOKENS)
    if negated:
        positive, negative = negative, positive

    return SentimentScore(positive=positive, negative=negative, negated=negated)


def analyze_transaction_sentiment(message: str) -> Direction:
    """Classify a message as CREDIT or DEBIT from weighted tokens."""
    return score(message).direction
