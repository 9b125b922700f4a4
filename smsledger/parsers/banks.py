"""Bank pattern registry.

Each supported institution has a profile with three ordered pattern lists:

- identification patterns, matched against the sender id and then the message body
- amount patterns, tried before the general currency patterns
- transaction-shape patterns, one of which a message must match to be accepted
  as that bank's transaction alert

The registry is built once at import time and never mutated afterwards, so it is
safe to share across worker threads.
"""

import logging
import re
from dataclasses import dataclass

from smsledger.models import BankCode

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

# Amount capture shared by most banks: "Rs.1,234.50", "INR 500", "Rs 20"
_AMOUNT = r"(?<![A-Za-z])(?:Rs\.?|INR|₹)\s*(\d+(?:,\d+)*(?:\.\d{1,2})?)"


@dataclass(frozen=True)
class BankProfile:
    """Immutable bundle of regex patterns for one institution."""

    code: BankCode
    identification_patterns: tuple[re.Pattern, ...] = ()
    amount_patterns: tuple[re.Pattern, ...] = ()
    transaction_patterns: tuple[re.Pattern, ...] = ()

    def __post_init__(self) -> None:
        if self.code != BankCode.GENERAL and not self.identification_patterns:
            raise ValueError(f"Bank profile {self.code.value} needs at least one identification pattern")

    @property
    def has_transaction_patterns(self) -> bool:
        return bool(self.transaction_patterns)

    def matches_sender(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.identification_patterns)

    def matches_transaction_shape(self, message: str) -> bool:
        return any(pattern.search(message) for pattern in self.transaction_patterns)


def _profile(
    code: BankCode,
    identification: list[str],
    amounts: list[str],
    transactions: list[str],
) -> BankProfile:
    return BankProfile(
        code=code,
        identification_patterns=tuple(re.compile(p, _I) for p in identification),
        amount_patterns=tuple(re.compile(p, _I) for p in amounts),
        transaction_patterns=tuple(re.compile(p, _I) for p in transactions),
    )


# Insertion order is the matching order for identify_bank.
DEFAULT_PROFILES: tuple[BankProfile, ...] = (
    _profile(
        BankCode.HDFC,
        [r"HDFC(?:BK)?", r"\bHD\s?FC\b"],
        [_AMOUNT + r"\s+has been (?:debited|credited)"],
        [
            r"(?:debited|credited) (?:from|to) your.*(?:a/c|account)",
            r"Info: (?:INR|Rs).*(?:debited|credited|spent)",
            r"(?:payment|purchase|transfer).*(?:made|done|completed)",
            r"(?:sent|spent|paid) .*(?:from|using|on) .*HDFC",
        ],
    ),
    _profile(
        BankCode.SBI,
        [r"\bSBI(?:INB|PSG|UPI)?", r"State Bank"],
        [_AMOUNT + r"\s*(?:debited|credited)"],
        [
            r"(?:debited|credited) (?:from|to|in) your (?:SBI )?(?:a/c|account)",
            r"DEBIT.*A/c no",
            r"CREDIT.*A/c no",
            r"a/c.*(?:debited|credited) by",
            r"withdrawn.*(?:ATM|POS)",
        ],
    ),
    _profile(
        BankCode.ICICI,
        [r"ICICI(?:B)?", r"I-Mobile"],
        [_AMOUNT + r"\s*has been"],
        [
            r"(?:debited|credited) (?:from|to) your ICICI Bank",
            r"ICICI Bank (?:Acct|Account|a/c).*(?:debited|credited)",
            r"Transaction of INR.*(?:done|completed)",
            r"Txn of (?:Rs|INR).*(?:made|processed)",
        ],
    ),
    _profile(
        BankCode.AXIS,
        [r"AXIS(?:BK)?"],
        [_AMOUNT + r"\s*(?:debited|credited)"],
        [
            r"Your Axis Bank .* has been debited",
            r"Your Axis Bank .* has been credited",
            r"(?:debited|credited) (?:from|to) (?:your )?(?:Axis Bank )?(?:a/c|account)",
            r"(?:UPI|NEFT|IMPS|RTGS) transaction",
        ],
    ),
    _profile(
        BankCode.KOTAK,
        [r"KOTAK(?:B)?"],
        [_AMOUNT],
        [
            r"Money transferred|Payment made",
            r"has been debited from your account",
            r"has been credited to your account",
            r"(?:sent|received) .*(?:from|to) Kotak",
        ],
    ),
    _profile(
        BankCode.YES,
        [r"YESBNK", r"\bYES\s?BANK\b"],
        [_AMOUNT],
        [
            r"Your YES BANK .* has been debited",
            r"Your YES BANK .* has been credited",
            r"(?:UPI|NEFT|IMPS|RTGS) transaction",
        ],
    ),
    _profile(
        BankCode.BOI,
        [r"\bBOI(?:IND)?\b", r"Bank of India"],
        [_AMOUNT],
        [r"debited for", r"credited with", r"Transaction of Rs", r"(?:debited|credited) (?:from|to) your"],
    ),
    _profile(
        BankCode.PNB,
        [r"\bPNB(?:SMS)?\b", r"Punjab National"],
        [_AMOUNT],
        [r"debited from your (?:a/c|account)", r"credited to your (?:a/c|account)", r"Transaction of Rs"],
    ),
    _profile(
        BankCode.CANARA,
        [r"CANBNK", r"Canara"],
        [_AMOUNT],
        [r"Your a/c is (?:debited|credited)", r"(?:debited|credited) (?:from|to) your", r"transaction at"],
    ),
    _profile(
        BankCode.BOB,
        [r"\bBOB(?:TXN)?\b", r"Bank of Baroda"],
        [_AMOUNT],
        [r"debited from your", r"credited to your", r"transaction for"],
    ),
    _profile(
        BankCode.IDBI,
        [r"\bIDBI(?:BK)?"],
        [_AMOUNT],
        [r"debited from your", r"credited to your", r"Payment of"],
    ),
    _profile(
        BankCode.GENERAL,
        [],
        [_AMOUNT],
        [
            r"has been (?:debited|credited)",
            r"(?:debited|credited) (?:from|to) your account",
            r"(?:UPI|NEFT|IMPS|RTGS) transaction",
            r"(?:payment|purchase) (?:of|for) (?:Rs\.?|INR)",
        ],
    ),
)


class BankPatternRegistry:
    """Read-only lookup from sender/message to a bank profile."""

    def __init__(self, profiles: tuple[BankProfile, ...] = DEFAULT_PROFILES):
        self._profiles: dict[BankCode, BankProfile] = {profile.code: profile for profile in profiles}

    @property
    def codes(self) -> list[BankCode]:
        return list(self._profiles)

    def identify_bank(self, sender: str | None, message: str | None) -> BankCode:
        """
        Identify the bank behind a message.

        The sender id is tried against every profile first; only when no
        profile claims the sender is the message body searched. Absence of a
        match is signalled by GENERAL rather than an error.
        """
        for text in (sender, message):
            if not text:
                continue
            for code, profile in self._profiles.items():
                if profile.matches_sender(text):
                    return code
        return BankCode.GENERAL

    def profile_for(self, code: BankCode) -> BankProfile | None:
        """Direct lookup; None means the caller should fall back to GENERAL."""
        return self._profiles.get(code)

    def profile_or_general(self, code: BankCode) -> BankProfile:
        profile = self.profile_for(code)
        if profile is None:
            logger.debug(f"No profile for {code}, using GENERAL")
            return self._profiles[BankCode.GENERAL]
        return profile


# Global registry instance
registry = BankPatternRegistry()
