"""Lexical extraction of amounts, merchants, references and descriptions."""

import logging
import re

from smsledger.models import BankCode, Direction
from smsledger.parsers.banks import BankPatternRegistry, registry
from smsledger.parsers.validation import normalize_message, parse_amount_safe

logger = logging.getLogger(__name__)

_NUMBER = r"(\d+(?:,\d+)*(?:\.\d{1,2})?)"

# General currency patterns, in priority order
GENERAL_AMOUNT_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"(?<![A-Za-z])(?:Rs\.?|INR|₹)\s*" + _NUMBER, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*(?:Rs\.?|INR|₹)(?![A-Za-z])", re.IGNORECASE),
)

# Looser capture used only when everything else missed
LAST_RESORT_AMOUNT_PATTERN = re.compile(r"(?<![A-Za-z])(?:Rs\.?|INR|₹)\s*(\d+(?:[.,]\d+)*)", re.IGNORECASE)

MERCHANT_INDICATORS: tuple[str, ...] = (
    "at",
    "to",
    "towards",
    "for",
    "via",
    "through",
    "merchant",
    "payee",
    "beneficiary",
)

_MERCHANT_TERMINATOR = re.compile(
    r"on|of|via|using|through|for|info|alert|\d[\d:/.,-]*|inr|rs|upi|dated|ref|(?:rs\.?|inr|₹)[\d,.]+"
)
_NOT_A_MERCHANT = {"your", "you", "a/c", "ac", "account"}
_MAX_MERCHANT_WORDS = 4

_UPI_MERCHANT_PATTERN = re.compile(r"UPI-([A-Za-z0-9 ]+?)-")
_REF_ADJACENT_PATTERN = re.compile(r"\b(?:ref|id)\b\s*(?:no)?\s*:?\s*[a-z0-9]+\s+([a-z0-9\s]+)")

REFERENCE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\bRef(?:erence)?(?:\s*No)?\.?\s*[:#]\s*([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"\b(?:txn|transaction)\s*(?:id|no)\b\.?\s*[:#]?\s*([A-Za-z0-9]*\d[A-Za-z0-9]*)", re.IGNORECASE),
    re.compile(r"\bUPI\s*Ref\s*No\.?\s*[:#]?\s*([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"\bIMPS\s*[:#-]?\s*([A-Za-z0-9]*\d[A-Za-z0-9]*)", re.IGNORECASE),
)

# Transaction method detection, highest precedence first
TRANSACTION_METHODS: tuple[tuple[str, re.Pattern], ...] = (
    ("UPI", re.compile(r"\bupi\b")),
    ("NEFT", re.compile(r"\bneft\b")),
    ("IMPS", re.compile(r"\bimps\b")),
    ("RTGS", re.compile(r"\brtgs\b")),
    ("ATM", re.compile(r"\batm\b|cash withdrawal")),
    ("NetBanking", re.compile(r"net\s?banking")),
    ("Credit Card", re.compile(r"credit card")),
    ("Debit Card", re.compile(r"\bcard\b")),
)


def has_currency_amount(message: str) -> bool:
    """Check whether the message contains a currency-amount shaped substring."""
    return any(pattern.search(message) for pattern in GENERAL_AMOUNT_PATTERNS)


def _first_amount(pattern: re.Pattern, message: str) -> float | None:
    match = pattern.search(message)
    if not match:
        return None
    amount, ok = parse_amount_safe(match.group(1))
    return amount if ok else None


def extract_amount(
    message: str,
    bank: BankCode | None = None,
    bank_registry: BankPatternRegistry = registry,
) -> float | None:
    """
    Extract the transaction amount from a message.

    Tries the bank's own amount patterns, then the general currency patterns,
    then a loose last-resort pattern. A capture that fails to parse is a miss
    for that pattern only.

    Args:
        message: Raw message text
        bank: Bank resolved for the message, if any
        bank_registry: Registry supplying bank amount patterns

    Returns:
        Amount rounded to 2 decimals, or None if nothing parsed
    """
    text = normalize_message(message)

    candidates: list[re.Pattern] = []
    if bank is not None and bank != BankCode.GENERAL:
        profile = bank_registry.profile_for(bank)
        if profile is not None:
            candidates.extend(profile.amount_patterns)
    candidates.extend(GENERAL_AMOUNT_PATTERNS)
    candidates.append(LAST_RESORT_AMOUNT_PATTERN)

    for pattern in candidates:
        amount = _first_amount(pattern, text)
        if amount is not None:
            return amount

    return None


def capitalize_words(text: str) -> str:
    """Upper-case the first letter of each whitespace-separated word."""
    return " ".join(word[:1].upper() + word[1:] for word in text.split())


def _merchant_after(sentence: str, position: int) -> str:
    words = sentence[position:].split()
    if words and words[0].rstrip(",.;:") in _NOT_A_MERCHANT:
        return ""

    picked: list[str] = []
    for word in words[:_MAX_MERCHANT_WORDS]:
        bare = word.rstrip(",.;:")
        if not bare or _MERCHANT_TERMINATOR.fullmatch(bare):
            break
        picked.append(word)
        if bare != word:
            # Trailing comma or semicolon closes the name
            break

    return re.sub(r"[,.;:]+$", "", " ".join(picked)).strip()


def extract_merchant_name(message: str) -> str:
    """
    Extract a merchant or counterparty name from a message.

    Returns:
        Title-cased merchant name, or "" when nothing is found
    """
    if not message:
        return ""

    lower_message = message.lower()

    for sentence in re.split(r"[.!?]", lower_message):
        for indicator in MERCHANT_INDICATORS:
            needle = f" {indicator} "
            start = sentence.find(needle)
            while start >= 0:
                name = _merchant_after(sentence, start + len(needle))
                if name:
                    return capitalize_words(name)
                start = sentence.find(needle, start + 1)

    upi_match = _UPI_MERCHANT_PATTERN.search(message)
    if upi_match and upi_match.group(1).strip():
        return capitalize_words(upi_match.group(1).strip().lower())

    ref_match = _REF_ADJACENT_PATTERN.search(lower_message)
    if ref_match:
        candidate = ref_match.group(1).strip()
        # Skip dates and short fragments
        if not re.fullmatch(r"\d{1,2}/\d{1,2}", candidate) and len(candidate) > 3:
            return capitalize_words(candidate)

    return ""


def extract_reference_number(message: str) -> str:
    """Extract a transaction reference number, or "" if none is present."""
    if not message:
        return ""

    for pattern in REFERENCE_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)

    return ""


def determine_transaction_method(message: str) -> str:
    lower_message = message.lower()
    for method, pattern in TRANSACTION_METHODS:
        if pattern.search(lower_message):
            return method
    return "Transaction"


def generate_description(message: str, direction: Direction, merchant_name: str | None) -> str:
    """
    Build a human-readable description.

    Examples:
        "UPI payment to Swiggy (Ref: ABC123)"
        "NEFT received from Acme Corp"
    """
    method = determine_transaction_method(message)

    if direction == Direction.DEBIT:
        description = f"{method} payment"
        if merchant_name:
            description += f" to {merchant_name}"
    else:
        description = f"{method} received"
        if merchant_name:
            description += f" from {merchant_name}"

    reference = extract_reference_number(message)
    if reference:
        description += f" (Ref: {reference})"

    return description
