"""Message classification: decide whether a message is a transaction and parse it.

A message passes through an ordered list of named stages. Each stage either
lets the message through or rejects it with a reason tag; the first rejection
ends evaluation. Rejection is the common outcome (OTPs, balance alerts,
promotions) and is reported by returning None, never by raising.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from smsledger.models import BankCode, Direction, Transaction
from smsledger.parsers.banks import BankPatternRegistry, BankProfile, registry
from smsledger.parsers.categories import detect_category, is_recurring
from smsledger.parsers.lexical import (
    extract_amount,
    extract_merchant_name,
    generate_description,
    has_currency_amount,
)
from smsledger.parsers.sentiment import analyze_transaction_sentiment
from smsledger.parsers.validation import is_blank

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

TRANSACTION_VERBS = (
    "debited",
    "credited",
    "paid",
    "sent",
    "received",
    "transfer",
    "payment",
    "spent",
    "purchased",
    "transaction",
)
_TRANSACTION_VERB = re.compile(r"\b(?:" + "|".join(TRANSACTION_VERBS) + r")")
_STRONG_VERB = re.compile(r"\b(?:debited|credited|paid|received)\b")
_DEBIT_CREDIT_VERB = re.compile(
    r"\b(?:debited|credited|paid|received|sent|spent|withdrawn|transferred|deposited|purchased)\b"
)

_ACCOUNT_REFERENCE = re.compile(r"\ba/c\b|\bacct\b|\baccount\b|\bac no\b")
_COMPLETION = re.compile(r"\b(?:has been|have been|was|successful(?:ly)?|completed|processed|done)\b")

_OTP = re.compile(
    r"\botp\b|one[\s-]?time password|verification|\bverify\b|\blog\s?-?in\b|security code|secure code|passcode"
)
_BALANCE = re.compile(r"\bbal(?:ance)?\b|\bstatement\b|\bstmt\b")
_FUTURE = re.compile(r"\b(?:will be|shall be|scheduled|upcoming|reminder|remind)\b")
_DUE = re.compile(
    r"\b(?:min(?:imum)?\.?\s*(?:amt\.?|amount)?\s*due|total\s*(?:amt\.?|amount)?\s*due"
    r"|due date|due on|due by|is due|payment due|overdue)\b"
)
_URL = re.compile(r"https?://|www\.|bit\.ly/")
_TERMS = re.compile(r"\bt\s?&\s?c\b|terms (?:and|&) conditions")
_CALL_TO_ACTION = re.compile(
    r"apply now|buy now|shop now|avail now|click here|download now|register now|check eligibility|call now"
)
_LOAN_OFFER = re.compile(r"\b(?:loan|credit card|credit limit)\b.*\b(?:offer|pre-?\s?approved|eligible)\b")
_MARKETING_TERMS = ("offer", "discount", "% off", "limited time", "exclusive", "hurry", "free", "deal", "voucher")

EXPLICIT_DEBIT_PHRASES = (
    "debited from",
    "debited for",
    "debited by",
    "debited with",
    "withdrawn from",
    "deducted from",
    "paid to",
    "sent to",
    "spent on",
    "spent at",
    "spent using",
    "purchase at",
)
EXPLICIT_CREDIT_PHRASES = (
    "credited to",
    "credited with",
    "credited in",
    "credited by",
    "received from",
    "received in",
    "deposited in",
    "deposited to",
    "refunded to",
    "added to your",
)
_POSSESSIVE_CONTEXT = ("your", "a/c", "account")
_STRONG_DEBIT = re.compile(r"\b(?:paid|spent|purchased?)\b")
_STRONG_CREDIT = re.compile(r"\b(?:received|income|salary)\b")


# ---------------------------------------------------------------------------
# Exclusion filters
# ---------------------------------------------------------------------------


def is_otp_message(lower_message: str) -> bool:
    return bool(_OTP.search(lower_message))


def is_balance_enquiry(lower_message: str) -> bool:
    """Balance or statement notice that does not report money moving."""
    return bool(_BALANCE.search(lower_message)) and not _DEBIT_CREDIT_VERB.search(lower_message)


def is_future_notice(lower_message: str) -> bool:
    """Scheduled or reminder phrasing without any completion language."""
    return bool(_FUTURE.search(lower_message)) and not _COMPLETION.search(lower_message)


def is_due_statement(lower_message: str) -> bool:
    return bool(_DUE.search(lower_message))


def is_promotional(lower_message: str) -> bool:
    if _URL.search(lower_message) or _TERMS.search(lower_message):
        return True
    if _CALL_TO_ACTION.search(lower_message) or _LOAN_OFFER.search(lower_message):
        return True
    return sum(1 for term in _MARKETING_TERMS if term in lower_message) >= 2


EXCLUSION_FILTERS: tuple[tuple[str, Callable[[str], bool]], ...] = (
    ("otp", is_otp_message),
    ("balance_enquiry", is_balance_enquiry),
    ("future_tense", is_future_notice),
    ("due_statement", is_due_statement),
    ("promotional", is_promotional),
)


# ---------------------------------------------------------------------------
# Stage pipeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MessageContext:
    """Everything a stage may look at, computed once per message."""

    message: str
    lower: str
    sender: str
    bank: BankCode
    profile: BankProfile

    @property
    def bank_known(self) -> bool:
        return self.bank != BankCode.GENERAL


@dataclass(frozen=True)
class ClassificationVerdict:
    accepted: bool
    stage: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class Stage:
    """A named gate; `check` returns a rejection reason or None to pass."""

    name: str
    check: Callable[[MessageContext], str | None]


def _exclusion_stage(ctx: MessageContext) -> str | None:
    for name, predicate in EXCLUSION_FILTERS:
        if predicate(ctx.lower):
            return name
    return None


def _positive_evidence_stage(ctx: MessageContext) -> str | None:
    if not has_currency_amount(ctx.message):
        return "no_amount"
    if not _TRANSACTION_VERB.search(ctx.lower):
        return "no_transaction_verb"
    return None


def _bank_confirmation_stage(ctx: MessageContext) -> str | None:
    if ctx.bank_known and ctx.profile.has_transaction_patterns:
        if not ctx.profile.matches_transaction_shape(ctx.message):
            return "bank_pattern_mismatch"
    return None


def _confidence_stage(ctx: MessageContext) -> str | None:
    has_amount = has_currency_amount(ctx.message)
    has_verb = bool(_TRANSACTION_VERB.search(ctx.lower))

    if _ACCOUNT_REFERENCE.search(ctx.lower) and _COMPLETION.search(ctx.lower):
        return None
    if _STRONG_VERB.search(ctx.lower) and has_amount:
        return None
    if ctx.bank_known and has_amount and has_verb:
        return None
    return "low_confidence"


DEFAULT_STAGES: tuple[Stage, ...] = (
    Stage("exclusion", _exclusion_stage),
    Stage("positive_evidence", _positive_evidence_stage),
    Stage("bank_confirmation", _bank_confirmation_stage),
    Stage("confidence", _confidence_stage),
)


def run_stages(stages: tuple[Stage, ...], ctx: MessageContext) -> ClassificationVerdict:
    """Evaluate stages in order, stopping at the first rejection."""
    for stage in stages:
        reason = stage.check(ctx)
        if reason is not None:
            return ClassificationVerdict(accepted=False, stage=stage.name, reason=reason)
    return ClassificationVerdict(accepted=True)


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


def _earliest(lower_message: str, phrases: tuple[str, ...]) -> int:
    positions = [lower_message.find(p) for p in phrases]
    positions = [p for p in positions if p >= 0]
    return min(positions) if positions else -1


class MessageClassifier:
    """Accept/reject gate, direction classifier and transaction builder."""

    def __init__(
        self,
        bank_registry: BankPatternRegistry = registry,
        stages: tuple[Stage, ...] = DEFAULT_STAGES,
    ):
        self.registry = bank_registry
        self.stages = stages

    def _context(self, message: str, sender: str | None) -> MessageContext:
        bank = self.registry.identify_bank(sender, message)
        return MessageContext(
            message=message,
            lower=message.lower(),
            sender=sender or "",
            bank=bank,
            profile=self.registry.profile_or_general(bank),
        )

    def evaluate(self, message: str, sender: str | None = None) -> ClassificationVerdict:
        """Run the stage pipeline and report which stage (if any) rejected."""
        if is_blank(message):
            return ClassificationVerdict(accepted=False, stage="input", reason="empty_message")
        return run_stages(self.stages, self._context(message, sender))

    def is_transaction_message(self, message: str, sender: str | None = None) -> bool:
        return self.evaluate(message, sender).accepted

    def determine_transaction_type(self, message: str) -> Direction:
        """
        Decide whether a message reports a debit or a credit.

        Order of evidence:
            1. Explicit phrases ("debited from", "credited to", ...); earliest wins
            2. debited/credited next to "your"/"a/c"/"account"
            3. Strong verbs, then first occurrence, when both directions appear
            4. Weighted-token sentiment as the fallback
        """
        lower_message = (message or "").lower()

        debit_at = _earliest(lower_message, EXPLICIT_DEBIT_PHRASES)
        credit_at = _earliest(lower_message, EXPLICIT_CREDIT_PHRASES)
        if debit_at >= 0 or credit_at >= 0:
            if credit_at < 0 or (0 <= debit_at < credit_at):
                return Direction.DEBIT
            return Direction.CREDIT

        possessive = any(word in lower_message for word in _POSSESSIVE_CONTEXT)
        is_debit = possessive and "debited" in lower_message
        is_credit = possessive and "credited" in lower_message

        if is_debit and is_credit:
            if _STRONG_DEBIT.search(lower_message):
                return Direction.DEBIT
            if _STRONG_CREDIT.search(lower_message):
                return Direction.CREDIT
            if lower_message.find("debited") < lower_message.find("credited"):
                return Direction.DEBIT
            return Direction.CREDIT

        if is_debit:
            return Direction.DEBIT
        if is_credit:
            return Direction.CREDIT

        return analyze_transaction_sentiment(lower_message)

    def analyze(
        self, message: str, sender: str | None, timestamp: int
    ) -> tuple[ClassificationVerdict, Transaction | None]:
        """
        Run the gate once and parse the message if it passes.

        Args:
            message: Notification text
            sender: Sender id, may be empty
            timestamp: Delivery time in epoch milliseconds

        Returns:
            Tuple of (verdict, transaction or None). A message that passes the
            gate but yields no usable amount is reported as rejected at the
            "extraction" stage.
        """
        if is_blank(message):
            return ClassificationVerdict(accepted=False, stage="input", reason="empty_message"), None

        ctx = self._context(message, sender)
        verdict = run_stages(self.stages, ctx)
        if not verdict.accepted:
            logger.debug(f"Rejected at {verdict.stage} ({verdict.reason}): {message[:60]!r}")
            return verdict, None

        bank = ctx.bank

        amount = extract_amount(message, bank, self.registry)
        if amount is None:
            logger.debug(f"Could not extract amount: {message[:60]!r}")
            return ClassificationVerdict(accepted=False, stage="extraction", reason="invalid_amount"), None

        direction = self.determine_transaction_type(message)
        merchant_name = extract_merchant_name(message)
        description = generate_description(message, direction, merchant_name)

        transaction = Transaction.create(
            bank=bank,
            direction=direction,
            amount=amount,
            timestamp=timestamp,
            description=description,
            merchant_name=merchant_name or None,
            original_message=message,
            category=detect_category(message, merchant_name),
            is_recurring=is_recurring(message, description),
        )

        logger.debug(
            f"Parsed transaction: {description}, Amount: {amount:.2f}, "
            f"Type: {direction.value}, Bank: {bank.value}"
        )
        return verdict, transaction

    def parse_transaction(self, message: str, sender: str | None, timestamp: int) -> Transaction | None:
        """Parse a message into a fingerprinted transaction, or None if it is not one."""
        return self.analyze(message, sender, timestamp)[1]

    def classify(self, message: str, sender: str | None, timestamp: int) -> Transaction | None:
        return self.parse_transaction(message, sender, timestamp)


# Global classifier instance
classifier = MessageClassifier()
