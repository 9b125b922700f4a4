"""Data models for smsledger."""

from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BankCode(str, Enum):
    """Institutions with a dedicated pattern profile."""

    HDFC = "HDFC"
    SBI = "SBI"
    ICICI = "ICICI"
    AXIS = "AXIS"
    KOTAK = "KOTAK"
    YES = "YES"
    BOI = "BOI"
    PNB = "PNB"
    CANARA = "CANARA"
    BOB = "BOB"
    IDBI = "IDBI"
    GENERAL = "GENERAL"  # Sender could not be matched to a known bank


class Direction(str, Enum):
    """Which way the money moved relative to the account holder."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class TransactionCategory(str, Enum):
    """Spending categories assigned by keyword rules."""

    FOOD_DINING = "Food & Dining"
    SHOPPING = "Shopping"
    BILLS_UTILITIES = "Bills & Utilities"
    ENTERTAINMENT = "Entertainment"
    TRANSPORTATION = "Transportation"
    HEALTH = "Health"
    EDUCATION = "Education"
    OTHERS = "Others"


class Transaction(BaseModel):
    """A transaction extracted from a bank notification message."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    bank: BankCode
    direction: Direction
    amount: float = Field(gt=0)
    timestamp: int  # Epoch milliseconds
    description: str
    merchant_name: str | None = None
    original_message: str | None = None
    fingerprint: str  # SHA256(amount + day + merchant + bank:direction)
    category: TransactionCategory = TransactionCategory.OTHERS
    is_recurring: bool = False

    @field_validator("amount")
    @classmethod
    def _round_amount(cls, value: float) -> float:
        return round(value, 2)

    @classmethod
    def create(
        cls,
        bank: BankCode,
        direction: Direction,
        amount: float,
        timestamp: int,
        description: str,
        merchant_name: str | None = None,
        original_message: str | None = None,
        category: TransactionCategory = TransactionCategory.OTHERS,
        is_recurring: bool = False,
    ) -> "Transaction":
        """Build a transaction with its fingerprint derived from the other fields."""
        from smsledger.services.dedup import compute_fingerprint

        return cls(
            bank=bank,
            direction=direction,
            amount=amount,
            timestamp=timestamp,
            description=description,
            merchant_name=merchant_name,
            original_message=original_message,
            fingerprint=compute_fingerprint(round(amount, 2), timestamp, merchant_name, bank, direction),
            category=category,
            is_recurring=is_recurring,
        )

    @property
    def is_debit(self) -> bool:
        return self.direction == Direction.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.direction == Direction.CREDIT


class ProcessStatus(str, Enum):
    """Outcome of running a message through the full pipeline."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class ProcessOutcome(BaseModel):
    """Result of classification plus duplicate checking."""

    status: ProcessStatus
    transaction: Transaction | None = None
    reason: str | None = None  # Rejection reason tag


class MessageRequest(BaseModel):
    """An inbound notification message."""

    message: str = Field(min_length=1)
    sender: str = ""
    timestamp: int | None = None  # Epoch milliseconds, defaults to now


class ClassifyResponse(BaseModel):
    """Dry-run classification result."""

    is_transaction: bool
    stage: str | None = None
    reason: str | None = None
    transaction: Transaction | None = None


class CleanupResponse(BaseModel):
    """Result of a cache cleanup pass."""

    removed: int
    remaining: int
