"""Expense model and its lifecycle status."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional

CENTS = Decimal("0.01")


class ExpenseStatus(str, Enum):
    """Lifecycle status of an expense."""

    PENDING = "pending"
    NEEDS_REVIEW = "needs_review"
    AUTO_CONFIRMED = "auto_confirmed"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_committed(self) -> bool:
        """True when the expense has a final category."""
        return self in (ExpenseStatus.AUTO_CONFIRMED, ExpenseStatus.CONFIRMED)


TERMINAL_STATUSES = frozenset(
    {ExpenseStatus.AUTO_CONFIRMED, ExpenseStatus.CONFIRMED, ExpenseStatus.REJECTED}
)


def quantize_amount(amount) -> Decimal:
    """Round an amount to two decimal places (fixed-point money)."""
    return Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_positive_amount(value) -> Optional[Decimal]:
    """Quantize an amount, or return None if it is not a positive number of cents.

    NaN, infinities and anything that rounds to 0.00 are rejected.
    """
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            return None
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None
    return amount if amount > 0 else None


@dataclass
class ExtractedDraft:
    """Structured data returned by the extraction oracle.

    ``amount`` is Optional because the oracle may hand back a draft without
    one; such drafts are rejected before an expense is created.
    """

    amount: Optional[Decimal]
    description: str
    raw_input: str
    currency: str = "MXN"
    merchant_name: Optional[str] = None
    expense_date: Optional[date] = None
    confidence_score: Optional[float] = None


@dataclass
class Expense:
    id: int
    user_id: int
    amount: Decimal  # always positive, 2 decimals
    currency: str
    description: str
    raw_input: Optional[str]
    expense_date: date
    status: ExpenseStatus
    created_at: datetime
    suggested_category_id: Optional[int] = None  # engine's pick, never rewritten
    category_confidence: float = 0.0
    category_id: Optional[int] = None  # set only by a committing transition
    merchant_name: Optional[str] = None
    extraction_confidence: Optional[float] = None
    matched_keywords: List[str] = field(default_factory=list)
    confirmed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def learning_text(self) -> str:
        """Text the feedback loop tokenizes: raw input, else the description."""
        return self.raw_input or self.description
