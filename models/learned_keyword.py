"""Learned keyword weight model."""

from dataclasses import dataclass
from datetime import datetime

MAX_WEIGHT = 2.0
INITIAL_WEIGHT = 1.0
REINFORCE_STEP = 0.1
PENALTY_STEP = 0.2
PENALTY_FLOOR = 0.1


@dataclass(frozen=True)
class LearnedKeywordWeight:
    """A per-user association between a keyword and a category.

    At most one row exists per (user_id, keyword, category_id). The same
    keyword may map to several categories for one user.

    Attributes:
        user_id: Owner of the association.
        keyword: Case-folded token taken from a confirmed expense.
        category_id: Category the keyword points at.
        confidence_weight: Weight in [0, 2.0], starts at 1.0.
        usage_count: Number of confirmations that touched this row (>= 1).
        last_used_at: When the row was last reinforced.
    """

    user_id: int
    keyword: str
    category_id: int
    confidence_weight: float
    usage_count: int
    last_used_at: datetime
