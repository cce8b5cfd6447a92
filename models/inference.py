"""Inference result models returned by the category inference engine."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class CategoryScore:
    """Raw score of one candidate category for one piece of text."""

    category_id: int
    slug: str
    score: float
    matched_keywords: Tuple[str, ...]
    last_learned_at: Optional[datetime] = None  # most recent matched learned keyword
    is_child: bool = False


@dataclass(frozen=True)
class InferenceResult:
    """Top category pick for a text, with its normalized confidence.

    Attributes:
        category_id: Winning category, or the default category when nothing matched.
        confidence: ``score / (score + k)``, 0.0 when nothing matched.
        matched_keywords: Seed and learned keywords that scored for the winner.
        candidates: All scoring categories, best first.
    """

    category_id: int
    confidence: float
    matched_keywords: Tuple[str, ...] = ()
    candidates: Tuple[CategoryScore, ...] = ()

    @property
    def is_fallback(self) -> bool:
        return not self.candidates
