"""Category inference engine.

Scores every active category for a piece of text by combining static seed
keyword hits with the user's learned keyword weights, then picks a winner
with a deterministic tie-break.
"""

from datetime import datetime
from typing import Dict, List, Optional

from categorization.keywords import KeywordTable, keyword_matches, normalize_text
from logger import get_logger
from models.inference import CategoryScore, InferenceResult

logger = get_logger("inference")

SEED_KEYWORD_SCORE = 1.0

# Scores are summed floats; rounding keeps 1.0 + 1.1 and 2.1 an exact tie.
_SCORE_PRECISION = 6


class _Tally:
    __slots__ = ("score", "keywords", "last_learned_at")

    def __init__(self):
        self.score = 0.0
        self.keywords: List[str] = []
        self.last_learned_at: Optional[datetime] = None

    def add(self, keyword: str, amount: float, learned_at: Optional[datetime] = None):
        self.score += amount
        if keyword not in self.keywords:
            self.keywords.append(keyword)
        if learned_at is not None and (
            self.last_learned_at is None or learned_at > self.last_learned_at
        ):
            self.last_learned_at = learned_at


class CategoryInferenceEngine:
    """Pick the most likely category for an expense text.

    The engine holds no mutable state of its own. It reads the immutable
    keyword table and, per call, the user's learned weights, so ``infer`` is
    safe to call from several threads at once.

    Args:
        keyword_table: Active categories and their seed keywords.
        weight_store: Source of learned weights (``find_for_user``).
        smoothing_constant: ``k`` in ``confidence = score / (score + k)``.
    """

    def __init__(
        self,
        keyword_table: KeywordTable,
        weight_store,
        smoothing_constant: float = 1.0,
    ):
        if smoothing_constant <= 0:
            raise ValueError("smoothing_constant must be positive")
        self.keyword_table = keyword_table
        self.weight_store = weight_store
        self.smoothing_constant = smoothing_constant

    def infer(self, text: Optional[str], user_id: int) -> InferenceResult:
        """Infer the category of an expense text for a user.

        Args:
            text: Expense text; normalized again here, so raw text is fine.
            user_id: User whose learned weights take part in scoring.

        Returns:
            InferenceResult for the winning category. Unmatched or empty text
            yields the default category with confidence 0.
        """
        normalized = normalize_text(text, self.keyword_table.fold)
        if not normalized:
            return self._fallback()

        tallies: Dict[int, _Tally] = {}

        for category_id, keywords in self.keyword_table.active_keywords.items():
            for keyword in keywords:
                if keyword_matches(keyword, normalized):
                    tallies.setdefault(category_id, _Tally()).add(
                        keyword, SEED_KEYWORD_SCORE
                    )

        for weight in self.weight_store.find_for_user(user_id):
            if not self.keyword_table.is_active(weight.category_id):
                continue
            if keyword_matches(weight.keyword, normalized):
                tallies.setdefault(weight.category_id, _Tally()).add(
                    weight.keyword, weight.confidence_weight, weight.last_used_at
                )

        candidates = [
            self._to_score(category_id, tally)
            for category_id, tally in tallies.items()
            if tally.score > 0
        ]
        if not candidates:
            return self._fallback()

        candidates.sort(key=_rank_key)
        winner = candidates[0]
        confidence = winner.score / (winner.score + self.smoothing_constant)

        logger.debug(
            f"Inferred '{winner.slug}' for user={user_id} "
            f"(score={winner.score}, confidence={confidence:.3f}, "
            f"keywords={list(winner.matched_keywords)})"
        )

        return InferenceResult(
            category_id=winner.category_id,
            confidence=confidence,
            matched_keywords=winner.matched_keywords,
            candidates=tuple(candidates),
        )

    def _to_score(self, category_id: int, tally: _Tally) -> CategoryScore:
        category = self.keyword_table.get(category_id)
        return CategoryScore(
            category_id=category_id,
            slug=category.slug,
            score=round(tally.score, _SCORE_PRECISION),
            matched_keywords=tuple(tally.keywords),
            last_learned_at=tally.last_learned_at,
            is_child=not category.is_root,
        )

    def _fallback(self) -> InferenceResult:
        return InferenceResult(
            category_id=self.keyword_table.default_category_id, confidence=0.0
        )


def _rank_key(candidate: CategoryScore):
    """Sort key: best candidate first.

    Highest score, then most recently used learned keyword, then child before
    parent, then smallest slug.
    """
    learned = candidate.last_learned_at
    return (
        -candidate.score,
        learned is None,
        -learned.timestamp() if learned else 0.0,
        not candidate.is_child,
        candidate.slug,
    )
