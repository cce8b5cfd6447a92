"""Learning feedback: turn confirmed and corrected expenses into learned weights."""

from datetime import datetime
from typing import List, Optional

from categorization.keywords import extract_keywords
from logger import get_logger
from models.expense import Expense
from models.learned_keyword import LearnedKeywordWeight

logger = get_logger("feedback")


class LearningFeedbackService:
    """Update the learned weight store from lifecycle outcomes.

    The service only writes learned weights; it never touches the expense.
    It does not guard against being called twice for the same expense, the
    lifecycle only calls it from a transition it won.

    Args:
        weight_store: LearnedWeightService (or anything with the same
            ``reinforce`` and ``penalize`` methods).
        fold: Whether to fold accents when tokenizing.
    """

    def __init__(self, weight_store, fold: bool = True):
        self.weight_store = weight_store
        self.fold = fold

    def keywords_for(self, expense: Expense) -> List[str]:
        return extract_keywords(expense.learning_text, self.fold)

    def on_confirmed(
        self, expense: Expense, now: Optional[datetime] = None
    ) -> List[LearnedKeywordWeight]:
        """Reinforce the expense's keywords for its committed category.

        Returns:
            The learned weights after reinforcement.
        """
        category_id = expense.category_id or expense.suggested_category_id
        keywords = self.keywords_for(expense)
        if category_id is None or not keywords:
            logger.debug(f"Nothing to learn from expense {expense.id}")
            return []

        weights = self.weight_store.reinforce_many(
            expense.user_id, keywords, category_id, now
        )
        logger.info(
            f"Learned {len(weights)} keyword(s) from expense {expense.id} "
            f"-> category {category_id}"
        )
        return weights

    def on_corrected(
        self,
        expense: Expense,
        original_suggested_category_id: Optional[int],
        final_category_id: int,
        now: Optional[datetime] = None,
    ) -> List[LearnedKeywordWeight]:
        """Reinforce the final category and fade the wrong suggestion.

        Existing associations between the expense's keywords and the
        originally suggested category lose 0.2 (floor 0.1). Missing ones are
        not created.

        Returns:
            The reinforced weights for the final category.
        """
        keywords = self.keywords_for(expense)
        if not keywords:
            logger.debug(f"Nothing to learn from corrected expense {expense.id}")
            return []

        weights = self.weight_store.reinforce_many(
            expense.user_id, keywords, final_category_id, now
        )

        penalized = 0
        if (
            original_suggested_category_id is not None
            and original_suggested_category_id != final_category_id
        ):
            for keyword in keywords:
                if self.weight_store.penalize(
                    expense.user_id, keyword, original_suggested_category_id
                ):
                    penalized += 1

        logger.info(
            f"Expense {expense.id} corrected {original_suggested_category_id} -> "
            f"{final_category_id}: reinforced {len(weights)}, penalized {penalized}"
        )
        return weights
