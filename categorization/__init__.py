"""Category inference, learning feedback and the expense lifecycle."""

from categorization.engine import CategoryInferenceEngine
from categorization.feedback import LearningFeedbackService
from categorization.keywords import KeywordTable, extract_keywords, normalize_text
from categorization.lifecycle import (
    ExpenseLifecycle,
    LifecycleEvent,
    LifecyclePolicy,
    LifecycleResult,
    transition,
)

__all__ = [
    "CategoryInferenceEngine",
    "ExpenseLifecycle",
    "KeywordTable",
    "LearningFeedbackService",
    "LifecycleEvent",
    "LifecyclePolicy",
    "LifecycleResult",
    "extract_keywords",
    "normalize_text",
    "transition",
]
