"""Category suggestions shown when asking the user to review an expense."""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from categorization.keywords import KeywordTable

DEFAULT_ICON = "📋"

# Below this confidence the picker also offers alternatives
ALTERNATIVES_BELOW = 0.9


@dataclass(frozen=True)
class CategorySuggestion:
    category_id: int
    name: str
    icon: str
    confidence: float
    is_primary: bool


def _suggestion(
    keyword_table: KeywordTable, category_id: int, confidence: float, primary: bool
) -> CategorySuggestion:
    category = keyword_table.get(category_id)
    return CategorySuggestion(
        category_id=category_id,
        name=keyword_table.display_name(category_id),
        icon=category.icon or DEFAULT_ICON,
        confidence=confidence,
        is_primary=primary,
    )


def build_category_suggestions(
    category_id: int,
    confidence: float,
    frequent_category_ids: Iterable[int],
    keyword_table: KeywordTable,
    fallback_slug: Optional[str] = "miscellaneous",
) -> List[CategorySuggestion]:
    """Build the ordered list of categories to offer for an expense.

    The engine's pick comes first. When confidence is below 0.9 the user's
    frequently used categories follow, then the catch-all fallback category.
    Inactive categories and duplicates are left out.

    Args:
        category_id: The suggested category.
        confidence: The engine's confidence in it.
        frequent_category_ids: The user's most used categories, best first.
        keyword_table: Category lookup.
        fallback_slug: Catch-all offered last, if it exists.

    Returns:
        List of CategorySuggestion, primary first.
    """
    suggestions: List[CategorySuggestion] = []
    seen = set()

    def add(cid: int, score: float, primary: bool):
        if cid in seen or not keyword_table.is_active(cid):
            return
        seen.add(cid)
        suggestions.append(_suggestion(keyword_table, cid, score, primary))

    add(category_id, confidence, True)

    if confidence < ALTERNATIVES_BELOW:
        for frequent_id in frequent_category_ids:
            add(frequent_id, 0.0, False)

        fallback = keyword_table.find_by_slug(fallback_slug) if fallback_slug else None
        if fallback is not None:
            add(fallback.id, 0.0, False)

    return suggestions


def build_full_category_list(
    category_id: Optional[int], confidence: float, keyword_table: KeywordTable
) -> List[CategorySuggestion]:
    """Every active category, each root followed by its children.

    Used when the engine is too unsure for a short list. The suggested
    category stays marked as primary in its place in the tree.
    """
    suggestions: List[CategorySuggestion] = []
    for root in keyword_table.roots():
        for cid in (root.id, *keyword_table.children_of(root.id)):
            if not keyword_table.is_active(cid):
                continue
            primary = cid == category_id
            suggestions.append(
                _suggestion(keyword_table, cid, confidence if primary else 0.0, primary)
            )
    return suggestions
