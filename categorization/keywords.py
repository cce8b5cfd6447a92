"""Text normalization, keyword extraction, and the static keyword table.

The keyword table is built once from the active categories and never
mutated afterwards, so the inference engine can read it from any thread.
"""

import re
import unicodedata
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from errors import CategoryNotFound, UnresolvableCategory
from models.category import Category

MIN_KEYWORD_LENGTH = 3

_SPLIT_PATTERN = re.compile(r"[^\w]+|_+")
_WHITESPACE = re.compile(r"\s+")

# Currency words, number words, expense verbs, and common Spanish/English
# function words. Tokens shorter than MIN_KEYWORD_LENGTH never reach this list.
STOPWORDS = frozenset(
    {
        # currency
        "peso", "pesos", "mxn", "usd", "eur", "dollar", "dollars", "dolar",
        "dolares", "euro", "euros", "cents", "centavos",
        # numbers
        "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
        "ten", "hundred", "thousand", "uno", "una", "dos", "tres", "cuatro",
        "cinco", "seis", "siete", "ocho", "nueve", "diez", "cien", "ciento",
        "mil", "half", "medio",
        # expense verbs
        "spent", "spend", "paid", "pay", "bought", "buy", "gaste", "gasto",
        "pague", "pago", "compre",
        # spanish function words
        "que", "los", "las", "por", "con", "para", "como", "pero", "mas",
        "este", "esta", "ese", "esa", "eso", "muy", "sin", "sobre", "hasta",
        "desde", "entre", "del", "unos", "unas", "hoy", "ayer", "antier",
        # english function words
        "the", "and", "for", "that", "have", "with", "this", "but", "from",
        "they", "will", "all", "would", "there", "their", "what", "about",
        "which", "when", "can", "like", "just", "into", "your", "some",
        "them", "other", "than", "then", "now", "only", "its", "over",
        "also", "after", "how", "our", "today", "yesterday",
    }
)


def fold_accents(text: str) -> str:
    """Strip combining marks: 'café' -> 'cafe'."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: Optional[str], fold: bool = True) -> str:
    """Lower-case, trim, collapse whitespace and optionally fold accents."""
    if not text:
        return ""
    normalized = _WHITESPACE.sub(" ", text.strip().lower())
    if fold:
        normalized = fold_accents(normalized)
    return normalized


def extract_keywords(text: Optional[str], fold: bool = True) -> List[str]:
    """Split text into learnable keywords.

    Tokens are split on anything that is not a letter or digit; tokens shorter
    than three characters, pure numbers, and stopwords are dropped. Order of
    first appearance is kept and duplicates are removed.

    Args:
        text: Raw expense text, e.g. ``"Gasté 50 pesos en tacos"``.
        fold: Whether to fold accents before splitting.

    Returns:
        List of keywords, e.g. ``["tacos"]``.
    """
    keywords: List[str] = []
    seen = set()
    for token in _SPLIT_PATTERN.split(normalize_text(text, fold)):
        if len(token) < MIN_KEYWORD_LENGTH:
            continue
        if token.isdigit() or token in STOPWORDS:
            continue
        if token not in seen:
            seen.add(token)
            keywords.append(token)
    return keywords


def keyword_matches(keyword: str, text: str) -> bool:
    """Symmetric substring rule shared by seed and learned keywords.

    A keyword matches when it occurs in the text, or when the whole text
    occurs in the keyword (``"uber"`` matches the seed ``"uber eats"``). The
    reverse direction needs at least MIN_KEYWORD_LENGTH characters of text.
    """
    if not keyword or not text:
        return False
    if keyword in text:
        return True
    return len(text) >= MIN_KEYWORD_LENGTH and text in keyword


class KeywordTable:
    """Immutable index of active categories and their seed keywords.

    Args:
        categories: All categories; inactive ones are kept for lookups but
            never become inference candidates.
        default_slug: Slug of the fallback category for unmatched text.
        fold: Whether seed keywords are accent-folded (must match how the
            engine normalizes input text).

    Raises:
        UnresolvableCategory: If there are no active categories or the
            default category is missing or inactive.
    """

    def __init__(
        self,
        categories: Iterable[Category],
        default_slug: str = "uncategorized",
        fold: bool = True,
    ):
        by_id: Dict[int, Category] = {}
        by_slug: Dict[str, Category] = {}
        children: Dict[int, List[int]] = {}
        keywords: Dict[int, Tuple[str, ...]] = {}

        for category in categories:
            by_id[category.id] = category
            by_slug[category.slug] = category
            if category.parent_id is not None:
                children.setdefault(category.parent_id, []).append(category.id)
            if category.is_active:
                normalized = []
                for kw in category.keywords:
                    kw = normalize_text(kw, fold)
                    if kw and kw not in normalized:
                        normalized.append(kw)
                keywords[category.id] = tuple(normalized)

        if not keywords:
            raise UnresolvableCategory("No active categories are loaded")

        default = by_slug.get(default_slug)
        if default is None or not default.is_active:
            raise UnresolvableCategory(
                f"Default category '{default_slug}' is missing or inactive"
            )

        self.fold = fold
        self.default_category_id = default.id
        self._by_id = MappingProxyType(by_id)
        self._by_slug = MappingProxyType(by_slug)
        self._children = MappingProxyType(
            {parent: tuple(ids) for parent, ids in children.items()}
        )
        self._keywords = MappingProxyType(keywords)

    @property
    def active_keywords(self) -> Mapping[int, Tuple[str, ...]]:
        """Active category id -> normalized seed keywords."""
        return self._keywords

    def is_active(self, category_id: int) -> bool:
        return category_id in self._keywords

    def get(self, category_id: int) -> Category:
        try:
            return self._by_id[category_id]
        except KeyError:
            raise CategoryNotFound(category_id) from None

    def get_by_slug(self, slug: str) -> Category:
        try:
            return self._by_slug[slug]
        except KeyError:
            raise CategoryNotFound(slug) from None

    def find_by_slug(self, slug: str) -> Optional[Category]:
        return self._by_slug.get(slug)

    def children_of(self, category_id: int) -> Tuple[int, ...]:
        return self._children.get(category_id, ())

    def roots(self) -> List[Category]:
        """Root categories, active or not, in load order."""
        return [c for c in self._by_id.values() if c.parent_id is None]

    def display_name(self, category_id: int) -> str:
        """'Parent/Child' for children, the plain name for roots."""
        category = self.get(category_id)
        if category.parent_id is None:
            return category.name
        return f"{self.get(category.parent_id).name}/{category.name}"

    def __len__(self) -> int:
        return len(self._keywords)

    def __repr__(self) -> str:
        return f"KeywordTable({len(self)} active categories)"
