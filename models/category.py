"""Category model for expense categorization."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Category:
    """Represents an expense category in a two-level tree.

    Attributes:
        id: Unique identifier (auto-generated).
        name: Display name.
        slug: Unique, stable identifier independent of the display name.
        parent_id: Parent category ID, or None for a root category.
        keywords: Ordered seed keywords used for static matching.
        is_active: Inactive categories are never inference candidates.
        description: Optional description of what belongs in this category.
        icon: Optional emoji shown by the chat transport.
        sort_order: Display ordering among siblings.
    """

    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    keywords: List[str] = field(default_factory=list)
    is_active: bool = True
    description: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def display_id(self) -> int:
        """ID used when aggregating: children roll up to their parent."""
        return self.id if self.parent_id is None else self.parent_id
