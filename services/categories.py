"""Category service for database operations."""

import json
from typing import List, Optional, Tuple

from errors import CategoryDepthError, CategoryNotFound
from logger import get_logger
from models.category import Category

logger = get_logger("categories")

_CATEGORY_SELECT_FIELDS = (
    "id, name, slug, parent_id, keywords, is_active, description, icon, sort_order"
)


class CategoryService:
    """Service for managing the two-level category tree.

    The depth rule (a category is a root or the child of a root) is
    enforced here, when categories are created or re-parented.
    """

    def __init__(self, db_manager):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Category]:
        """Get all categories from the database.

        Returns:
            List of Category objects, ordered by sort order then name.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories ORDER BY sort_order, name"
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def find_active(self) -> List[Category]:
        """Get only active categories, ordered like find_all()."""
        return [c for c in self.find_all() if c.is_active]

    def find(self, category_id: int) -> Optional[Category]:
        """Get a single category by ID.

        Args:
            category_id: The category ID to find.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories WHERE id = ?",
                (category_id,),
            )
            row = cursor.fetchone()
            return self._row_to_category(row) if row else None

    def find_by_slug(self, slug: str) -> Optional[Category]:
        """Get a single category by its slug."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories WHERE slug = ?",
                (slug,),
            )
            row = cursor.fetchone()
            return self._row_to_category(row) if row else None

    def find_children(self, parent_id: int) -> List[Category]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_CATEGORY_SELECT_FIELDS} FROM categories
                WHERE parent_id = ? ORDER BY sort_order, name
                """,
                (parent_id,),
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def create(
        self,
        name: str,
        slug: str,
        keywords: Optional[List[str]] = None,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> Category:
        """Create a new category.

        Args:
            name: Display name.
            slug: Unique stable identifier.
            keywords: Seed keywords for static matching.
            parent_id: Optional parent; must itself be a root category.
            description: Optional description of the category.
            icon: Optional emoji.
            sort_order: Ordering among siblings.
            is_active: Whether the category takes part in inference.

        Returns:
            The created Category object with id populated.

        Raises:
            CategoryNotFound: If the parent does not exist.
            CategoryDepthError: If the parent is itself a child.
            sqlite3.IntegrityError: If the slug is already taken.
        """
        keywords = list(keywords or [])
        if parent_id is not None:
            self._require_root_parent(parent_id)

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO categories
                    (name, slug, parent_id, keywords, is_active, description, icon, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    name,
                    slug,
                    parent_id,
                    json.dumps(keywords, ensure_ascii=False),
                    int(is_active),
                    description,
                    icon,
                    sort_order,
                ),
            )
            conn.commit()

            return Category(
                id=cursor.lastrowid,
                name=name,
                slug=slug,
                parent_id=parent_id,
                keywords=keywords,
                is_active=is_active,
                description=description,
                icon=icon,
                sort_order=sort_order,
            )

    def update(
        self,
        category_id: int,
        name: str,
        keywords: Optional[List[str]] = None,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Category:
        """Update an existing category's name, keywords, parent and description.

        The slug is immutable.

        Raises:
            CategoryNotFound: If the category or the new parent does not exist.
            CategoryDepthError: If the move would create a third level.
        """
        existing = self.find(category_id)
        if existing is None:
            raise CategoryNotFound(category_id)

        if parent_id is not None:
            if parent_id == category_id:
                raise CategoryDepthError("A category cannot be its own parent")
            self._require_root_parent(parent_id)
            if self.find_children(category_id):
                raise CategoryDepthError(
                    f"Category '{existing.slug}' has children and cannot be nested"
                )

        keywords = list(keywords) if keywords is not None else existing.keywords

        with self.db_manager.connect() as conn:
            conn.execute(
                """
                UPDATE categories
                SET name = ?, keywords = ?, parent_id = ?, description = ?
                WHERE id = ?
                """,
                (
                    name,
                    json.dumps(keywords, ensure_ascii=False),
                    parent_id,
                    description,
                    category_id,
                ),
            )
            conn.commit()

        existing.name = name
        existing.keywords = keywords
        existing.parent_id = parent_id
        existing.description = description
        return existing

    def set_active(self, category_id: int, is_active: bool) -> bool:
        """Activate or deactivate a category.

        Returns:
            True if the category exists.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "UPDATE categories SET is_active = ? WHERE id = ?",
                (int(is_active), category_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete(self, category_id: int) -> bool:
        """Delete a category by ID.

        Args:
            category_id: The category ID to delete.

        Returns:
            True if category was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            conn.commit()
            return cursor.rowcount > 0

    def seed(self, categories_data: List[dict]) -> Tuple[int, int]:
        """Create categories from a nested seed structure.

        Each entry has ``name``, ``slug``, optional ``icon``, ``description``,
        ``keywords`` and ``children`` (entries of the same shape, one level
        only). Categories whose slug already exists are skipped.

        Args:
            categories_data: Parsed contents of ``db/seed/categories.json``.

        Returns:
            Tuple of (created, skipped) counts.
        """
        created = 0
        skipped = 0

        for order, data in enumerate(categories_data):
            slug = data.get("slug")
            if not data.get("name") or not slug:
                logger.warning("Skipping seed category with no name or slug")
                continue

            parent = self.find_by_slug(slug)
            if parent:
                skipped += 1
            else:
                parent = self._create_from_seed(data, None, order)
                created += 1

            for child_order, child_data in enumerate(data.get("children", [])):
                child_slug = child_data.get("slug")
                if not child_data.get("name") or not child_slug:
                    logger.warning(f"Skipping child of '{slug}' with no name or slug")
                    continue
                if self.find_by_slug(child_slug):
                    skipped += 1
                    continue
                self._create_from_seed(child_data, parent, child_order)
                created += 1

        logger.info(f"Seeded categories: {created} created, {skipped} skipped")
        return created, skipped

    def _create_from_seed(
        self, data: dict, parent: Optional[Category], order: int
    ) -> Category:
        return self.create(
            name=data["name"],
            slug=data["slug"],
            keywords=data.get("keywords", []),
            parent_id=parent.id if parent else None,
            description=data.get("description"),
            icon=data.get("icon"),
            sort_order=order,
        )

    def _require_root_parent(self, parent_id: int) -> Category:
        parent = self.find(parent_id)
        if parent is None:
            raise CategoryNotFound(parent_id)
        if parent.parent_id is not None:
            raise CategoryDepthError(
                f"Parent '{parent.slug}' is already a child category; "
                "categories can only be nested one level deep"
            )
        return parent

    def _row_to_category(self, row: tuple) -> Category:
        """Convert a database row to a Category object."""
        return Category(
            id=row[0],
            name=row[1],
            slug=row[2],
            parent_id=row[3],
            keywords=json.loads(row[4]) if row[4] else [],
            is_active=bool(row[5]),
            description=row[6],
            icon=row[7],
            sort_order=row[8],
        )
