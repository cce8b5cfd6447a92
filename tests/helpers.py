"""Helper utilities for tests."""

from decimal import Decimal
from pathlib import Path
import sqlite3

from models.expense import ExtractedDraft


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    for migration_file in sorted(migrations_dir.glob("*.sql")):
        conn.executescript(migration_file.read_text(encoding="utf-8"))

    conn.commit()


def category_id(services, slug: str) -> int:
    """Look up a category id by slug."""
    return services.categories.find_by_slug(slug).id


def make_draft(text: str, amount="50") -> ExtractedDraft:
    """Build an extracted draft whose description is the raw text."""
    return ExtractedDraft(
        amount=Decimal(amount) if amount is not None else None,
        description=text,
        raw_input=text,
    )
