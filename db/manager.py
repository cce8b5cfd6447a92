"""Database manager for SQLite connections and path management."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Optional
from config import Config, get_migrations_dir

# Seconds a writer waits on a locked database before sqlite raises
BUSY_TIMEOUT = 5.0


def format_timestamp(value: datetime) -> str:
    """Serialize a timestamp so that string order matches time order."""
    return value.isoformat(sep=" ", timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class DatabaseManager:
    """Manages database connections and paths.

    Each ``connect()`` opens its own connection, so concurrent callers (for
    example two feedback writes for the same user) never share one.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        """Initialize the database manager.

        Args:
            config: Config object containing database configuration.
        """
        self.config = config

    @contextmanager
    def connect(self):
        """Get a database connection with automatic cleanup.

        Foreign keys are enabled so that deleting a user cascades to its
        expenses and learned weights.

        Yields:
            sqlite3.Connection: Database connection.
        """
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT)
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def get_db_path(self):
        """Get the current database path.

        Returns:
            Path: Path to the database file.
        """
        return self.config.db_path

    def get_migrations_dir(self):
        """Get the migrations directory path.

        Returns:
            Path: Path to the migrations directory.
        """
        return get_migrations_dir()
