"""Shared pytest fixtures for all tests."""

import json
import sqlite3
import pytest
from pathlib import Path

from config import Config, get_migrations_dir, get_seed_dir
from db.manager import DatabaseManager
from services.base import Services
from tests.helpers import run_migrations


@pytest.fixture
def test_db():
    """Create an in-memory SQLite database for testing.

    Yields:
        sqlite3.Connection: Connection to in-memory database.
    """
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys = ON")
    yield conn
    conn.close()


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary database.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "centavo",
        db_data_dir=tmp_path / "centavo" / "db",
        db_filename="test.db",
        log_level="DEBUG",
        log_dir=tmp_path / "centavo" / "logs",
        llm_enabled=False,
        llm_provider="openai",
        llm_openai_api_key="",
        llm_openai_model="gpt-4o-mini",
    )


@pytest.fixture
def db_manager_with_schema(test_db):
    """Create a DatabaseManager with schema already set up.

    This fixture provides a DatabaseManager that uses an in-memory database
    with all migrations already applied.

    Args:
        test_db: In-memory database connection fixture.

    Returns:
        DatabaseManager: Database manager with schema ready.
    """
    run_migrations(test_db, get_migrations_dir())

    class TestDatabaseManager:
        """Test database manager that uses in-memory connection."""

        def __init__(self, conn):
            self.conn = conn

        def connect(self):
            """Return a context manager for the test connection."""
            return _TestConnectionContext(self.conn)

        def get_db_path(self):
            """Return a fake path for the test database."""
            return Path(":memory:")

        def get_migrations_dir(self):
            """Get the migrations directory path."""
            return get_migrations_dir()

    class _TestConnectionContext:
        """Context manager for test database connections."""

        def __init__(self, conn):
            self.conn = conn

        def __enter__(self):
            return self.conn

        def __exit__(self, exc_type, exc_val, exc_tb):
            # Don't close the connection - let the fixture handle it
            pass

    return TestDatabaseManager(test_db)


@pytest.fixture
def services(test_config, db_manager_with_schema):
    """Create a Services container with test database.

    This fixture provides access to all services with a clean test database.

    Args:
        test_config: Test configuration fixture.
        db_manager_with_schema: Database manager with schema set up.

    Returns:
        Services: Services container for testing.
    """
    return Services(test_config, db_manager=db_manager_with_schema)


def _seed(services):
    with open(get_seed_dir() / "categories.json", "r", encoding="utf-8") as f:
        services.categories.seed(json.load(f))
    services.reload_keywords()
    return services


@pytest.fixture
def seeded_services(services):
    """Services container with the bundled category tree seeded."""
    return _seed(services)


@pytest.fixture
def user(services):
    """A registered user."""
    return services.users.create("Ana", "tg-1001")


@pytest.fixture
def file_services(test_config):
    """Services backed by a real SQLite file, for tests that need threads.

    Uses the production DatabaseManager, so every call opens its own
    connection.
    """
    db_manager = DatabaseManager(test_config)
    with db_manager.connect() as conn:
        run_migrations(conn, get_migrations_dir())
    return _seed(Services(test_config, db_manager=db_manager))
