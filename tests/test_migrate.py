from cli.migrate import apply_pending, get_applied_migrations, get_available_migrations
from db.manager import DatabaseManager


def test_apply_pending_is_incremental(test_config):
    db_manager = DatabaseManager(test_config)

    applied = apply_pending(db_manager)

    assert applied == get_available_migrations(db_manager)
    assert apply_pending(db_manager) == []
    with db_manager.connect() as conn:
        assert get_applied_migrations(conn) == set(applied)
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert {"users", "categories", "expenses", "learned_keyword_weights"} <= tables
