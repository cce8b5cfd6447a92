"""User service for database operations."""

from datetime import datetime
from typing import List, Optional

from db.manager import format_timestamp, parse_timestamp
from models.user import User

_USER_SELECT_FIELDS = "id, name, external_id, created_at"


class UserService:
    """Service for managing users."""

    def __init__(self, db_manager):
        """Initialize the user service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, name: str, external_id: str) -> User:
        """Create a new user.

        Args:
            name: Display name.
            external_id: Identity assigned by the chat transport (unique).

        Returns:
            The created User object with id populated.

        Raises:
            sqlite3.IntegrityError: If the external id is already registered.
        """
        created_at = datetime.now()
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, external_id, created_at) VALUES (?, ?, ?)",
                (name, external_id, format_timestamp(created_at)),
            )
            conn.commit()

            return User(
                id=cursor.lastrowid,
                name=name,
                external_id=external_id,
                created_at=created_at,
            )

    def find(self, user_id: int) -> Optional[User]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_USER_SELECT_FIELDS} FROM users WHERE id = ?", (user_id,)
            )
            row = cursor.fetchone()
            return self._row_to_user(row) if row else None

    def find_by_external_id(self, external_id: str) -> Optional[User]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_USER_SELECT_FIELDS} FROM users WHERE external_id = ?",
                (external_id,),
            )
            row = cursor.fetchone()
            return self._row_to_user(row) if row else None

    def find_or_create(self, external_id: str, name: Optional[str] = None) -> User:
        """Get the user for a transport identity, registering it on first contact."""
        user = self.find_by_external_id(external_id)
        if user:
            return user
        return self.create(name or external_id, external_id)

    def find_all(self) -> List[User]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(f"SELECT {_USER_SELECT_FIELDS} FROM users ORDER BY id")
            return [self._row_to_user(row) for row in cursor.fetchall()]

    def delete(self, user_id: int) -> bool:
        """Delete a user; their expenses and learned weights go with them.

        Returns:
            True if the user was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_user(self, row: tuple) -> User:
        return User(
            id=row[0],
            name=row[1],
            external_id=row[2],
            created_at=parse_timestamp(row[3]),
        )
