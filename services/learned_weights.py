"""Learned keyword weight store.

Every mutation is a single SQL statement keyed by the unique
(user_id, keyword, category_id) triple, so concurrent feedback for the same
user never loses an update. Lock contention is retried a bounded number of
times before surfacing as ``StaleWeightWrite``.
"""

import sqlite3
import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from db.manager import format_timestamp, parse_timestamp
from errors import StaleWeightWrite
from logger import get_logger
from models.learned_keyword import (
    INITIAL_WEIGHT,
    MAX_WEIGHT,
    PENALTY_FLOOR,
    PENALTY_STEP,
    REINFORCE_STEP,
    LearnedKeywordWeight,
)

logger = get_logger("learning")

_SELECT_FIELDS = "user_id, keyword, category_id, confidence_weight, usage_count, last_used_at"

# Weights are rounded in SQL so repeated +0.1 steps land on 1.1, 1.2, ...
_PRECISION = 4

DECAY_POLICIES = ("exponential", "linear")


class LearnedWeightService:
    """Service for reading and updating learned keyword weights."""

    def __init__(self, db_manager, max_retries: int = 3, retry_delay: float = 0.05):
        """Initialize the learned weight service.

        Args:
            db_manager: Database manager instance for database operations.
            max_retries: Attempts for a write that hits a locked database.
            retry_delay: Base delay in seconds, multiplied by the attempt number.
        """
        self.db_manager = db_manager
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def find_for_user(self, user_id: int) -> List[LearnedKeywordWeight]:
        """Get all learned weights for a user.

        Args:
            user_id: The owning user.

        Returns:
            Weights ordered by keyword then category id.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_SELECT_FIELDS}
                FROM learned_keyword_weights
                WHERE user_id = ?
                ORDER BY keyword, category_id
                """,
                (user_id,),
            )
            return [self._row_to_weight(row) for row in cursor.fetchall()]

    def find(
        self, user_id: int, keyword: str, category_id: int
    ) -> Optional[LearnedKeywordWeight]:
        """Get a single learned weight by its unique triple."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_SELECT_FIELDS}
                FROM learned_keyword_weights
                WHERE user_id = ? AND keyword = ? AND category_id = ?
                """,
                (user_id, keyword, category_id),
            )
            row = cursor.fetchone()
            return self._row_to_weight(row) if row else None

    def reinforce(
        self,
        user_id: int,
        keyword: str,
        category_id: int,
        now: Optional[datetime] = None,
    ) -> LearnedKeywordWeight:
        """Create or strengthen a keyword -> category association.

        New rows start at weight 1.0 with a usage count of 1. Existing rows
        gain 0.1 (capped at 2.0), one usage, and a fresh last-used timestamp.

        Args:
            user_id: The owning user.
            keyword: Case-folded keyword.
            category_id: Category the keyword points at.
            now: Timestamp to record, defaults to the current time.

        Returns:
            The weight as stored after the write.

        Raises:
            StaleWeightWrite: If the database stayed locked for every attempt.
        """
        timestamp = format_timestamp(now or datetime.now())

        def write(conn):
            conn.execute(
                f"""
                INSERT INTO learned_keyword_weights
                    (user_id, keyword, category_id, confidence_weight, usage_count, last_used_at)
                VALUES (?, ?, ?, ?, 1, ?)
                ON CONFLICT (user_id, keyword, category_id) DO UPDATE SET
                    confidence_weight = MIN(?, ROUND(confidence_weight + ?, {_PRECISION})),
                    usage_count = usage_count + 1,
                    last_used_at = excluded.last_used_at
                """,
                (
                    user_id,
                    keyword,
                    category_id,
                    INITIAL_WEIGHT,
                    timestamp,
                    MAX_WEIGHT,
                    REINFORCE_STEP,
                ),
            )

        weight = self._write_with_retry(user_id, keyword, category_id, write)
        logger.debug(
            f"Reinforced user={user_id} '{keyword}' -> {category_id}: "
            f"weight={weight.confidence_weight} count={weight.usage_count}"
        )
        return weight

    def reinforce_many(
        self,
        user_id: int,
        keywords: Iterable[str],
        category_id: int,
        now: Optional[datetime] = None,
    ) -> List[LearnedKeywordWeight]:
        """Reinforce each keyword for the same category."""
        return [self.reinforce(user_id, kw, category_id, now) for kw in keywords]

    def penalize(
        self, user_id: int, keyword: str, category_id: int
    ) -> Optional[LearnedKeywordWeight]:
        """Weaken an existing association by 0.2, never below 0.1.

        Penalties never create rows and never delete them: a keyword may be
        legitimate for several categories, so wrong associations only fade.

        Returns:
            The updated weight, or None if there was no such association.
        """

        def write(conn):
            conn.execute(
                f"""
                UPDATE learned_keyword_weights
                SET confidence_weight = MAX(?, ROUND(confidence_weight - ?, {_PRECISION}))
                WHERE user_id = ? AND keyword = ? AND category_id = ?
                """,
                (PENALTY_FLOOR, PENALTY_STEP, user_id, keyword, category_id),
            )

        weight = self._write_with_retry(user_id, keyword, category_id, write)
        if weight is not None:
            logger.debug(
                f"Penalized user={user_id} '{keyword}' -> {category_id}: "
                f"weight={weight.confidence_weight}"
            )
        return weight

    def decay(
        self,
        older_than_days: int = 90,
        policy: str = "exponential",
        factor: float = 0.9,
        step: float = 0.1,
        floor: float = 0.5,
        now: Optional[datetime] = None,
    ) -> int:
        """Fade weights that have not been used recently.

        Meant to be run by a periodic sweep, never from the inference path.
        Only rows above the floor are touched and none is pushed below it.

        Args:
            older_than_days: Rows last used before this many days ago decay.
            policy: ``"exponential"`` (weight * factor) or ``"linear"`` (weight - step).
            factor: Multiplier for the exponential policy.
            step: Amount subtracted by the linear policy.
            floor: Lowest weight decay can produce.
            now: Reference time, defaults to the current time.

        Returns:
            Number of rows decayed.

        Raises:
            ValueError: If the policy is unknown.
        """
        if policy == "exponential":
            expression = f"MAX(?, ROUND(confidence_weight * ?, {_PRECISION}))"
            amount = factor
        elif policy == "linear":
            expression = f"MAX(?, ROUND(confidence_weight - ?, {_PRECISION}))"
            amount = step
        else:
            raise ValueError(
                f"Unknown decay policy: {policy} (expected one of {DECAY_POLICIES})"
            )

        cutoff = format_timestamp((now or datetime.now()) - timedelta(days=older_than_days))

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE learned_keyword_weights
                SET confidence_weight = {expression}
                WHERE last_used_at < ? AND confidence_weight > ?
                """,
                (floor, amount, cutoff, floor),
            )
            conn.commit()
            decayed = cursor.rowcount

        logger.info(
            f"Decayed {decayed} learned weight(s) unused since {cutoff} "
            f"(policy={policy}, floor={floor})"
        )
        return decayed

    def stats(self, user_id: int) -> dict:
        """Summarize what the classifier has learned for a user.

        Returns:
            Dict with unique_keywords, categories_learned, total_usage and
            average_weight.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT COUNT(DISTINCT keyword), COUNT(DISTINCT category_id),
                       SUM(usage_count), AVG(confidence_weight)
                FROM learned_keyword_weights
                WHERE user_id = ?
                """,
                (user_id,),
            )
            row = cursor.fetchone()

        return {
            "unique_keywords": row[0] or 0,
            "categories_learned": row[1] or 0,
            "total_usage": row[2] or 0,
            "average_weight": round(row[3] or 0, 2),
        }

    def _write_with_retry(
        self,
        user_id: int,
        keyword: str,
        category_id: int,
        write: Callable[[sqlite3.Connection], None],
    ) -> Optional[LearnedKeywordWeight]:
        """Run a single-statement write, retrying while the database is locked."""
        for attempt in range(1, self.max_retries + 1):
            try:
                with self.db_manager.connect() as conn:
                    try:
                        write(conn)
                        cursor = conn.execute(
                            f"""
                            SELECT {_SELECT_FIELDS}
                            FROM learned_keyword_weights
                            WHERE user_id = ? AND keyword = ? AND category_id = ?
                            """,
                            (user_id, keyword, category_id),
                        )
                        row = cursor.fetchone()
                        conn.commit()
                    except sqlite3.OperationalError:
                        conn.rollback()
                        raise
                return self._row_to_weight(row) if row else None
            except sqlite3.OperationalError as e:
                if not _is_contention(e):
                    raise
                logger.warning(
                    f"Weight write for user={user_id} '{keyword}' -> {category_id} "
                    f"hit a locked database (attempt {attempt}/{self.max_retries})"
                )
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay * attempt)

        raise StaleWeightWrite(user_id, keyword, category_id, self.max_retries)

    def _row_to_weight(self, row: tuple) -> LearnedKeywordWeight:
        """Convert a database row to a LearnedKeywordWeight object."""
        return LearnedKeywordWeight(
            user_id=row[0],
            keyword=row[1],
            category_id=row[2],
            confidence_weight=float(row[3]),
            usage_count=row[4],
            last_used_at=parse_timestamp(row[5]),
        )


def _is_contention(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message
