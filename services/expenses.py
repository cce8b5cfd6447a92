"""Expense service for database operations."""

import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from db.manager import format_timestamp, parse_timestamp
from models.expense import Expense, ExpenseStatus, ExtractedDraft, quantize_amount

# SQL Query Constants
_EXPENSE_SELECT_FIELDS = """id, user_id, amount, currency, description, raw_input,
       expense_date, merchant_name, category_id, suggested_category_id,
       category_confidence, extraction_confidence, matched_keywords, status,
       created_at, confirmed_at, rejected_at, rejection_reason"""

_COMMITTED_STATUSES = (ExpenseStatus.CONFIRMED.value, ExpenseStatus.AUTO_CONFIRMED.value)
_OPEN_STATUSES = (ExpenseStatus.PENDING.value, ExpenseStatus.NEEDS_REVIEW.value)

# Stored confidence precision; thresholds are checked before rounding
CONFIDENCE_PRECISION = 4


class ExpenseService:
    """Service for persisting expenses.

    Status changes only go through ``transition()``, which compares the stored
    status with the expected one before writing. Callers never update the
    status column directly.
    """

    def __init__(self, db_manager):
        """Initialize the expense service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(
        self,
        user_id: int,
        draft: ExtractedDraft,
        suggested_category_id: int,
        category_confidence: float,
        matched_keywords: Optional[List[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> Expense:
        """Insert a new expense in the ``pending`` state.

        Args:
            user_id: Owning user.
            draft: Extracted draft; its amount must already be validated.
            suggested_category_id: The inference engine's pick.
            category_confidence: The engine's confidence in that pick.
            matched_keywords: Keywords that scored for the pick.
            created_at: Creation time, defaults to now.

        Returns:
            The created Expense with id populated.
        """
        created_at = created_at or datetime.now()
        amount = quantize_amount(draft.amount)
        expense_date = draft.expense_date or created_at.date()
        matched_keywords = list(matched_keywords or [])
        category_confidence = round(category_confidence, CONFIDENCE_PRECISION)

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO expenses (
                    user_id, amount, currency, description, raw_input, expense_date,
                    merchant_name, suggested_category_id, category_confidence,
                    extraction_confidence, matched_keywords, status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    str(amount),
                    draft.currency,
                    draft.description,
                    draft.raw_input,
                    expense_date.isoformat(),
                    draft.merchant_name,
                    suggested_category_id,
                    category_confidence,
                    draft.confidence_score,
                    json.dumps(matched_keywords, ensure_ascii=False),
                    ExpenseStatus.PENDING.value,
                    format_timestamp(created_at),
                ),
            )
            conn.commit()

            return Expense(
                id=cursor.lastrowid,
                user_id=user_id,
                amount=amount,
                currency=draft.currency,
                description=draft.description,
                raw_input=draft.raw_input,
                expense_date=expense_date,
                status=ExpenseStatus.PENDING,
                created_at=created_at,
                suggested_category_id=suggested_category_id,
                category_confidence=category_confidence,
                merchant_name=draft.merchant_name,
                extraction_confidence=draft.confidence_score,
                matched_keywords=matched_keywords,
            )

    def find(self, expense_id: int) -> Optional[Expense]:
        """Get a single expense by ID.

        Args:
            expense_id: The expense ID to find.

        Returns:
            Expense object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EXPENSE_SELECT_FIELDS} FROM expenses WHERE id = ?",
                (expense_id,),
            )
            row = cursor.fetchone()
            return self._row_to_expense(row) if row else None

    def find_by_user(
        self,
        user_id: int,
        status: Optional[ExpenseStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Expense]:
        """Get a user's expenses, newest first.

        Args:
            user_id: Owning user.
            status: Only return expenses in this status.
            limit: Maximum number of expenses to return.
        """
        query = f"SELECT {_EXPENSE_SELECT_FIELDS} FROM expenses WHERE user_id = ?"
        params: list = [user_id]
        if status is not None:
            query += " AND status = ?"
            params.append(ExpenseStatus(status).value)
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_expense(row) for row in cursor.fetchall()]

    def find_pending(self, user_id: int) -> List[Expense]:
        """Get a user's expenses still waiting on a decision, oldest first."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_EXPENSE_SELECT_FIELDS} FROM expenses
                WHERE user_id = ? AND status IN (?, ?)
                ORDER BY created_at, id
                """,
                (user_id, ExpenseStatus.PENDING.value, ExpenseStatus.NEEDS_REVIEW.value),
            )
            return [self._row_to_expense(row) for row in cursor.fetchall()]

    def transition(
        self,
        expense_id: int,
        expected_status: ExpenseStatus,
        new_status: ExpenseStatus,
        category_id: Optional[int] = None,
        confirmed_at: Optional[datetime] = None,
        rejected_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move an expense to a new status if it is still in the expected one.

        Fields left as None keep their stored value, so ``suggested_category_id``
        and any earlier timestamps are never overwritten.

        Returns:
            True if this call performed the transition, False if the stored
            status no longer matched (another caller got there first).
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE expenses
                SET status = ?,
                    category_id = COALESCE(?, category_id),
                    confirmed_at = COALESCE(?, confirmed_at),
                    rejected_at = COALESCE(?, rejected_at),
                    rejection_reason = COALESCE(?, rejection_reason)
                WHERE id = ? AND status = ?
                """,
                (
                    ExpenseStatus(new_status).value,
                    category_id,
                    format_timestamp(confirmed_at) if confirmed_at else None,
                    format_timestamp(rejected_at) if rejected_at else None,
                    rejection_reason,
                    expense_id,
                    ExpenseStatus(expected_status).value,
                ),
            )
            conn.commit()
            return cursor.rowcount == 1

    def update_category(
        self, expense_id: int, expected_category_id: int, category_id: int
    ) -> bool:
        """Change the committed category of a confirmed expense.

        The write only happens while the expense is still committed to
        ``expected_category_id``, so two racing edits cannot both win.

        Returns:
            True if the category was changed.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE expenses SET category_id = ?
                WHERE id = ? AND category_id = ? AND status IN (?, ?)
                """,
                (category_id, expense_id, expected_category_id, *_COMMITTED_STATUSES),
            )
            conn.commit()
            return cursor.rowcount == 1

    def update_amount(self, expense_id: int, amount: Decimal) -> bool:
        """Correct the amount of an expense that is still awaiting a decision.

        The user typed the amount, so the extraction confidence becomes 1.0.

        Returns:
            True if the amount was changed, False if the expense had already
            left ``pending`` or ``needs_review``.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE expenses SET amount = ?, extraction_confidence = 1.0
                WHERE id = ? AND status IN (?, ?)
                """,
                (
                    str(quantize_amount(amount)),
                    expense_id,
                    *_OPEN_STATUSES,
                ),
            )
            conn.commit()
            return cursor.rowcount == 1

    def has_confirmed_history(
        self, user_id: int, category_id: int, exclude_expense_id: Optional[int] = None
    ) -> bool:
        """Whether the user has any confirmed or auto-confirmed expense in a category."""
        query = """
            SELECT 1 FROM expenses
            WHERE user_id = ? AND category_id = ? AND status IN (?, ?)
        """
        params: list = [user_id, category_id, *_COMMITTED_STATUSES]
        if exclude_expense_id is not None:
            query += " AND id != ?"
            params.append(exclude_expense_id)
        query += " LIMIT 1"

        with self.db_manager.connect() as conn:
            return conn.execute(query, params).fetchone() is not None

    def frequent_categories(
        self,
        user_id: int,
        days: int = 30,
        limit: int = 3,
        now: Optional[datetime] = None,
    ) -> List[Tuple[int, int]]:
        """Most used committed categories for a user over a recent window.

        Returns:
            List of (category_id, expense_count), most frequent first.
        """
        cutoff = format_timestamp((now or datetime.now()) - timedelta(days=days))
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT category_id, COUNT(*) AS uses
                FROM expenses
                WHERE user_id = ? AND category_id IS NOT NULL
                  AND status IN (?, ?) AND created_at >= ?
                GROUP BY category_id
                ORDER BY uses DESC, category_id
                LIMIT ?
                """,
                (user_id, *_COMMITTED_STATUSES, cutoff, limit),
            )
            return [(row[0], row[1]) for row in cursor.fetchall()]

    def _row_to_expense(self, row: tuple) -> Expense:
        """Convert a database row to an Expense object."""
        return Expense(
            id=row[0],
            user_id=row[1],
            amount=Decimal(row[2]),
            currency=row[3],
            description=row[4],
            raw_input=row[5],
            expense_date=date.fromisoformat(row[6]),
            merchant_name=row[7],
            category_id=row[8],
            suggested_category_id=row[9],
            category_confidence=row[10],
            extraction_confidence=row[11],
            matched_keywords=json.loads(row[12]) if row[12] else [],
            status=ExpenseStatus(row[13]),
            created_at=parse_timestamp(row[14]),
            confirmed_at=parse_timestamp(row[15]),
            rejected_at=parse_timestamp(row[16]),
            rejection_reason=row[17],
        )
