"""Expense date parsing for extracted drafts."""

from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from logger import get_logger

logger = get_logger("llm")

# Relative day words, in days before today
RELATIVE_DAYS = {
    "hoy": 0,
    "today": 0,
    "ayer": 1,
    "yesterday": 1,
    "antier": 2,
    "anteayer": 2,
}


def parse_expense_date(value: Optional[str], today: Optional[date] = None) -> date:
    """Parse the date an extraction returned, defaulting to today.

    Accepts ISO dates, most free-form dates dateutil understands, and the
    relative words in RELATIVE_DAYS. Dates in the future are clamped to today.

    Args:
        value: Date text from the oracle, e.g. ``"2024-03-05"`` or ``"ayer"``.
        today: Reference date, defaults to the current date.
    """
    today = today or date.today()
    if not value or not value.strip():
        return today

    text = value.strip().lower()
    if text in RELATIVE_DAYS:
        return today - relativedelta(days=RELATIVE_DAYS[text])

    try:
        parsed = date_parser.parse(
            text, default=datetime(today.year, today.month, today.day)
        ).date()
    except (ValueError, OverflowError):
        logger.warning(f"Could not parse expense date '{value}', using {today}")
        return today

    if parsed > today:
        logger.warning(f"Expense date {parsed} is in the future, using {today}")
        return today
    return parsed
