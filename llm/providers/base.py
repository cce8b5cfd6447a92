"""Extraction oracle interface."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from models.expense import ExtractedDraft


class ExtractionOracle(ABC):
    """Turns a raw chat message into a structured expense draft.

    Implementations call an external service; the classification core only
    sees the resulting ``ExtractedDraft``.
    """

    @abstractmethod
    def extract(self, text: str, today: Optional[date] = None) -> ExtractedDraft:
        """Extract an expense draft from free text.

        Args:
            text: The user's message, e.g. ``"gasté 50 en tacos ayer"``.
            today: Reference date for relative dates, defaults to today.

        Returns:
            ExtractedDraft with ``raw_input`` set to ``text``.

        Raises:
            UnparseableExpense: If no amount could be found in the text.
        """
        pass
