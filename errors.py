"""Error taxonomy for the classification core.

Every error carries a ``user_message``: a short, retryable prompt that the
chat transport can localize and show instead of the internal exception text.
"""

from typing import Optional


class CentavoError(Exception):
    """Base class for all classification-core errors."""

    user_message = "Something went wrong, please try again."


class UnresolvableCategory(CentavoError):
    """No active categories are loaded, or the default category is missing.

    This is a configuration error raised while building the keyword table at
    startup; it is never raised per request.
    """

    user_message = "Categories are not configured yet, please try again later."


class DuplicateTransition(CentavoError):
    """An expense was asked to leave a state it has already left."""

    user_message = "This expense was already handled."

    def __init__(self, expense_id: Optional[int], current_status: str):
        self.expense_id = expense_id
        self.current_status = current_status
        subject = f"Expense {expense_id}" if expense_id is not None else "Expense"
        super().__init__(
            f"{subject} is already '{current_status}'; transition ignored"
        )


class InvalidTransition(CentavoError):
    """An event is not allowed from the expense's current (non-terminal) state."""

    user_message = "That action is not available for this expense."

    def __init__(self, current_status: str, event: str):
        self.current_status = current_status
        self.event = event
        super().__init__(f"Event '{event}' is not allowed from status '{current_status}'")


class StaleWeightWrite(CentavoError):
    """A learned-weight write kept losing to concurrent writers."""

    user_message = "We could not save that right now, please try again."

    def __init__(self, user_id: int, keyword: str, category_id: int, attempts: int):
        self.user_id = user_id
        self.keyword = keyword
        self.category_id = category_id
        self.attempts = attempts
        super().__init__(
            f"Could not write weight for user={user_id} keyword='{keyword}' "
            f"category={category_id} after {attempts} attempts"
        )


class InvalidExtractionInput(CentavoError):
    """The extracted draft is missing a required field."""

    user_message = "I could not detect an amount, please try again."

    def __init__(self, field: str, reason: Optional[str] = None):
        self.field = field
        message = f"Extracted draft is missing required field '{field}'"
        if reason:
            message = f"Extracted draft has invalid field '{field}': {reason}"
        super().__init__(message)


class UnparseableExpense(CentavoError):
    """The extraction oracle could not find an amount in the text."""

    user_message = "I could not detect an amount, please try again."


class ExpenseNotFound(CentavoError):
    """No expense exists with the given id."""

    user_message = "I could not find that expense, please try again."

    def __init__(self, expense_id: int):
        self.expense_id = expense_id
        super().__init__(f"Expense with ID {expense_id} not found")


class CategoryNotFound(CentavoError):
    """No active category exists with the given id or slug."""

    user_message = "Please pick a category from the list."

    def __init__(self, ref):
        self.ref = ref
        super().__init__(f"Category '{ref}' not found")


class CategoryDepthError(CentavoError):
    """A category would end up more than one level below a root."""

    user_message = "Categories can only be nested one level deep."
