"""Expense confirmation lifecycle.

The state machine is split in two:

- ``transition()`` is a pure function from (current status, event) to the
  next status plus the side effects to apply. It knows nothing about storage.
- ``ExpenseLifecycle`` loads the expense, asks ``transition()`` what to do,
  writes the new status with a compare-and-set on the old one, and only then
  runs the feedback side effects. A lost compare-and-set means another
  delivery already moved the expense, so feedback runs at most once.

States::

    pending --evaluate--> auto_confirmed | needs_review
    pending | needs_review --confirm--> confirmed
    pending | needs_review --correct--> confirmed   (different category)
    pending | needs_review --reject---> rejected
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from categorization.suggestions import (
    CategorySuggestion,
    build_category_suggestions,
    build_full_category_list,
)
from errors import (
    CategoryNotFound,
    DuplicateTransition,
    ExpenseNotFound,
    InvalidExtractionInput,
    InvalidTransition,
)
from logger import get_logger
from models.expense import Expense, ExpenseStatus, ExtractedDraft, to_positive_amount
from models.inference import InferenceResult

logger = get_logger("lifecycle")


class LifecycleEvent(str, Enum):
    EVALUATE = "evaluate"
    CONFIRM = "confirm"
    CORRECT = "correct"
    REJECT = "reject"


class Effect(str, Enum):
    """Side effects the orchestrator applies after a successful transition."""

    COMMIT_SUGGESTED = "commit_suggested"
    COMMIT_CHOSEN = "commit_chosen"
    RECORD_REJECTION = "record_rejection"
    LEARN_CONFIRMED = "learn_confirmed"
    LEARN_CORRECTED = "learn_corrected"


@dataclass(frozen=True)
class LifecyclePolicy:
    """Confidence thresholds that gate automatic confirmation."""

    auto_confirm_threshold: float = 0.85
    review_floor: float = 0.3

    @classmethod
    def from_config(cls, config) -> "LifecyclePolicy":
        return cls(
            auto_confirm_threshold=config.auto_confirm_threshold,
            review_floor=config.review_floor,
        )

    def is_below_floor(self, confidence: float) -> bool:
        return confidence < self.review_floor


@dataclass(frozen=True)
class Transition:
    previous: ExpenseStatus
    next: ExpenseStatus
    effects: Tuple[Effect, ...] = ()


def transition(
    current: ExpenseStatus,
    event: LifecycleEvent,
    policy: LifecyclePolicy = LifecyclePolicy(),
    confidence: float = 0.0,
    has_confirmed_history: bool = False,
) -> Transition:
    """Compute the next status and side effects for an event.

    Args:
        current: The expense's current status.
        event: What happened.
        policy: Thresholds used by the ``EVALUATE`` event.
        confidence: Engine confidence in the suggested category.
        has_confirmed_history: Whether the user already has a confirmed
            expense in the suggested category.

    Returns:
        The Transition to apply.

    Raises:
        DuplicateTransition: If the expense is already in a terminal state.
        InvalidTransition: If the event is not allowed from ``current``.
    """
    current = ExpenseStatus(current)
    event = LifecycleEvent(event)

    if current.is_terminal:
        raise DuplicateTransition(None, current.value)

    if event == LifecycleEvent.EVALUATE:
        if current != ExpenseStatus.PENDING:
            raise InvalidTransition(current.value, event.value)
        if confidence >= policy.auto_confirm_threshold and has_confirmed_history:
            return Transition(
                current,
                ExpenseStatus.AUTO_CONFIRMED,
                (Effect.COMMIT_SUGGESTED, Effect.LEARN_CONFIRMED),
            )
        return Transition(current, ExpenseStatus.NEEDS_REVIEW)

    if event == LifecycleEvent.CONFIRM:
        return Transition(
            current,
            ExpenseStatus.CONFIRMED,
            (Effect.COMMIT_SUGGESTED, Effect.LEARN_CONFIRMED),
        )
    if event == LifecycleEvent.CORRECT:
        return Transition(
            current,
            ExpenseStatus.CONFIRMED,
            (Effect.COMMIT_CHOSEN, Effect.LEARN_CORRECTED),
        )
    return Transition(current, ExpenseStatus.REJECTED, (Effect.RECORD_REJECTION,))


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a lifecycle operation, for the chat layer to render.

    Attributes:
        expense: The expense as stored after the operation.
        transition: The transition that was applied, None for edits.
        below_review_floor: True when the expense awaits review with a
            confidence under the floor, so the consumer should offer the
            full category list instead of a single suggestion.
        inference: The inference result, when one was computed.
    """

    expense: Expense
    transition: Optional[Transition]
    below_review_floor: bool = False
    inference: Optional[InferenceResult] = None

    @property
    def status(self) -> ExpenseStatus:
        return self.expense.status


def validate_draft(draft: ExtractedDraft) -> ExtractedDraft:
    """Check a draft before any inference or insert happens.

    Raises:
        InvalidExtractionInput: If the amount is missing or not positive, or
            there is no text to describe the expense.
    """
    if draft.amount is None:
        raise InvalidExtractionInput("amount")
    amount = to_positive_amount(draft.amount)
    if amount is None:
        raise InvalidExtractionInput("amount", "must be positive")
    draft = replace(draft, amount=amount)
    if not (draft.description or draft.raw_input):
        raise InvalidExtractionInput("description")
    if not draft.description:
        draft = replace(draft, description=draft.raw_input)
    return draft


class ExpenseLifecycle:
    """Apply lifecycle transitions to stored expenses.

    Every operation on an existing expense is scoped to the acting user: an
    expense owned by someone else is reported as not found.

    Args:
        expenses: ExpenseService used for reads and compare-and-set writes.
        feedback: LearningFeedbackService called after committing transitions.
        engine: CategoryInferenceEngine used by ``submit``.
        policy: Confidence thresholds.
    """

    def __init__(self, expenses, feedback, engine, policy: LifecyclePolicy = LifecyclePolicy()):
        self.expenses = expenses
        self.feedback = feedback
        self.engine = engine
        self.policy = policy

    @property
    def keyword_table(self):
        return self.engine.keyword_table

    def submit(self, user_id: int, draft: ExtractedDraft) -> LifecycleResult:
        """Validate a draft, infer its category, and create the expense."""
        draft = validate_draft(draft)
        inference = self.engine.infer(draft.raw_input or draft.description, user_id)
        return self.create_pending_expense(user_id, draft, inference)

    def create_pending_expense(
        self,
        user_id: int,
        draft: ExtractedDraft,
        inference: InferenceResult,
        now: Optional[datetime] = None,
    ) -> LifecycleResult:
        """Create an expense in ``pending`` and apply the initial evaluation.

        The expense ends up ``auto_confirmed`` when the confidence clears the
        threshold and the user has confirmed this category before, and in
        ``needs_review`` otherwise.

        Raises:
            InvalidExtractionInput: If the draft has no usable amount.
        """
        draft = validate_draft(draft)
        now = now or datetime.now()

        expense = self.expenses.create(
            user_id,
            draft,
            suggested_category_id=inference.category_id,
            category_confidence=inference.confidence,
            matched_keywords=list(inference.matched_keywords),
            created_at=now,
        )
        has_history = self.expenses.has_confirmed_history(
            user_id, inference.category_id, exclude_expense_id=expense.id
        )
        plan = self._plan(
            expense,
            LifecycleEvent.EVALUATE,
            confidence=inference.confidence,
            has_confirmed_history=has_history,
        )
        expense = self._apply(expense, plan, now=now)

        logger.info(
            f"Expense {expense.id} for user={user_id} created as {expense.status.value} "
            f"(suggested={inference.category_id}, confidence={inference.confidence:.4f})"
        )
        return LifecycleResult(
            expense=expense,
            transition=plan,
            below_review_floor=(
                expense.status == ExpenseStatus.NEEDS_REVIEW
                and self.policy.is_below_floor(inference.confidence)
            ),
            inference=inference,
        )

    def confirm(
        self,
        user_id: int,
        expense_id: int,
        chosen_category_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> LifecycleResult:
        """Confirm an expense, optionally with a different category.

        Confirming with no category, or with the suggested one, commits the
        suggestion. Any other active category is a correction.

        Raises:
            ExpenseNotFound: If the user has no expense with this id.
            DuplicateTransition: If the expense was already confirmed,
                auto-confirmed or rejected.
            CategoryNotFound: If the chosen category is unknown or inactive.
        """
        expense = self._get(expense_id, user_id)
        if chosen_category_id is None or chosen_category_id == expense.suggested_category_id:
            plan = self._plan(expense, LifecycleEvent.CONFIRM)
        else:
            plan = self._plan(expense, LifecycleEvent.CORRECT)
            self._require_active(chosen_category_id)

        expense = self._apply(expense, plan, chosen_category_id=chosen_category_id, now=now)
        logger.info(
            f"Expense {expense.id} {plan.previous.value} -> {plan.next.value} "
            f"(category={expense.category_id})"
        )
        return LifecycleResult(expense=expense, transition=plan)

    def reject(
        self,
        user_id: int,
        expense_id: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LifecycleResult:
        """Reject an expense. Nothing is learned from a rejection."""
        expense = self._get(expense_id, user_id)
        plan = self._plan(expense, LifecycleEvent.REJECT)
        expense = self._apply(expense, plan, reason=reason, now=now)
        logger.info(f"Expense {expense.id} rejected (reason={reason!r})")
        return LifecycleResult(expense=expense, transition=plan)

    def update_amount(self, user_id: int, expense_id: int, amount) -> LifecycleResult:
        """Correct the amount of an expense still awaiting a decision.

        The status does not change. The extraction confidence becomes 1.0
        since the user typed the amount.

        Raises:
            ExpenseNotFound: If the user has no expense with this id.
            InvalidExtractionInput: If the amount is not a positive number.
            DuplicateTransition: If the expense was already decided.
        """
        expense = self._get(expense_id, user_id)
        new_amount = to_positive_amount(amount)
        if new_amount is None:
            raise InvalidExtractionInput("amount", "must be positive")
        if expense.status.is_terminal:
            raise DuplicateTransition(expense.id, expense.status.value)

        if not self.expenses.update_amount(expense.id, new_amount):
            raise DuplicateTransition(expense.id, self._get(expense.id).status.value)

        logger.info(f"Expense {expense.id} amount {expense.amount} -> {new_amount}")
        expense = replace(expense, amount=new_amount, extraction_confidence=1.0)
        return LifecycleResult(expense=expense, transition=None)

    def recategorize(self, user_id: int, expense_id: int, category_id: int) -> LifecycleResult:
        """Change the category of an already confirmed expense.

        This is an edit, not a transition: the status stays the same, and the
        change is fed back as a correction from the old category.

        Raises:
            ExpenseNotFound: If the user has no expense with this id.
            InvalidTransition: If the expense is not confirmed.
            CategoryNotFound: If the category is unknown or inactive.
            DuplicateTransition: If a concurrent edit changed it first.
        """
        expense = self._get(expense_id, user_id)
        if not expense.status.is_committed:
            raise InvalidTransition(expense.status.value, "recategorize")
        self._require_active(category_id)

        previous = expense.category_id
        if previous == category_id:
            return LifecycleResult(expense=expense, transition=None)

        if not self.expenses.update_category(expense.id, previous, category_id):
            raise DuplicateTransition(expense.id, self._get(expense.id).status.value)

        expense = replace(expense, category_id=category_id)
        self.feedback.on_corrected(expense, previous, category_id)
        logger.info(f"Expense {expense.id} recategorized {previous} -> {category_id}")
        return LifecycleResult(expense=expense, transition=None)

    def category_options(self, user_id: int, expense_id: int) -> List[CategorySuggestion]:
        """Categories to offer when the user reviews an expense.

        Below the review floor this is every active category; otherwise a
        short list built around the suggestion.
        """
        expense = self._get(expense_id, user_id)
        if self.policy.is_below_floor(expense.category_confidence):
            return build_full_category_list(
                expense.suggested_category_id,
                expense.category_confidence,
                self.keyword_table,
            )
        frequent = self.expenses.frequent_categories(expense.user_id)
        return build_category_suggestions(
            expense.suggested_category_id,
            expense.category_confidence,
            [category_id for category_id, _ in frequent],
            self.keyword_table,
        )

    def _get(self, expense_id: int, user_id: Optional[int] = None) -> Expense:
        expense = self.expenses.find(expense_id)
        if expense is None:
            raise ExpenseNotFound(expense_id)
        if user_id is not None and expense.user_id != user_id:
            logger.warning(f"User {user_id} asked for expense {expense_id} of another user")
            raise ExpenseNotFound(expense_id)
        return expense

    def _require_active(self, category_id: int):
        if not self.keyword_table.is_active(category_id):
            raise CategoryNotFound(category_id)

    def _plan(self, expense: Expense, event: LifecycleEvent, **kwargs) -> Transition:
        try:
            return transition(expense.status, event, self.policy, **kwargs)
        except DuplicateTransition:
            logger.warning(
                f"Ignoring '{event.value}' for expense {expense.id}: "
                f"already {expense.status.value}"
            )
            raise DuplicateTransition(expense.id, expense.status.value) from None

    def _apply(
        self,
        expense: Expense,
        plan: Transition,
        chosen_category_id: Optional[int] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Expense:
        """Persist a transition with compare-and-set, then run learning effects."""
        now = now or datetime.now()
        committed = None
        if Effect.COMMIT_SUGGESTED in plan.effects:
            committed = expense.suggested_category_id
        elif Effect.COMMIT_CHOSEN in plan.effects:
            committed = chosen_category_id

        confirmed_at = now if plan.next.is_committed else None
        rejected_at = now if plan.next == ExpenseStatus.REJECTED else None
        if Effect.RECORD_REJECTION not in plan.effects:
            reason = None

        won = self.expenses.transition(
            expense.id,
            plan.previous,
            plan.next,
            category_id=committed,
            confirmed_at=confirmed_at,
            rejected_at=rejected_at,
            rejection_reason=reason,
        )
        if not won:
            current = self._get(expense.id)
            logger.warning(
                f"Lost race on expense {expense.id}: expected {plan.previous.value}, "
                f"found {current.status.value}"
            )
            raise DuplicateTransition(expense.id, current.status.value)

        updated = replace(
            expense,
            status=plan.next,
            category_id=committed if committed is not None else expense.category_id,
            confirmed_at=confirmed_at or expense.confirmed_at,
            rejected_at=rejected_at or expense.rejected_at,
            rejection_reason=reason if reason is not None else expense.rejection_reason,
        )

        if Effect.LEARN_CONFIRMED in plan.effects:
            self.feedback.on_confirmed(updated, now)
        elif Effect.LEARN_CORRECTED in plan.effects:
            self.feedback.on_corrected(
                updated, expense.suggested_category_id, chosen_category_id, now
            )

        return updated
