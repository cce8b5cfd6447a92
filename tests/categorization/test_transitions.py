import pytest

from categorization.lifecycle import (
    Effect,
    LifecycleEvent,
    LifecyclePolicy,
    transition,
)
from errors import DuplicateTransition, InvalidTransition
from models.expense import ExpenseStatus

PENDING = ExpenseStatus.PENDING
NEEDS_REVIEW = ExpenseStatus.NEEDS_REVIEW
TERMINAL = [
    ExpenseStatus.AUTO_CONFIRMED,
    ExpenseStatus.CONFIRMED,
    ExpenseStatus.REJECTED,
]


class TestEvaluate:
    def test_high_confidence_with_history_auto_confirms(self):
        result = transition(
            PENDING, LifecycleEvent.EVALUATE, confidence=0.9, has_confirmed_history=True
        )

        assert result.next == ExpenseStatus.AUTO_CONFIRMED
        assert result.effects == (Effect.COMMIT_SUGGESTED, Effect.LEARN_CONFIRMED)

    def test_threshold_is_inclusive(self):
        result = transition(
            PENDING, LifecycleEvent.EVALUATE, confidence=0.85, has_confirmed_history=True
        )

        assert result.next == ExpenseStatus.AUTO_CONFIRMED

    def test_high_confidence_without_history_needs_review(self):
        result = transition(
            PENDING, LifecycleEvent.EVALUATE, confidence=0.99, has_confirmed_history=False
        )

        assert result.next == NEEDS_REVIEW
        assert result.effects == ()

    @pytest.mark.parametrize("confidence", [0.0, 0.1, 0.3, 0.5, 0.84])
    def test_below_threshold_needs_review(self, confidence):
        result = transition(
            PENDING,
            LifecycleEvent.EVALUATE,
            confidence=confidence,
            has_confirmed_history=True,
        )

        assert result.next == NEEDS_REVIEW

    def test_custom_policy(self):
        policy = LifecyclePolicy(auto_confirm_threshold=0.5, review_floor=0.1)

        result = transition(
            PENDING,
            LifecycleEvent.EVALUATE,
            policy,
            confidence=0.6,
            has_confirmed_history=True,
        )

        assert result.next == ExpenseStatus.AUTO_CONFIRMED

    def test_evaluate_only_from_pending(self):
        with pytest.raises(InvalidTransition):
            transition(NEEDS_REVIEW, LifecycleEvent.EVALUATE, confidence=0.9)


class TestUserEvents:
    @pytest.mark.parametrize("current", [PENDING, NEEDS_REVIEW])
    def test_confirm(self, current):
        result = transition(current, LifecycleEvent.CONFIRM)

        assert result.previous == current
        assert result.next == ExpenseStatus.CONFIRMED
        assert result.effects == (Effect.COMMIT_SUGGESTED, Effect.LEARN_CONFIRMED)

    @pytest.mark.parametrize("current", [PENDING, NEEDS_REVIEW])
    def test_correct(self, current):
        result = transition(current, LifecycleEvent.CORRECT)

        assert result.next == ExpenseStatus.CONFIRMED
        assert result.effects == (Effect.COMMIT_CHOSEN, Effect.LEARN_CORRECTED)

    @pytest.mark.parametrize("current", [PENDING, NEEDS_REVIEW])
    def test_reject_teaches_nothing(self, current):
        result = transition(current, LifecycleEvent.REJECT)

        assert result.next == ExpenseStatus.REJECTED
        assert result.effects == (Effect.RECORD_REJECTION,)

    def test_accepts_plain_strings(self):
        result = transition("needs_review", "confirm")

        assert result.next == ExpenseStatus.CONFIRMED


class TestTerminalStates:
    @pytest.mark.parametrize("current", TERMINAL)
    @pytest.mark.parametrize("event", list(LifecycleEvent))
    def test_every_event_on_terminal_state_is_duplicate(self, current, event):
        with pytest.raises(DuplicateTransition) as exc_info:
            transition(current, event, confidence=1.0, has_confirmed_history=True)

        assert exc_info.value.current_status == current.value

    def test_nothing_returns_to_pending(self):
        for current in [PENDING, NEEDS_REVIEW]:
            for event in LifecycleEvent:
                try:
                    result = transition(current, event)
                except InvalidTransition:
                    continue
                assert result.next != PENDING

    def test_policy_floor(self):
        policy = LifecyclePolicy()

        assert policy.is_below_floor(0.29)
        assert not policy.is_below_floor(0.3)
