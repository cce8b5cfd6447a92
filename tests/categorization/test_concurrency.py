"""Concurrent confirmations against a real SQLite file."""

import threading

import pytest

from errors import DuplicateTransition
from models.expense import ExpenseStatus
from tests.helpers import category_id, make_draft


def _run_together(*targets):
    barrier = threading.Barrier(len(targets))
    outcomes = [None] * len(targets)

    def runner(index, target):
        barrier.wait()
        try:
            outcomes[index] = target()
        except Exception as e:
            outcomes[index] = e

    threads = [
        threading.Thread(target=runner, args=(i, target)) for i, target in enumerate(targets)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


@pytest.fixture
def file_user(file_services):
    return file_services.users.create("Luis", "tg-2002")


def test_concurrent_confirms_both_reinforce(file_services, file_user):
    fast_food = category_id(file_services, "fast_food")
    lifecycle = file_services.lifecycle
    first = lifecycle.submit(file_user.id, make_draft("tacos"))
    second = lifecycle.submit(file_user.id, make_draft("tacos"))

    outcomes = _run_together(
        lambda: lifecycle.confirm(file_user.id, first.expense.id),
        lambda: lifecycle.confirm(file_user.id, second.expense.id),
    )

    assert all(not isinstance(outcome, Exception) for outcome in outcomes), outcomes
    weight = file_services.learned_weights.find(file_user.id, "tacos", fast_food)
    assert weight.usage_count == 2
    assert weight.confidence_weight == pytest.approx(1.1)


def test_concurrent_confirms_of_same_expense_apply_once(file_services, file_user):
    fast_food = category_id(file_services, "fast_food")
    lifecycle = file_services.lifecycle
    result = lifecycle.submit(file_user.id, make_draft("tacos"))

    outcomes = _run_together(
        lambda: lifecycle.confirm(file_user.id, result.expense.id),
        lambda: lifecycle.confirm(file_user.id, result.expense.id),
    )

    duplicates = [o for o in outcomes if isinstance(o, DuplicateTransition)]
    successes = [o for o in outcomes if not isinstance(o, Exception)]
    assert len(duplicates) == 1
    assert len(successes) == 1

    stored = file_services.expenses.find(result.expense.id)
    assert stored.status == ExpenseStatus.CONFIRMED
    assert stored.category_id == fast_food
    weight = file_services.learned_weights.find(file_user.id, "tacos", fast_food)
    assert weight.usage_count == 1


def test_concurrent_confirm_and_reject_pick_one_outcome(file_services, file_user):
    fast_food = category_id(file_services, "fast_food")
    lifecycle = file_services.lifecycle
    result = lifecycle.submit(file_user.id, make_draft("tacos"))

    outcomes = _run_together(
        lambda: lifecycle.confirm(file_user.id, result.expense.id),
        lambda: lifecycle.reject(file_user.id, result.expense.id, "changed my mind"),
    )

    assert sum(isinstance(o, DuplicateTransition) for o in outcomes) == 1
    stored = file_services.expenses.find(result.expense.id)
    weight = file_services.learned_weights.find(file_user.id, "tacos", fast_food)
    if stored.status == ExpenseStatus.CONFIRMED:
        assert weight.usage_count == 1
    else:
        assert stored.status == ExpenseStatus.REJECTED
        assert weight is None
