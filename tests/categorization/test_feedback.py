from datetime import date, datetime
from decimal import Decimal

import pytest

from models.expense import Expense, ExpenseStatus
from tests.helpers import category_id


def _expense(user_id, text, suggested, category=None, raw_input=True):
    return Expense(
        id=1,
        user_id=user_id,
        amount=Decimal("50.00"),
        currency="MXN",
        description=text,
        raw_input=text if raw_input else None,
        expense_date=date(2024, 1, 1),
        status=ExpenseStatus.CONFIRMED,
        created_at=datetime(2024, 1, 1),
        suggested_category_id=suggested,
        category_id=category,
    )


class TestOnConfirmed:
    def test_creates_weights_for_each_keyword(self, seeded_services, user):
        fast_food = category_id(seeded_services, "fast_food")

        weights = seeded_services.feedback.on_confirmed(
            _expense(user.id, "Gasté 50 pesos en tacos al pastor", fast_food, fast_food)
        )

        assert [w.keyword for w in weights] == ["tacos", "pastor"]
        assert all(w.confidence_weight == 1.0 for w in weights)
        assert all(w.usage_count == 1 for w in weights)

    def test_reinforces_existing_weights(self, seeded_services, user):
        fast_food = category_id(seeded_services, "fast_food")
        expense = _expense(user.id, "tacos", fast_food, fast_food)

        seeded_services.feedback.on_confirmed(expense)
        seeded_services.feedback.on_confirmed(expense)

        weight = seeded_services.learned_weights.find(user.id, "tacos", fast_food)
        assert weight.confidence_weight == pytest.approx(1.1)
        assert weight.usage_count == 2

    def test_uses_committed_category(self, seeded_services, user):
        fast_food = category_id(seeded_services, "fast_food")
        restaurants = category_id(seeded_services, "restaurants")

        seeded_services.feedback.on_confirmed(
            _expense(user.id, "tacos", fast_food, restaurants)
        )

        assert seeded_services.learned_weights.find(user.id, "tacos", restaurants)
        assert seeded_services.learned_weights.find(user.id, "tacos", fast_food) is None

    def test_falls_back_to_description(self, seeded_services, user):
        fast_food = category_id(seeded_services, "fast_food")

        weights = seeded_services.feedback.on_confirmed(
            _expense(user.id, "burrito", fast_food, fast_food, raw_input=False)
        )

        assert [w.keyword for w in weights] == ["burrito"]

    def test_text_without_keywords_learns_nothing(self, seeded_services, user):
        fast_food = category_id(seeded_services, "fast_food")

        weights = seeded_services.feedback.on_confirmed(
            _expense(user.id, "50 pesos", fast_food, fast_food)
        )

        assert weights == []
        assert seeded_services.learned_weights.find_for_user(user.id) == []


class TestOnCorrected:
    def test_reinforces_final_and_penalizes_suggested(self, seeded_services, user):
        streaming = category_id(seeded_services, "streaming_services")
        subscriptions = category_id(seeded_services, "subscriptions")
        store = seeded_services.learned_weights
        store.reinforce(user.id, "netflix", streaming)

        seeded_services.feedback.on_corrected(
            _expense(user.id, "netflix", streaming, subscriptions), streaming, subscriptions
        )

        assert store.find(user.id, "netflix", subscriptions).confidence_weight == 1.0
        assert store.find(user.id, "netflix", streaming).confidence_weight == pytest.approx(0.8)

    def test_penalty_does_not_create_rows(self, seeded_services, user):
        streaming = category_id(seeded_services, "streaming_services")
        subscriptions = category_id(seeded_services, "subscriptions")

        seeded_services.feedback.on_corrected(
            _expense(user.id, "netflix", streaming, subscriptions), streaming, subscriptions
        )

        store = seeded_services.learned_weights
        assert store.find(user.id, "netflix", streaming) is None
        assert [w.category_id for w in store.find_for_user(user.id)] == [subscriptions]

    def test_same_category_is_not_penalized(self, seeded_services, user):
        fast_food = category_id(seeded_services, "fast_food")
        store = seeded_services.learned_weights
        store.reinforce(user.id, "tacos", fast_food)

        seeded_services.feedback.on_corrected(
            _expense(user.id, "tacos", fast_food, fast_food), fast_food, fast_food
        )

        assert store.find(user.id, "tacos", fast_food).confidence_weight == pytest.approx(1.1)
