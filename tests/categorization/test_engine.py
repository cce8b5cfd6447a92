from datetime import datetime

import pytest

from categorization.engine import CategoryInferenceEngine
from categorization.keywords import KeywordTable
from models.category import Category
from models.learned_keyword import LearnedKeywordWeight


class FakeWeightStore:
    """In-memory stand-in for LearnedWeightService.find_for_user."""

    def __init__(self, weights=()):
        self.weights = list(weights)

    def find_for_user(self, user_id):
        return [w for w in self.weights if w.user_id == user_id]


def weight(user_id, keyword, category_id, value=1.0, when=datetime(2024, 1, 1)):
    return LearnedKeywordWeight(
        user_id=user_id,
        keyword=keyword,
        category_id=category_id,
        confidence_weight=value,
        usage_count=1,
        last_used_at=when,
    )


FOOD, FAST_FOOD, RESTAURANTS, TRANSPORT, RIDES, UNCATEGORIZED, RETIRED = range(1, 8)


def _table():
    return KeywordTable(
        [
            Category(id=FOOD, name="Food", slug="food", keywords=["comida"]),
            Category(
                id=FAST_FOOD,
                name="Fast Food",
                slug="fast_food",
                parent_id=FOOD,
                keywords=["tacos", "burger"],
            ),
            Category(
                id=RESTAURANTS,
                name="Restaurants",
                slug="restaurants",
                parent_id=FOOD,
                keywords=["restaurante"],
            ),
            Category(id=TRANSPORT, name="Transport", slug="transport", keywords=["metro"]),
            Category(
                id=RIDES,
                name="Rides",
                slug="rides",
                parent_id=TRANSPORT,
                keywords=["uber eats", "taxi"],
            ),
            Category(id=UNCATEGORIZED, name="Uncategorized", slug="uncategorized"),
            Category(
                id=RETIRED, name="Retired", slug="retired", keywords=["tacos"], is_active=False
            ),
        ]
    )


def _engine(weights=(), k=1.0):
    return CategoryInferenceEngine(_table(), FakeWeightStore(weights), smoothing_constant=k)


class TestFallback:
    @pytest.mark.parametrize("text", ["", "   ", None, "xyz 123", "paid 50"])
    def test_unmatched_text_returns_default_with_zero_confidence(self, text):
        result = _engine().infer(text, user_id=1)

        assert result.category_id == UNCATEGORIZED
        assert result.confidence == 0.0
        assert result.matched_keywords == ()
        assert result.is_fallback

    def test_fallback_is_the_same_for_every_user(self):
        engine = _engine([weight(1, "tacos", FAST_FOOD)])

        for user_id in (1, 2, 3):
            result = engine.infer("zzz", user_id)
            assert result.category_id == UNCATEGORIZED
            assert result.confidence == 0.0


class TestSeedScoring:
    def test_single_seed_keyword(self):
        result = _engine().infer("50 tacos", user_id=1)

        assert result.category_id == FAST_FOOD
        assert result.confidence == pytest.approx(0.5)
        assert result.matched_keywords == ("tacos",)

    def test_each_distinct_keyword_counts_once(self):
        result = _engine().infer("tacos, burger and more tacos", user_id=1)

        assert result.category_id == FAST_FOOD
        assert result.candidates[0].score == 2.0
        assert result.confidence == pytest.approx(2 / 3, abs=1e-4)

    def test_text_contained_in_keyword_matches(self):
        result = _engine().infer("uber", user_id=1)

        assert result.category_id == RIDES
        assert result.matched_keywords == ("uber eats",)

    def test_input_is_normalized(self):
        result = _engine().infer("  TACOS  ", user_id=1)

        assert result.category_id == FAST_FOOD

    def test_inactive_categories_never_win(self):
        result = _engine().infer("tacos", user_id=1)

        assert RETIRED not in [c.category_id for c in result.candidates]

    def test_smoothing_constant_controls_confidence(self):
        result = _engine(k=0.25).infer("tacos", user_id=1)

        assert result.confidence == pytest.approx(0.8)

    def test_confidence_is_not_rounded(self):
        result = _engine(k=0.42).infer("tacos", user_id=1)

        assert result.confidence == 1.0 / 1.42

    def test_smoothing_constant_must_be_positive(self):
        with pytest.raises(ValueError):
            _engine(k=0)


class TestLearnedWeights:
    def test_learned_weight_adds_to_seed_score(self):
        result = _engine([weight(1, "tacos", FAST_FOOD, 1.4)]).infer("tacos", user_id=1)

        assert result.category_id == FAST_FOOD
        assert result.candidates[0].score == pytest.approx(2.4)
        assert result.confidence == pytest.approx(2.4 / 3.4, abs=1e-4)

    def test_learned_weight_can_outrank_seed(self):
        engine = _engine([weight(1, "tacos", RESTAURANTS, 1.5)])

        result = engine.infer("tacos", user_id=1)

        assert result.category_id == RESTAURANTS
        assert result.matched_keywords == ("tacos",)

    def test_learned_weights_are_per_user(self):
        engine = _engine([weight(1, "tacos", RESTAURANTS, 1.5)])

        assert engine.infer("tacos", user_id=1).category_id == RESTAURANTS
        assert engine.infer("tacos", user_id=2).category_id == FAST_FOOD

    def test_learned_weight_for_inactive_category_is_ignored(self):
        engine = _engine([weight(1, "tacos", RETIRED, 2.0)])

        result = engine.infer("tacos", user_id=1)

        assert result.category_id == FAST_FOOD

    def test_learned_keyword_without_seed(self):
        engine = _engine([weight(1, "oxxo", TRANSPORT, 1.0)])

        result = engine.infer("oxxo", user_id=1)

        assert result.category_id == TRANSPORT
        assert result.candidates[0].last_learned_at == datetime(2024, 1, 1)


class TestHierarchy:
    def test_parent_and_child_are_independent_candidates(self):
        result = _engine().infer("comida tacos", user_id=1)

        scores = {c.category_id: c.score for c in result.candidates}
        assert scores == {FOOD: 1.0, FAST_FOOD: 1.0}

    def test_child_wins_tie_with_parent(self):
        result = _engine().infer("comida tacos", user_id=1)

        assert result.category_id == FAST_FOOD
        assert result.candidates[1].category_id == FOOD


class TestTieBreak:
    def _tie_table(self):
        return KeywordTable(
            [
                Category(id=1, name="Beta", slug="beta", keywords=["pan"]),
                Category(id=2, name="Alpha", slug="alpha", keywords=["pan"]),
                Category(id=3, name="Aaa", slug="aaa_parent", keywords=["dulce"]),
                Category(id=4, name="Zzz", slug="zzz_child", parent_id=3, keywords=["dulce"]),
                Category(id=9, name="Uncategorized", slug="uncategorized"),
            ]
        )

    def test_smallest_slug_wins_exact_tie(self):
        engine = CategoryInferenceEngine(self._tie_table(), FakeWeightStore())

        assert engine.infer("pan", user_id=1).category_id == 2

    def test_child_beats_parent_before_slug_order(self):
        engine = CategoryInferenceEngine(self._tie_table(), FakeWeightStore())

        assert engine.infer("dulce", user_id=1).category_id == 4

    def test_most_recent_learned_keyword_wins_tie(self):
        store = FakeWeightStore(
            [
                weight(1, "pan", 2, 1.0, datetime(2024, 1, 1)),
                weight(1, "pan", 1, 1.0, datetime(2024, 2, 1)),
            ]
        )
        engine = CategoryInferenceEngine(self._tie_table(), store)

        result = engine.infer("pan", user_id=1)

        assert result.category_id == 1
        assert [c.score for c in result.candidates[:2]] == [2.0, 2.0]

    def test_learned_usage_beats_no_learned_usage_on_tie(self):
        store = FakeWeightStore([weight(1, "pan", 4, 1.0)])
        engine = CategoryInferenceEngine(self._tie_table(), store)

        # alpha and beta score 1.0 from seeds; zzz_child scores 1.0 learned
        result = engine.infer("pan", user_id=1)

        assert result.category_id == 4

    def test_float_sums_tie_exactly(self):
        store = FakeWeightStore(
            [
                weight(1, "pan", 1, 1.1, datetime(2024, 1, 1)),
                weight(1, "pan", 2, 0.1, datetime(2024, 1, 1)),
                weight(1, "bolillo", 2, 1.0, datetime(2024, 1, 1)),
            ]
        )
        engine = CategoryInferenceEngine(self._tie_table(), store)

        result = engine.infer("pan bolillo", user_id=1)

        # beta: 1.0 + 1.1 = 2.1, alpha: 1.0 + 0.1 + 1.0 = 2.1
        assert result.candidates[0].score == result.candidates[1].score
        assert result.category_id == 2


class TestDeterminism:
    def test_same_inputs_give_identical_results(self):
        engine = _engine(
            [weight(1, "tacos", RESTAURANTS, 1.0), weight(1, "comida", FAST_FOOD, 0.5)]
        )

        first = engine.infer("comida tacos burger", user_id=1)
        second = engine.infer("comida tacos burger", user_id=1)

        assert first == second
