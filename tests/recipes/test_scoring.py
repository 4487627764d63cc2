"""
Tests for recipe scoring and the reuse gate.

Covers:
- Factor scores: coverage, quality, preference
- Composite ranking bounds and ordering
- Taste and novelty factors through ScoringEngine
- should_reuse / gate_failure_reason
"""

import asyncio

import pytest

from conftest import make_recipe
from mealwise.db.memory import InMemoryTasteStore
from mealwise.models import (
    InteractionSignal,
    InventoryItem,
    RecipePreferences,
    SignalType,
    TasteProfile,
    UserContext,
)
from mealwise.recipes.scoring import (
    RankedCandidate,
    ScoringEngine,
    ScoringWeights,
    compute_composite_score,
    compute_inventory_coverage,
    compute_preference_score,
    compute_quality_score,
    gate_failure_reason,
    rank_candidates_sync,
    should_reuse,
)
from mealwise.recipes.taste import TasteEngine, embed_library_recipe


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _candidate(score: float, missing: int = 0) -> RankedCandidate:
    return RankedCandidate(
        recipe=make_recipe("r", ["egg"]),
        inventory_coverage=1.0,
        missing_ingredients=[f"item {i}" for i in range(missing)],
        composite_score=score,
    )


class TestInventoryCoverage:
    def test_full_coverage_with_normalization(self):
        coverage, missing = compute_inventory_coverage(
            ["Tomatoes", "basil", "Spaghetti"],
            [InventoryItem(name="tomato"), InventoryItem(name="Basil"), InventoryItem(name="spaghetti")],
        )
        assert coverage == 1.0
        assert missing == []

    def test_partial_coverage_lists_missing(self):
        coverage, missing = compute_inventory_coverage(
            ["egg", "milk", "flour", "sugar"], [InventoryItem(name="eggs")]
        )
        assert coverage == pytest.approx(0.25)
        assert missing == ["milk", "flour", "sugar"]

    def test_recipe_without_ingredients(self):
        assert compute_inventory_coverage([], [InventoryItem(name="egg")]) == (0.0, [])


class TestQualityScore:
    def test_default_quality(self):
        assert compute_quality_score(make_recipe("r", ["egg"])) == pytest.approx(0.55)

    def test_feedback_term_is_bounded(self):
        loved = make_recipe("r", ["egg"], quality_score=0.5, thumbs_up=1000)
        hated = make_recipe("r", ["egg"], quality_score=0.5, thumbs_down=1000)
        assert compute_quality_score(loved) == pytest.approx(0.6)
        assert compute_quality_score(hated) == pytest.approx(0.4)

    def test_usage_term_caps_at_005(self):
        popular = make_recipe("r", ["egg"], quality_score=0.5, usage_count=10**9)
        assert compute_quality_score(popular) == pytest.approx(0.55)

    @pytest.mark.parametrize(
        "fields",
        [
            {"quality_score": 1.0, "thumbs_up": 10**6, "usage_count": 10**9},
            {"quality_score": 0.0, "thumbs_down": 10**6},
            {"quality_score": 5.0},
            {"quality_score": -3.0, "thumbs_up": -5, "usage_count": -10},
        ],
    )
    def test_always_in_unit_interval(self, fields):
        score = compute_quality_score(make_recipe("r", ["egg"], **fields))
        assert 0.0 <= score <= 1.0


class TestPreferenceScore:
    def test_neutral_when_no_axis_applies(self):
        recipe = make_recipe("r", ["egg"])
        assert compute_preference_score(recipe, UserContext(), RecipePreferences()) == 0.5

    def test_averages_supplied_axes(self):
        recipe = make_recipe("r", ["egg", "milk"], meal_type="breakfast", cuisine="french")
        prefs = RecipePreferences(meal_type="Breakfast", must_include_ingredient="Eggs")
        user = UserContext(cuisine_preferences=["italian"])
        # meal type 1.0, must include 1.0, cuisine mismatch 0.4
        assert compute_preference_score(recipe, user, prefs) == pytest.approx(2.4 / 3)

    def test_missing_must_include(self):
        recipe = make_recipe("r", ["egg"])
        prefs = RecipePreferences(must_include_ingredient="salmon")
        assert compute_preference_score(recipe, UserContext(), prefs) == 0.0


class TestRanking:
    def test_composite_is_clamped(self):
        assert compute_composite_score(coverage=5, preference=5, quality=5, taste=5, novelty=5) == 1.0
        assert compute_composite_score(coverage=-5, preference=0, quality=0, taste=0, novelty=0) == 0.0

    def test_sorted_and_bounded(self):
        inventory = [InventoryItem(name=n) for n in ("egg", "milk", "flour")]
        candidates = [
            make_recipe("a", ["salmon", "dill"]),
            make_recipe("b", ["egg", "milk", "flour"]),
            make_recipe("c", ["egg", "bacon"]),
            make_recipe("d", []),
        ]
        ranked = rank_candidates_sync(candidates, inventory, UserContext(), RecipePreferences())

        scores = [c.composite_score for c in ranked]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)
        assert ranked[0].recipe.id == "b"

    def test_ties_keep_input_order(self):
        candidates = [make_recipe(i, ["egg"]) for i in ("first", "second", "third")]
        ranked = rank_candidates_sync(candidates, [], UserContext(), RecipePreferences())
        assert [c.recipe.id for c in ranked] == ["first", "second", "third"]

    def test_engine_without_user_matches_sync(self):
        candidates = [make_recipe("a", ["egg"]), make_recipe("b", ["milk"])]
        inventory = [InventoryItem(name="milk")]
        engine = ScoringEngine(TasteEngine(InMemoryTasteStore()))

        ranked = _run(engine.rank(candidates, inventory, UserContext(), RecipePreferences()))
        expected = rank_candidates_sync(candidates, inventory, UserContext(), RecipePreferences())
        assert [c.composite_score for c in ranked] == [c.composite_score for c in expected]
        assert all(c.taste_similarity == 0.5 and c.novelty_bonus == 0.5 for c in ranked)

    def test_custom_weights(self):
        coverage_only = ScoringWeights(
            inventory_coverage=1.0, explicit_preference=0.0, quality=0.0, taste_similarity=0.0, novelty=0.0
        )
        candidates = [make_recipe("half", ["egg", "milk"]), make_recipe("full", ["egg"])]
        inventory = [InventoryItem(name="eggs")]

        ranked = _run(
            ScoringEngine(weights=coverage_only).rank(candidates, inventory, UserContext(), RecipePreferences())
        )

        assert [(c.recipe.id, c.composite_score) for c in ranked] == [("full", 1.0), ("half", 0.5)]


class TestTasteAndNovelty:
    def _engine_with_profile(self, recipe, interactions: int):
        store = InMemoryTasteStore()
        store.profiles["u1"] = TasteProfile(
            user_id="u1",
            embedding=embed_library_recipe(recipe),
            interaction_count=interactions,
        )
        return store, ScoringEngine(TasteEngine(store))

    def test_taste_needs_three_interactions(self):
        recipe = make_recipe("r", ["chicken", "lemon"], cuisine="greek")
        _, engine = self._engine_with_profile(recipe, interactions=2)

        ranked = _run(engine.rank([recipe], [], UserContext(), RecipePreferences(), "u1"))
        assert ranked[0].taste_similarity == 0.5

    def test_matching_profile_scores_full_similarity(self):
        recipe = make_recipe("r", ["chicken", "lemon"], cuisine="greek")
        store, engine = self._engine_with_profile(recipe, interactions=3)

        ranked = _run(engine.rank([recipe], [], UserContext(), RecipePreferences(), "u1"))
        assert ranked[0].taste_similarity == pytest.approx(1.0)
        assert "r" in store.recipe_embeddings

    def test_novelty_decays_with_recent_interactions(self):
        recipe = make_recipe("r", ["egg"])
        store, engine = self._engine_with_profile(recipe, interactions=0)
        prefs = RecipePreferences()

        fresh = _run(engine.rank([recipe], [], UserContext(), prefs, "u1"))[0]
        assert fresh.novelty_bonus == 1.0

        for _ in range(2):
            store.signals.append(
                InteractionSignal(user_id="u1", recipe_id="r", signal_type=SignalType.COOKED)
            )
        seen = _run(engine.rank([recipe], [], UserContext(), prefs, "u1"))[0]
        assert seen.novelty_bonus == 0.4
        assert seen.composite_score < fresh.composite_score


class TestReuseGate:
    def test_empty_list(self):
        assert should_reuse(None) is False
        assert gate_failure_reason([]) == "no_candidates"

    def test_score_below_threshold(self):
        top = _candidate(0.77)
        assert should_reuse(top) is False
        assert gate_failure_reason([top]) == "score_below_threshold"

    def test_too_many_missing(self):
        top = _candidate(0.9, missing=4)
        assert should_reuse(top) is False
        assert gate_failure_reason([top]) == "too_many_missing_ingredients"

    def test_passes_at_boundaries(self):
        assert should_reuse(_candidate(0.78, missing=3)) is True

    def test_custom_thresholds(self):
        assert should_reuse(_candidate(0.6), score_threshold=0.5) is True
        assert should_reuse(_candidate(0.9, missing=1), max_missing=0) is False
