"""
End-to-end tests for RecipeService on in-memory stores.

Scenarios:
- A fully covered curated recipe is reused with match score 100
- A library miss falls back to generation and stores the best recipe
- Generation failures: malformed output, service errors, no service
- Weekly plan: no repeats, omitted slots, generated slots committed
- Interaction signals update taste and feedback counters
"""

import asyncio

import pytest

from conftest import FakeGenerativeService, make_generated, make_recipe
from mealwise.errors import GenerationError, MalformedGenerationError
from mealwise.models import (
    GeneratedRecipeBatch,
    InteractionSignal,
    InventoryItem,
    RecipePreferences,
    SignalType,
)
from mealwise.services.recipe_service import RecipeService


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _call_and_drain(service, coro):
    async def scenario():
        try:
            return await coro
        finally:
            await service.background.drain()

    return _run(scenario())


@pytest.fixture
def service(library_store, taste_store, fake_generator, settings):
    return RecipeService(library_store, taste_store, fake_generator, settings=settings)


PASTA = ["Spaghetti", "Tomatoes", "basil"]


class TestGenerateRecipesFromInventory:
    def test_reuses_fully_covered_recipe(self, service, library_store, fake_generator, pantry, user):
        library_store.add(make_recipe("pasta", PASTA, meal_type="dinner", prep_time=10, cook_time=20))

        result = _call_and_drain(
            service,
            service.generate_recipes_from_inventory(
                pantry, user, RecipePreferences(meal_type="dinner", max_time_minutes=45)
            ),
        )

        assert result.mode == "reuse"
        assert result.recipes[0].id == "pasta"
        assert result.recipes[0].match_score == 100
        assert result.recipes[0].tags == ["dinner", "serves 2"]
        assert result.telemetry.candidate_count == 1
        assert result.telemetry.top_score >= 0.78
        assert fake_generator.calls == []
        assert library_store.all()[0].usage_count == 1

    def test_reuse_returns_top_three_and_counts_usage(self, service, library_store, pantry, user):
        for i in range(4):
            library_store.add(make_recipe(f"pasta-{i}", PASTA, meal_type="dinner"))

        result = _call_and_drain(
            service,
            service.generate_recipes_from_inventory(pantry, user, RecipePreferences(meal_type="dinner")),
        )

        assert result.mode == "reuse"
        assert len(result.recipes) == 3
        used = {r.id: r.usage_count for r in library_store.all()}
        assert sum(used.values()) == 3
        assert {r.id for r in result.recipes} == {k for k, v in used.items() if v == 1}

    def test_untyped_request_falls_below_threshold(self, service, library_store, fake_generator, pantry, user):
        library_store.add(make_recipe("pasta", PASTA, meal_type="dinner"))

        result = _call_and_drain(
            service, service.generate_recipes_from_inventory(pantry, user, RecipePreferences())
        )

        assert result.mode == "generate"
        assert result.telemetry.gate_reason == "score_below_threshold"
        assert len(fake_generator.calls) == 1

    def test_generates_and_stores_best_match(self, service, library_store, fake_generator, pantry, user):
        fake_generator.responses.append(
            GeneratedRecipeBatch(
                recipes=[
                    make_generated("Tomato Soup", ["tomato", "onion"], match_score=40),
                    make_generated("Caprese Pasta", ["spaghetti", "tomato", "basil"], match_score=90),
                    make_generated("Bruschetta", ["bread", "tomato"], match_score=60),
                ]
            )
        )

        result = _call_and_drain(
            service,
            service.generate_recipes_from_inventory(
                pantry, user, RecipePreferences(meal_type="dinner", servings=2), user_id="u1"
            ),
        )

        assert result.mode == "generate"
        assert result.telemetry.gate_reason == "no_candidates"
        assert [r.title for r in result.recipes] == ["Tomato Soup", "Caprese Pasta", "Bruschetta"]

        stored = library_store.all()
        assert len(stored) == 1
        assert stored[0].title == "Caprese Pasta"
        assert stored[0].source.value == "generated"
        assert stored[0].meal_type == "dinner"
        assert stored[0].created_by_user_id == "u1"
        assert stored[0].ingredient_signature == "basil|spaghetti|tomato"
        assert "serves 2" in stored[0].tags

        assert result.recipes[1].id == stored[0].id
        assert result.recipes[0].id.startswith("gen_")
        assert result.recipes[2].id.startswith("gen_")

        call = fake_generator.calls[0]
        assert call["response_model"] is GeneratedRecipeBatch
        assert "1 lb Spaghetti" in call["prompt"]

    def test_near_duplicate_is_returned_but_not_stored(self, service, library_store, fake_generator, user):
        # Breakfast-only library recipe: invisible to a dinner fetch, still sampled for dedup
        library_store.add(make_recipe("existing", ["egg", "milk", "flour"], meal_type="breakfast"))
        fake_generator.responses.append(
            GeneratedRecipeBatch(recipes=[make_generated("Crepes", ["Eggs", "Milk", "Flour"])])
        )

        result = _call_and_drain(
            service,
            service.generate_recipes_from_inventory(
                [InventoryItem(name="egg")], user, RecipePreferences(meal_type="dinner")
            ),
        )

        assert result.mode == "generate"
        assert result.recipes[0].id.startswith("gen_")
        assert [r.id for r in library_store.all()] == ["existing"]

    def test_malformed_output_yields_empty_result(self, service, fake_generator, pantry, user):
        fake_generator.responses.append(MalformedGenerationError("missing ingredients"))

        result = _call_and_drain(
            service, service.generate_recipes_from_inventory(pantry, user, RecipePreferences())
        )

        assert result.mode == "generate"
        assert result.recipes == []

    def test_generation_error_propagates(self, service, fake_generator, pantry, user):
        fake_generator.responses.append(GenerationError("service unavailable"))

        with pytest.raises(GenerationError):
            _call_and_drain(
                service, service.generate_recipes_from_inventory(pantry, user, RecipePreferences())
            )

    def test_without_generation_service(self, library_store, taste_store, settings, pantry, user):
        service = RecipeService(library_store, taste_store, None, settings=settings)

        with pytest.raises(GenerationError):
            _call_and_drain(
                service, service.generate_recipes_from_inventory(pantry, user, RecipePreferences())
            )

    def test_failed_usage_increment_does_not_fail_request(self, service, library_store, pantry, user):
        library_store.add(make_recipe("pasta", PASTA, meal_type="dinner"))

        async def broken(recipe_id):
            raise RuntimeError("counter service down")

        library_store.increment_usage = broken

        result = _call_and_drain(
            service,
            service.generate_recipes_from_inventory(pantry, user, RecipePreferences(meal_type="dinner")),
        )
        assert result.mode == "reuse"


class TestWeeklyMealPlan:
    def _seed_week(self, library_store):
        # Same effort (35 min) and disjoint ingredients so every candidate passes the gate
        recipes = {
            "breakfast-a": ("breakfast", ["oat", "milk", "honey"]),
            "breakfast-b": ("breakfast", ["egg", "toast", "butter"]),
            "lunch-a": ("lunch", ["rice", "carrot", "pea"]),
            "lunch-b": ("lunch", ["bread", "cheese", "pickle"]),
            "dinner-a": ("dinner", ["pasta", "tomato", "basil"]),
            "dinner-b": ("dinner", ["potato", "leek", "cream"]),
        }
        for recipe_id, (meal_type, ingredients) in recipes.items():
            library_store.add(
                make_recipe(recipe_id, ingredients, meal_type=meal_type, prep_time=15, cook_time=20)
            )
        return [InventoryItem(name=n) for _, names in recipes.values() for n in names]

    def test_two_day_plan_never_repeats(self, service, library_store, fake_generator, user):
        inventory = self._seed_week(library_store)

        plan = _call_and_drain(service, service.generate_weekly_meal_plan(inventory, user, days=2))

        assert [d.day for d in plan] == ["Monday", "Tuesday"]
        breakfasts = {plan[0].breakfast.id, plan[1].breakfast.id}
        assert breakfasts == {"breakfast-a", "breakfast-b"}
        assert {plan[0].lunch.id, plan[1].lunch.id} == {"lunch-a", "lunch-b"}
        assert {plan[0].dinner.id, plan[1].dinner.id} == {"dinner-a", "dinner-b"}
        assert plan[0].breakfast.match_score == 100
        assert fake_generator.calls == []
        assert all(r.usage_count == 1 for r in library_store.all())

    def test_full_week_has_seven_days(self, service, library_store, user):
        inventory = self._seed_week(library_store)

        plan = _call_and_drain(service, service.generate_weekly_meal_plan(inventory, user))

        assert [d.day for d in plan][0] == "Monday"
        assert [d.day for d in plan][-1] == "Sunday"
        ids = [
            meal.id for day in plan for meal in (day.breakfast, day.lunch, day.dinner) if meal is not None
        ]
        assert len(ids) == len(set(ids)) == 21

    def test_failed_generation_omits_slot(self, service, library_store, fake_generator, user):
        fake_generator.responses.append(GenerationError("rate limited"))

        plan = _call_and_drain(
            service, service.generate_weekly_meal_plan([InventoryItem(name="rice")], user, days=1)
        )

        assert plan[0].breakfast is None
        assert plan[0].lunch is not None
        assert plan[0].dinner is not None
        assert len(fake_generator.calls) == 3
        stored_ids = {r.id for r in library_store.all()}
        assert {plan[0].lunch.id, plan[0].dinner.id} == stored_ids

    def test_failed_store_omits_slot(self, service, library_store, fake_generator, user):
        real_insert = library_store.insert
        attempts = []

        async def flaky_insert(draft):
            attempts.append(draft.title)
            if len(attempts) == 1:
                raise RuntimeError("insert failed")
            return await real_insert(draft)

        library_store.insert = flaky_insert

        plan = _call_and_drain(
            service, service.generate_weekly_meal_plan([InventoryItem(name="rice")], user, days=1)
        )

        assert plan[0].breakfast is None
        assert plan[0].lunch is not None
        assert plan[0].dinner is not None
        assert len(attempts) == 3
        assert {plan[0].lunch.id, plan[0].dinner.id} == {r.id for r in library_store.all()}

    def test_generated_slot_prompt_uses_user_limits(self, service, fake_generator, user):
        _call_and_drain(service, service.generate_weekly_meal_plan([], user, days=1))

        prompt = fake_generator.calls[0]["prompt"]
        assert "suitable for breakfast" in prompt
        assert "Servings: 2" in prompt
        assert "45 minutes" in prompt


class TestApplyInteractionSignal:
    def test_thumbs_up_updates_taste_and_feedback(self, service, library_store, taste_store):
        library_store.add(make_recipe("pasta", PASTA))

        applied = _call_and_drain(
            service,
            service.apply_interaction_signal(
                InteractionSignal(user_id="u1", recipe_id="pasta", signal_type=SignalType.THUMBS_UP)
            ),
        )

        assert applied is True
        assert taste_store.profiles["u1"].interaction_count == 1
        assert library_store.all()[0].thumbs_up == 1

    def test_cooked_does_not_touch_feedback(self, service, library_store):
        library_store.add(make_recipe("pasta", PASTA))

        _call_and_drain(
            service,
            service.apply_interaction_signal(
                InteractionSignal(user_id="u1", recipe_id="pasta", signal_type=SignalType.COOKED)
            ),
        )

        recipe = library_store.all()[0]
        assert (recipe.thumbs_up, recipe.thumbs_down) == (0, 0)

    def test_unknown_recipe(self, service, taste_store):
        applied = _call_and_drain(
            service,
            service.apply_interaction_signal(
                InteractionSignal(user_id="u1", recipe_id="ghost", signal_type=SignalType.THUMBS_DOWN)
            ),
        )
        assert applied is False
        assert taste_store.profiles == {}
        assert service.background.pending == 0


def test_fake_service_defaults():
    fake = FakeGenerativeService()
    batch = _run(fake.generate_structured("p", GeneratedRecipeBatch))
    assert len(batch.recipes) == 1
