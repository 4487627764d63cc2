"""
Mealwise - Recipe Service.

Facade over the engine. Per request it fetches library candidates,
ranks them, and either reuses the best or falls back to generation.
For a weekly plan it repeats that per slot, re-weighting candidates
with a WeeklyContext so the week stays varied.

Slots of a week are decided one after another: each slot reads and then
updates the shared WeeklyContext.
"""

import logging
from collections.abc import Sequence

from mealwise.background import BackgroundTasks
from mealwise.config import EngineSettings
from mealwise.db.base import LibraryStore, TasteStore
from mealwise.errors import GenerationError, MalformedGenerationError
from mealwise.llm.client import GenerationImage, GenerativeService
from mealwise.models import (
    DayMealPlan,
    GenerateRecipesResult,
    GenerationTelemetry,
    InteractionSignal,
    InventoryItem,
    LibraryRecipe,
    RecipePreferences,
    RecipeResponse,
    SignalType,
    UserContext,
)
from mealwise.recipes.constants import MEAL_SLOTS, RECIPES_PER_REQUEST, WEEK_DAYS
from mealwise.recipes.scoring import (
    RankedCandidate,
    ScoringEngine,
    gate_failure_reason,
    log_ranking_telemetry,
    should_reuse,
)
from mealwise.recipes.taste import TasteEngine
from mealwise.recipes.weekly import (
    WeeklyContext,
    apply_weekly_optimization,
    create_weekly_context,
    update_weekly_context,
)
from mealwise.services.generation import GenerationOrchestrator, local_recipe_id
from mealwise.services.mappers import map_generated_recipe, map_library_recipe, map_ranked_candidate

logger = logging.getLogger(__name__)

THUMBS_SIGNALS = {SignalType.THUMBS_UP: True, SignalType.THUMBS_DOWN: False}


class RecipeService:
    """Reuse-or-generate decisions for single requests and weekly plans."""

    def __init__(
        self,
        library_store: LibraryStore,
        taste_store: TasteStore,
        generative_service: GenerativeService | None = None,
        *,
        settings: EngineSettings | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.library_store = library_store
        self.taste_store = taste_store

        self.taste = TasteEngine(
            taste_store,
            library_store,
            novelty_window_days=self.settings.novelty_window_days,
        )
        self.scoring = ScoringEngine(
            self.taste,
            min_taste_interactions=self.settings.min_taste_interactions,
        )
        self.generation = GenerationOrchestrator(
            generative_service,
            library_store,
            duplicate_threshold=self.settings.duplicate_threshold,
            sample_limit=self.settings.dedup_sample_limit,
        )
        self.background = BackgroundTasks()

    # -------------------------------------------------------------------------
    # Ranking and the reuse gate
    # -------------------------------------------------------------------------

    async def rank_and_maybe_reuse(
        self,
        candidates: Sequence[LibraryRecipe],
        inventory: Sequence[InventoryItem],
        user: UserContext,
        prefs: RecipePreferences,
        user_id: str | None = None,
    ) -> list[RankedCandidate]:
        """Rank candidates best-first and log the score distribution."""
        ranked = await self.scoring.rank(candidates, inventory, user, prefs, user_id)
        log_ranking_telemetry(ranked)
        return ranked

    def should_reuse(self, top: RankedCandidate | None) -> bool:
        return should_reuse(
            top,
            score_threshold=self.settings.reuse_score_threshold,
            max_missing=self.settings.reuse_max_missing,
        )

    def _gate_reason(self, ranked: Sequence[RankedCandidate]) -> str:
        return gate_failure_reason(
            ranked,
            score_threshold=self.settings.reuse_score_threshold,
            max_missing=self.settings.reuse_max_missing,
        )

    def _detach_usage(self, recipe_id: str) -> None:
        self.background.detach(
            self.library_store.increment_usage(recipe_id), f"increment_usage:{recipe_id}"
        )

    # -------------------------------------------------------------------------
    # Single request
    # -------------------------------------------------------------------------

    async def generate_recipes_from_inventory(
        self,
        inventory: Sequence[InventoryItem],
        user: UserContext,
        prefs: RecipePreferences,
        user_id: str | None = None,
        image: GenerationImage | None = None,
    ) -> GenerateRecipesResult:
        """
        Up to three recipes for the request.

        Reuses the top library candidates when the best one clears the
        reuse gate; otherwise generates, stores the best generated recipe
        and returns what the service produced.

        Raises:
            GenerationError: the generation path was needed and failed
        """
        candidates = await self.library_store.fetch_candidates(
            meal_type=prefs.meal_type,
            max_total_minutes=prefs.max_time_minutes,
            must_include_ingredient=prefs.must_include_ingredient,
            limit=self.settings.candidate_limit,
        )
        ranked = await self.rank_and_maybe_reuse(candidates, inventory, user, prefs, user_id)
        top = ranked[0] if ranked else None

        if self.should_reuse(top):
            chosen = ranked[:RECIPES_PER_REQUEST]
            for candidate in chosen:
                self._detach_usage(candidate.recipe.id)

            logger.info(
                f"Reusing library recipes: top={top.recipe.id} "
                f"score={top.composite_score:.3f} missing={top.missing_count} "
                f"returned={len(chosen)}"
            )
            return GenerateRecipesResult(
                recipes=[map_ranked_candidate(c, prefs.servings) for c in chosen],
                mode="reuse",
                telemetry=GenerationTelemetry(
                    candidate_count=len(ranked),
                    top_score=top.composite_score,
                ),
            )

        reason = self._gate_reason(ranked)
        telemetry = GenerationTelemetry(
            candidate_count=len(ranked),
            top_score=top.composite_score if top else None,
            gate_reason=reason,
        )
        logger.info(
            f"Generating recipes: reason={reason} candidates={len(ranked)} "
            f"top_score={f'{top.composite_score:.3f}' if top else None} "
            f"top_missing={top.missing_count if top else None}"
        )

        try:
            generated = await self.generation.generate_batch(inventory, user, prefs, image)
        except MalformedGenerationError as e:
            logger.warning(f"Discarding malformed generation output: {e}")
            return GenerateRecipesResult(recipes=[], mode="generate", telemetry=telemetry)

        # Highest self-reported match wins; ties keep generation order
        best = sorted(generated, key=lambda r: r.match_score, reverse=True)[0]
        stored = await self.generation.store_generated_recipe(best, user, prefs, user_id)

        recipes = []
        for recipe in generated[:RECIPES_PER_REQUEST]:
            recipe_id = stored.recipe_id if recipe is best else local_recipe_id()
            recipes.append(map_generated_recipe(recipe, recipe_id))

        return GenerateRecipesResult(recipes=recipes, mode="generate", telemetry=telemetry)

    # -------------------------------------------------------------------------
    # Weekly plan
    # -------------------------------------------------------------------------

    async def generate_weekly_meal_plan(
        self,
        inventory: Sequence[InventoryItem],
        user: UserContext,
        user_id: str | None = None,
        days: int = len(WEEK_DAYS),
    ) -> list[DayMealPlan]:
        """
        Breakfast, lunch and dinner for each day, Monday first.

        A slot that neither the library nor generation can fill is None.
        No library recipe appears twice within one plan.
        """
        days = max(1, min(len(WEEK_DAYS), days))
        max_time = max(10, round(user.max_cooking_time or 60))
        servings = max(1, round(user.household_size or 1))

        context = create_weekly_context(self.settings.target_effort_per_slot)
        plan = []
        slot_index = 0

        for day in WEEK_DAYS[:days]:
            meals = {}
            for meal_type in MEAL_SLOTS:
                meals[meal_type] = await self._recipe_for_slot(
                    inventory=inventory,
                    user=user,
                    meal_type=meal_type,
                    max_time=max_time,
                    servings=servings,
                    context=context,
                    slot_index=slot_index,
                    user_id=user_id,
                )
                slot_index += 1
            plan.append(DayMealPlan(day=day, **meals))

        return plan

    async def _recipe_for_slot(
        self,
        *,
        inventory: Sequence[InventoryItem],
        user: UserContext,
        meal_type: str,
        max_time: int,
        servings: int,
        context: WeeklyContext,
        slot_index: int,
        user_id: str | None,
    ) -> RecipeResponse | None:
        prefs = RecipePreferences(servings=servings, max_time_minutes=max_time, meal_type=meal_type)

        candidates = await self.library_store.fetch_candidates(
            meal_type=meal_type,
            max_total_minutes=max_time,
            limit=self.settings.candidate_limit,
        )
        ranked = await self.rank_and_maybe_reuse(candidates, inventory, user, prefs, user_id)
        optimized = apply_weekly_optimization(ranked, context, slot_index)

        chosen = next(
            (
                c
                for c in optimized
                if self.should_reuse(c) and c.recipe.id not in context.used_recipe_ids
            ),
            None,
        )

        if chosen is not None:
            self._detach_usage(chosen.recipe.id)
            update_weekly_context(context, chosen.recipe)
            logger.info(
                f"Weekly slot {slot_index} ({meal_type}): reuse {chosen.recipe.id} "
                f"score={chosen.composite_score:.3f}"
            )
            return map_library_recipe(
                chosen.recipe, servings, round(chosen.inventory_coverage * 100)
            )

        try:
            generated = await self.generation.generate_single(
                inventory, user, meal_type, max_time, servings
            )
            stored = await self.generation.store_generated_recipe(generated, user, prefs, user_id)
        except GenerationError as e:
            logger.error(f"Weekly slot {slot_index} ({meal_type}): omitted, generation failed: {e}")
            return None
        except Exception as e:
            logger.error(f"Weekly slot {slot_index} ({meal_type}): omitted, storing recipe failed: {e}")
            return None

        update_weekly_context(context, stored.draft.as_library_recipe(stored.recipe_id))
        logger.info(
            f"Weekly slot {slot_index} ({meal_type}): generate {stored.recipe_id} "
            f"persisted={stored.persisted}"
        )
        return map_generated_recipe(generated, stored.recipe_id, match_score=0, tags=[])

    # -------------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------------

    async def apply_interaction_signal(self, signal: InteractionSignal) -> bool:
        """
        Update the user's taste profile from one interaction.

        Thumbs signals also bump the recipe's feedback counters (detached).
        Returns False if the recipe is unknown.
        """
        applied = await self.taste.apply_interaction_signal(signal)
        if applied and signal.signal_type in THUMBS_SIGNALS:
            positive = THUMBS_SIGNALS[signal.signal_type]
            self.background.detach(
                self.library_store.record_feedback(signal.recipe_id, positive),
                f"record_feedback:{signal.recipe_id}",
            )
        return applied
