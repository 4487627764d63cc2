"""
Mealwise - Generation Orchestrator.

Runs on a reuse-gate miss:
1. Build a prompt from inventory, user context and preferences
2. Call the generation service (one attempt, no retry)
3. Check the result against a recent slice of the library for near-duplicates
4. Persist it as a `generated` library recipe unless it is a duplicate

A duplicate is still returned to the caller, under a local id.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from mealwise.db.base import LibraryStore
from mealwise.errors import GenerationError
from mealwise.llm.client import GenerationImage, GenerativeService
from mealwise.llm.prompts import build_recipe_generation_prompt, build_single_recipe_prompt
from mealwise.models import (
    GeneratedRecipe,
    GeneratedRecipeBatch,
    InventoryItem,
    RecipeDraft,
    RecipePreferences,
    RecipeSource,
    UserContext,
)
from mealwise.recipes.constants import (
    DEDUP_SAMPLE_LIMIT,
    DEDUP_SAMPLE_MAX,
    DEDUP_SAMPLE_MIN,
    DUPLICATE_THRESHOLD,
)
from mealwise.recipes.normalize import ingredient_signature, jaccard, normalized_name_set
from mealwise.services.mappers import build_recipe_tags

logger = logging.getLogger(__name__)


def local_recipe_id() -> str:
    """Id for a recipe that was not persisted."""
    return f"gen_{uuid.uuid4().hex}"


@dataclass
class StoredGeneration:
    """A generated recipe and where it ended up."""

    recipe: GeneratedRecipe
    draft: RecipeDraft
    recipe_id: str
    persisted: bool


class GenerationOrchestrator:
    """Prompt, generate, dedup, persist."""

    def __init__(
        self,
        service: GenerativeService | None,
        library_store: LibraryStore,
        *,
        duplicate_threshold: float = DUPLICATE_THRESHOLD,
        sample_limit: int = DEDUP_SAMPLE_LIMIT,
    ):
        self.service = service
        self.library_store = library_store
        self.duplicate_threshold = duplicate_threshold
        self.sample_limit = max(DEDUP_SAMPLE_MIN, min(DEDUP_SAMPLE_MAX, sample_limit))

    def _require_service(self) -> GenerativeService:
        if self.service is None:
            raise GenerationError("Generation service is not configured (set OPENAI_API_KEY)")
        return self.service

    async def generate_batch(
        self,
        inventory: Sequence[InventoryItem],
        user: UserContext,
        prefs: RecipePreferences,
        image: GenerationImage | None = None,
    ) -> list[GeneratedRecipe]:
        """Several candidate recipes for one request."""
        service = self._require_service()
        prompt = build_recipe_generation_prompt(inventory, user, prefs)
        batch = await service.generate_structured(
            prompt, GeneratedRecipeBatch, image=image, purpose="recipes_from_inventory"
        )
        return list(batch.recipes)

    async def generate_single(
        self,
        inventory: Sequence[InventoryItem],
        user: UserContext,
        meal_type: str,
        max_time_minutes: int,
        servings: int,
    ) -> GeneratedRecipe:
        """One recipe for a weekly plan slot."""
        service = self._require_service()
        prompt = build_single_recipe_prompt(inventory, user, meal_type, max_time_minutes, servings)
        return await service.generate_structured(
            prompt, GeneratedRecipe, purpose=f"weekly_{meal_type}"
        )

    async def is_near_duplicate(self, ingredient_names: Sequence[str]) -> bool:
        """True if any recently updated library recipe overlaps above the threshold."""
        target = normalized_name_set(ingredient_names)
        if not target:
            return False

        for row in await self.library_store.sample_recent(self.sample_limit):
            similarity = jaccard(target, normalized_name_set(row.all_ingredient_names))
            if similarity > self.duplicate_threshold:
                logger.info(
                    f"Near-duplicate of library recipe {row.id} (jaccard={similarity:.2f})"
                )
                return True
        return False

    def build_draft(
        self,
        recipe: GeneratedRecipe,
        user: UserContext,
        prefs: RecipePreferences,
        user_id: str | None = None,
    ) -> RecipeDraft:
        names = [i.name for i in recipe.ingredients if i.name]
        meal_type = prefs.meal_type if prefs.meal_type != "any" else None
        return RecipeDraft(
            title=recipe.title.strip() or "Untitled recipe",
            description=recipe.description,
            ingredients=recipe.ingredients,
            instructions=recipe.instructions,
            ingredient_names=names,
            ingredient_signature=ingredient_signature(names),
            cuisine=recipe.cuisine,
            meal_type=meal_type,
            diet_tags=list(user.dietary_restrictions),
            allergens=list(user.allergies),
            tags=build_recipe_tags(
                diet_tags=user.dietary_restrictions,
                meal_type=meal_type,
                cuisine=recipe.cuisine,
                servings=prefs.servings,
            ),
            prep_time=recipe.prep_time,
            cook_time=recipe.cook_time,
            servings=prefs.servings,
            calories=recipe.calories,
            source=RecipeSource.GENERATED,
            created_by_user_id=user_id,
        )

    async def store_generated_recipe(
        self,
        recipe: GeneratedRecipe,
        user: UserContext,
        prefs: RecipePreferences,
        user_id: str | None = None,
    ) -> StoredGeneration:
        """Persist unless near-duplicate; the result carries the id either way."""
        draft = self.build_draft(recipe, user, prefs, user_id)

        if await self.is_near_duplicate(draft.ingredient_names):
            return StoredGeneration(recipe, draft, local_recipe_id(), persisted=False)

        inserted = await self.library_store.insert(draft)
        if inserted is None:
            logger.warning(f"Library insert returned no id for '{draft.title}'")
            return StoredGeneration(recipe, draft, local_recipe_id(), persisted=False)

        logger.info(f"Stored generated recipe {inserted.id}: {draft.title}")
        return StoredGeneration(recipe, draft, inserted.id, persisted=True)
