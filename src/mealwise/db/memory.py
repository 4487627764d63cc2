"""
Mealwise - In-Memory Stores.

Process-local LibraryStore and TasteStore. Used by the test suite and by
the CLI when a library JSON file is given instead of Supabase.
"""

import itertools
import json
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

from mealwise.models import (
    InsertedRecipe,
    InteractionSignal,
    LibraryRecipe,
    RecipeDraft,
    TasteProfile,
)
from mealwise.recipes.constants import MAX_CANDIDATE_LIMIT
from mealwise.recipes.normalize import ingredient_signature


def _utc_now() -> datetime:
    return datetime.now(UTC)


class InMemoryLibraryStore:
    """Recipe library held in a dict, ordered by update sequence."""

    def __init__(self, recipes: list[LibraryRecipe] | None = None):
        self._recipes: dict[str, LibraryRecipe] = {}
        # Monotonic sequence breaks updated_at ties deterministically
        self._seq: dict[str, int] = {}
        self._counter = itertools.count()
        for recipe in recipes or []:
            self.add(recipe)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryLibraryStore":
        """Load a JSON list of library recipes."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        recipes = []
        for row in data:
            row.setdefault("id", uuid.uuid4().hex)
            names = row.get("ingredient_names") or [
                i.get("name", "") for i in row.get("ingredients", [])
            ]
            row["ingredient_names"] = names
            row.setdefault("ingredient_signature", ingredient_signature(names))
            recipes.append(LibraryRecipe.model_validate(row))
        return cls(recipes)

    def add(self, recipe: LibraryRecipe) -> LibraryRecipe:
        """Seed or replace a recipe directly."""
        if recipe.updated_at is None:
            recipe = recipe.model_copy(update={"updated_at": _utc_now()})
        self._recipes[recipe.id] = recipe
        self._seq[recipe.id] = next(self._counter)
        return recipe

    def clear(self) -> None:
        self._recipes.clear()
        self._seq.clear()

    def all(self) -> list[LibraryRecipe]:
        return self._newest_first(self._recipes.values())

    def _newest_first(self, recipes) -> list[LibraryRecipe]:
        return sorted(recipes, key=lambda r: self._seq[r.id], reverse=True)

    def _touch(self, recipe_id: str, **updates) -> None:
        recipe = self._recipes[recipe_id]
        updates["updated_at"] = _utc_now()
        self._recipes[recipe_id] = recipe.model_copy(update=updates)
        self._seq[recipe_id] = next(self._counter)

    async def fetch_candidates(
        self,
        meal_type: str | None = None,
        max_total_minutes: int | None = None,
        must_include_ingredient: str | None = None,
        limit: int = 30,
    ) -> list[LibraryRecipe]:
        limit = max(1, min(MAX_CANDIDATE_LIMIT, limit))
        meal = (meal_type or "any").lower().strip()
        must = (must_include_ingredient or "").lower().strip()

        results = []
        for recipe in self._newest_first(self._recipes.values()):
            if meal and meal != "any":
                row_meal = (recipe.meal_type or "").lower()
                if recipe.meal_type is not None and row_meal != meal:
                    continue
            if max_total_minutes is not None and recipe.effort_minutes > max(1, max_total_minutes):
                continue
            if must and must not in " ".join(recipe.ingredient_names).lower():
                continue
            results.append(recipe)
            if len(results) >= limit:
                break
        return results

    async def get_recipe(self, recipe_id: str) -> LibraryRecipe | None:
        return self._recipes.get(recipe_id)

    async def insert(self, draft: RecipeDraft) -> InsertedRecipe | None:
        recipe_id = uuid.uuid4().hex
        self.add(draft.as_library_recipe(recipe_id))
        return InsertedRecipe(id=recipe_id, ingredient_signature=draft.ingredient_signature)

    async def increment_usage(self, recipe_id: str) -> None:
        recipe = self._recipes.get(recipe_id)
        if recipe is not None:
            self._touch(recipe_id, usage_count=recipe.usage_count + 1)

    async def record_feedback(self, recipe_id: str, positive: bool) -> None:
        recipe = self._recipes.get(recipe_id)
        if recipe is None:
            return
        if positive:
            self._touch(recipe_id, thumbs_up=recipe.thumbs_up + 1)
        else:
            self._touch(recipe_id, thumbs_down=recipe.thumbs_down + 1)

    async def sample_recent(self, limit: int = 30) -> list[LibraryRecipe]:
        return self._newest_first(self._recipes.values())[:limit]


class InMemoryTasteStore:
    """Taste profiles, recipe embeddings and the signal log in dicts."""

    def __init__(self):
        self.profiles: dict[str, TasteProfile] = {}
        self.recipe_embeddings: dict[str, list[float]] = {}
        self.signals: list[InteractionSignal] = []

    async def get_user_profile(self, user_id: str) -> TasteProfile | None:
        return self.profiles.get(user_id)

    async def upsert_user_profile(
        self,
        user_id: str,
        embedding: list[float],
        increment_interaction: bool = False,
    ) -> None:
        existing = self.profiles.get(user_id)
        count = existing.interaction_count if existing else 0
        self.profiles[user_id] = TasteProfile(
            user_id=user_id,
            embedding=list(embedding),
            interaction_count=count + (1 if increment_interaction else 0),
            updated_at=_utc_now(),
        )

    async def get_recipe_embedding(self, recipe_id: str) -> list[float] | None:
        embedding = self.recipe_embeddings.get(recipe_id)
        return list(embedding) if embedding is not None else None

    async def upsert_recipe_embedding(self, recipe_id: str, embedding: list[float]) -> None:
        self.recipe_embeddings[recipe_id] = list(embedding)

    async def record_interaction(self, signal: InteractionSignal) -> None:
        self.signals.append(signal)

    async def count_recent_interactions(
        self, user_id: str, recipe_id: str, window_days: int
    ) -> int:
        cutoff = _utc_now() - timedelta(days=window_days)
        return sum(
            1
            for s in self.signals
            if s.user_id == user_id and s.recipe_id == recipe_id and s.created_at > cutoff
        )
