"""
Store Protocols.

The engine reaches persistence only through these two narrow interfaces.
Implementations own their own concurrency control: counters must be
monotonic increments so a retried call is harmless.

Implementations:
- mealwise.db.memory: in-process stores (tests, offline CLI runs)
- mealwise.db.supabase_store: Supabase/PostgREST tables + RPCs
"""

from typing import Protocol, runtime_checkable

from mealwise.models import (
    InsertedRecipe,
    InteractionSignal,
    LibraryRecipe,
    RecipeDraft,
    TasteProfile,
)


@runtime_checkable
class LibraryStore(Protocol):
    """Shared recipe library."""

    async def fetch_candidates(
        self,
        meal_type: str | None = None,
        max_total_minutes: int | None = None,
        must_include_ingredient: str | None = None,
        limit: int = 30,
    ) -> list[LibraryRecipe]:
        """
        Candidate recipes for a slot, newest-updated first.

        meal_type matches the recipe's meal type or recipes without one
        ("any" disables the filter). max_total_minutes bounds prep + cook.
        must_include_ingredient is a case-insensitive substring match on
        the joined ingredient names. limit is clamped to [1, 50].
        """
        ...

    async def get_recipe(self, recipe_id: str) -> LibraryRecipe | None:
        """Single recipe by id."""
        ...

    async def insert(self, draft: RecipeDraft) -> InsertedRecipe | None:
        """Persist a new recipe. Returns None if the store assigned no id."""
        ...

    async def increment_usage(self, recipe_id: str) -> None:
        """Bump usage_count (and updated_at). Best-effort from the engine's side."""
        ...

    async def record_feedback(self, recipe_id: str, positive: bool) -> None:
        """Bump thumbs_up or thumbs_down. Best-effort from the engine's side."""
        ...

    async def sample_recent(self, limit: int = 30) -> list[LibraryRecipe]:
        """Most recently updated recipes, for duplicate checks."""
        ...


@runtime_checkable
class TasteStore(Protocol):
    """Taste embeddings and the interaction log."""

    async def get_user_profile(self, user_id: str) -> TasteProfile | None:
        ...

    async def upsert_user_profile(
        self,
        user_id: str,
        embedding: list[float],
        increment_interaction: bool = False,
    ) -> None:
        """Replace the embedding; optionally add one to interaction_count."""
        ...

    async def get_recipe_embedding(self, recipe_id: str) -> list[float] | None:
        ...

    async def upsert_recipe_embedding(self, recipe_id: str, embedding: list[float]) -> None:
        ...

    async def record_interaction(self, signal: InteractionSignal) -> None:
        """Append a signal to the interaction log."""
        ...

    async def count_recent_interactions(
        self, user_id: str, recipe_id: str, window_days: int
    ) -> int:
        """Signals for this user and recipe within the trailing window."""
        ...
