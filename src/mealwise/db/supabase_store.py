"""
Mealwise - Supabase Stores.

LibraryStore and TasteStore over Supabase tables. Counter updates go
through database functions so increments are atomic (see
migrations/001_recipe_library.sql).
"""

import json
import logging
from datetime import UTC, datetime, timedelta

from supabase import Client, create_client

from mealwise.config import EngineSettings
from mealwise.errors import ConfigurationError
from mealwise.models import (
    InsertedRecipe,
    InteractionSignal,
    LibraryRecipe,
    RecipeDraft,
    TasteProfile,
)
from mealwise.recipes.constants import MAX_CANDIDATE_LIMIT

logger = logging.getLogger(__name__)

LIBRARY_TABLE = "recipe_library"
USER_TASTE_TABLE = "user_taste_embeddings"
RECIPE_EMBEDDING_TABLE = "recipe_embeddings"
SIGNAL_TABLE = "interaction_signals"


def create_supabase_client(settings: EngineSettings) -> Client:
    """Build a service-role Supabase client from settings."""
    if not settings.has_supabase:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


def _parse_vector(value) -> list[float] | None:
    # pgvector columns come back as "[0.1,0.2,...]" strings, jsonb as lists
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value)
    return [float(v) for v in value]


class SupabaseLibraryStore:
    """The shared recipe_library table."""

    def __init__(self, client: Client):
        self.client = client

    async def fetch_candidates(
        self,
        meal_type: str | None = None,
        max_total_minutes: int | None = None,
        must_include_ingredient: str | None = None,
        limit: int = 30,
    ) -> list[LibraryRecipe]:
        meal = (meal_type or "any").lower().strip()
        must = (must_include_ingredient or "").strip()
        params = {
            "p_meal_type": None if meal in ("", "any") else meal,
            "p_max_total_minutes": max(1, max_total_minutes) if max_total_minutes is not None else None,
            "p_must_include": must.lower() or None,
            "p_limit": max(1, min(MAX_CANDIDATE_LIMIT, limit)),
        }
        response = self.client.rpc("fetch_library_candidates", params).execute()
        return [LibraryRecipe.model_validate(row) for row in response.data or []]

    async def get_recipe(self, recipe_id: str) -> LibraryRecipe | None:
        response = (
            self.client.table(LIBRARY_TABLE).select("*").eq("id", recipe_id).limit(1).execute()
        )
        if not response.data:
            return None
        return LibraryRecipe.model_validate(response.data[0])

    async def insert(self, draft: RecipeDraft) -> InsertedRecipe | None:
        row = draft.model_dump(mode="json")
        response = self.client.table(LIBRARY_TABLE).insert(row).execute()
        if not response.data or not response.data[0].get("id"):
            return None
        return InsertedRecipe(
            id=str(response.data[0]["id"]),
            ingredient_signature=draft.ingredient_signature,
        )

    async def increment_usage(self, recipe_id: str) -> None:
        self.client.rpc("increment_recipe_usage", {"p_recipe_id": recipe_id}).execute()

    async def record_feedback(self, recipe_id: str, positive: bool) -> None:
        self.client.rpc(
            "record_recipe_feedback",
            {"p_recipe_id": recipe_id, "p_positive": positive},
        ).execute()

    async def sample_recent(self, limit: int = 30) -> list[LibraryRecipe]:
        response = (
            self.client.table(LIBRARY_TABLE)
            .select("*")
            .order("updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [LibraryRecipe.model_validate(row) for row in response.data or []]


class SupabaseTasteStore:
    """Taste embeddings, recipe embedding cache and the signal log."""

    def __init__(self, client: Client):
        self.client = client

    async def get_user_profile(self, user_id: str) -> TasteProfile | None:
        response = (
            self.client.table(USER_TASTE_TABLE)
            .select("user_id, embedding, interaction_count, updated_at")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return TasteProfile(
            user_id=str(row["user_id"]),
            embedding=_parse_vector(row["embedding"]) or [],
            interaction_count=row.get("interaction_count") or 0,
            updated_at=row.get("updated_at"),
        )

    async def upsert_user_profile(
        self,
        user_id: str,
        embedding: list[float],
        increment_interaction: bool = False,
    ) -> None:
        self.client.rpc(
            "upsert_user_taste_embedding",
            {
                "p_user_id": user_id,
                "p_embedding": embedding,
                "p_increment": 1 if increment_interaction else 0,
            },
        ).execute()

    async def get_recipe_embedding(self, recipe_id: str) -> list[float] | None:
        response = (
            self.client.table(RECIPE_EMBEDDING_TABLE)
            .select("embedding")
            .eq("recipe_id", recipe_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_vector(response.data[0]["embedding"])

    async def upsert_recipe_embedding(self, recipe_id: str, embedding: list[float]) -> None:
        self.client.table(RECIPE_EMBEDDING_TABLE).upsert(
            {
                "recipe_id": recipe_id,
                "embedding": embedding,
                "computed_at": datetime.now(UTC).isoformat(),
            }
        ).execute()

    async def record_interaction(self, signal: InteractionSignal) -> None:
        self.client.table(SIGNAL_TABLE).insert(
            {
                "user_id": signal.user_id,
                "recipe_id": signal.recipe_id,
                "signal_type": signal.signal_type.value,
                "metadata": signal.metadata,
                "created_at": signal.created_at.isoformat(),
            }
        ).execute()

    async def count_recent_interactions(
        self, user_id: str, recipe_id: str, window_days: int
    ) -> int:
        cutoff = datetime.now(UTC) - timedelta(days=window_days)
        response = (
            self.client.table(SIGNAL_TABLE)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("recipe_id", recipe_id)
            .gt("created_at", cutoff.isoformat())
            .execute()
        )
        return response.count or 0
