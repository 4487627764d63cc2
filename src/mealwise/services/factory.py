"""
Mealwise - Service Wiring.

Settings -> stores -> generation service -> RecipeService.
"""

import logging
from pathlib import Path

from mealwise.config import EngineSettings, get_settings
from mealwise.db.memory import InMemoryLibraryStore, InMemoryTasteStore
from mealwise.db.supabase_store import (
    SupabaseLibraryStore,
    SupabaseTasteStore,
    create_supabase_client,
)
from mealwise.llm.client import GenerativeService
from mealwise.llm.prompt_logger import enable_prompt_logging
from mealwise.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)


def build_recipe_service(
    settings: EngineSettings | None = None,
    library_file: str | Path | None = None,
) -> RecipeService:
    """
    Build a RecipeService.

    With library_file the stores are in-memory, seeded from that JSON file;
    otherwise they are Supabase-backed. Generation is enabled only when an
    OpenAI key is configured.

    Raises:
        ConfigurationError: Supabase stores requested without credentials
    """
    settings = settings or get_settings()

    if library_file is not None:
        library_store = InMemoryLibraryStore.from_json_file(library_file)
        taste_store = InMemoryTasteStore()
        logger.info(f"Using in-memory library from {library_file} ({len(library_store.all())} recipes)")
    else:
        client = create_supabase_client(settings)
        library_store = SupabaseLibraryStore(client)
        taste_store = SupabaseTasteStore(client)

    generative_service = None
    if settings.has_generation:
        generative_service = GenerativeService.from_settings(settings)
        if settings.mealwise_log_prompts:
            enable_prompt_logging()
    else:
        logger.info("OPENAI_API_KEY not set; generation disabled, library reuse only")

    return RecipeService(library_store, taste_store, generative_service, settings=settings)
