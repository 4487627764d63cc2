"""
Pytest configuration and fixtures for Mealwise tests.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment before importing mealwise modules
os.environ["MEALWISE_ENV"] = "development"
os.environ["MEALWISE_LOG_PROMPTS"] = "false"

from mealwise.config import EngineSettings
from mealwise.db.memory import InMemoryLibraryStore, InMemoryTasteStore
from mealwise.models import (
    GeneratedRecipe,
    GeneratedRecipeBatch,
    InventoryItem,
    LibraryRecipe,
    RecipeIngredient,
    UserContext,
)
from mealwise.recipes.normalize import ingredient_signature


def make_recipe(
    recipe_id: str,
    ingredients: list[str],
    *,
    title: str | None = None,
    meal_type: str | None = "dinner",
    cuisine: str | None = None,
    prep_time: int | None = 10,
    cook_time: int | None = 20,
    **extra,
) -> LibraryRecipe:
    """Library recipe with one ingredient line per name."""
    return LibraryRecipe(
        id=recipe_id,
        title=title or recipe_id.replace("-", " ").title(),
        ingredients=[RecipeIngredient(name=n, amount="1") for n in ingredients],
        instructions=["Combine everything", "Serve"],
        ingredient_names=ingredients,
        ingredient_signature=ingredient_signature(ingredients),
        meal_type=meal_type,
        cuisine=cuisine,
        prep_time=prep_time,
        cook_time=cook_time,
        **extra,
    )


def make_generated(title: str, ingredients: list[str], match_score: int = 50, **extra) -> GeneratedRecipe:
    return GeneratedRecipe(
        title=title,
        description=f"{title} from what you have",
        ingredients=[RecipeIngredient(name=n, amount="1 cup") for n in ingredients],
        instructions=["Prep", "Cook"],
        prep_time=10,
        cook_time=15,
        calories=450,
        match_score=match_score,
        **extra,
    )


class FakeGenerativeService:
    """
    Stand-in for GenerativeService.

    Returns queued responses in order; an Exception in the queue is raised.
    When the queue is empty, builds a default response for the model asked.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    async def generate_structured(self, prompt, response_model, *, image=None, purpose="generation"):
        self.calls.append(
            {"prompt": prompt, "response_model": response_model, "image": image, "purpose": purpose}
        )
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

        n = len(self.calls)
        recipe = make_generated(f"Generated {n}", [f"ingredient {n}a", f"ingredient {n}b"])
        if response_model is GeneratedRecipeBatch:
            return GeneratedRecipeBatch(recipes=[recipe])
        return recipe


@pytest.fixture
def settings():
    """Settings isolated from the developer's .env."""
    return EngineSettings(
        _env_file=None,
        openai_api_key=None,
        supabase_url=None,
        supabase_service_role_key=None,
    )


@pytest.fixture
def library_store():
    return InMemoryLibraryStore()


@pytest.fixture
def taste_store():
    return InMemoryTasteStore()


@pytest.fixture
def fake_generator():
    return FakeGenerativeService()


@pytest.fixture
def pantry():
    """Inventory covering the curated pasta recipe."""
    return [
        InventoryItem(name="Spaghetti", quantity="1 lb"),
        InventoryItem(name="Tomatoes", quantity="4"),
        InventoryItem(name="basil"),
    ]


@pytest.fixture
def user():
    return UserContext(household_size=2, max_cooking_time=45)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    mock_table = MagicMock()
    for method in ("select", "insert", "upsert", "update", "eq", "gt", "order", "limit", "range"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[], count=0)

    mock_rpc = MagicMock()
    mock_rpc.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table
    mock_client.rpc.return_value = mock_rpc

    return mock_client
