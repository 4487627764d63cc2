"""
Mealwise - Data Models.

Pydantic models for library recipes, request inputs and responses.
"""

from mealwise.models.entities import (
    DayMealPlan,
    GeneratedRecipe,
    GeneratedRecipeBatch,
    GenerateRecipesResult,
    GenerationTelemetry,
    InsertedRecipe,
    InteractionSignal,
    InventoryItem,
    LibraryRecipe,
    RecipeDraft,
    RecipeIngredient,
    RecipePreferences,
    RecipeResponse,
    RecipeSource,
    SignalType,
    TasteProfile,
    UserContext,
)

__all__ = [
    "DayMealPlan",
    "GeneratedRecipe",
    "GeneratedRecipeBatch",
    "GenerateRecipesResult",
    "GenerationTelemetry",
    "InsertedRecipe",
    "InteractionSignal",
    "InventoryItem",
    "LibraryRecipe",
    "RecipeDraft",
    "RecipeIngredient",
    "RecipePreferences",
    "RecipeResponse",
    "RecipeSource",
    "SignalType",
    "TasteProfile",
    "UserContext",
]
