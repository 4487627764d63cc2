"""
Mealwise - Services.

RecipeService sequences ranking, reuse and generation per slot and across
a week. build_recipe_service wires it from settings.
"""

from mealwise.services.factory import build_recipe_service
from mealwise.services.recipe_service import RecipeService

__all__ = [
    "RecipeService",
    "build_recipe_service",
]
