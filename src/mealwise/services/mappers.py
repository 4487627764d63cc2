"""
Mealwise - Response Mappers.

Library rows and generated recipes to the RecipeResponse handed back to
the caller.
"""

from collections.abc import Sequence

from mealwise.models import GeneratedRecipe, LibraryRecipe, RecipeResponse
from mealwise.recipes.scoring import RankedCandidate


def build_recipe_tags(
    *,
    diet_tags: Sequence[str] = (),
    meal_type: str | None = None,
    cuisine: str | None = None,
    servings: int | None = None,
    fallback_servings: int = 1,
) -> list[str]:
    """Diet tags, meal type, cuisine, then 'serves N'."""
    tags = [t for t in diet_tags if t]
    if meal_type:
        tags.append(meal_type)
    if cuisine:
        tags.append(cuisine)
    tags.append(f"serves {servings or fallback_servings}")
    return tags


def map_library_recipe(
    recipe: LibraryRecipe, fallback_servings: int, match_score: int = 0
) -> RecipeResponse:
    return RecipeResponse(
        id=recipe.id,
        title=recipe.title,
        description=recipe.description,
        ingredients=recipe.ingredients,
        instructions=recipe.instructions,
        prep_time=recipe.prep_time,
        cook_time=recipe.cook_time,
        calories=recipe.calories,
        match_score=match_score,
        tags=build_recipe_tags(
            diet_tags=recipe.diet_tags,
            meal_type=recipe.meal_type,
            cuisine=recipe.cuisine,
            servings=recipe.servings,
            fallback_servings=fallback_servings,
        ),
    )


def map_ranked_candidate(candidate: RankedCandidate, fallback_servings: int) -> RecipeResponse:
    """Library recipe with match_score = inventory coverage as a percentage."""
    match_score = round(candidate.inventory_coverage * 100)
    return map_library_recipe(candidate.recipe, fallback_servings, match_score)


def map_generated_recipe(
    recipe: GeneratedRecipe,
    recipe_id: str,
    *,
    match_score: int | None = None,
    tags: list[str] | None = None,
) -> RecipeResponse:
    return RecipeResponse(
        id=recipe_id,
        title=recipe.title,
        description=recipe.description,
        ingredients=recipe.ingredients,
        instructions=recipe.instructions,
        prep_time=recipe.prep_time,
        cook_time=recipe.cook_time,
        calories=recipe.calories,
        match_score=recipe.match_score if match_score is None else match_score,
        tags=list(recipe.tags) if tags is None else tags,
    )
