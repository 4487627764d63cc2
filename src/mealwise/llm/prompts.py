"""
Mealwise - Generation Prompts.

Plain-text prompt builders. The output shape is enforced by the response
model passed to Instructor, so prompts describe content, not JSON syntax.
"""

from collections.abc import Sequence

from mealwise.models import InventoryItem, RecipePreferences, UserContext
from mealwise.recipes.constants import RECIPES_PER_REQUEST

SYSTEM_PROMPT = """You are a home-cooking recipe developer.
You write practical recipes that use up what the cook already has.
Respect dietary restrictions and allergies without exception.
Times are in whole minutes. Ingredient amounts are short strings like "2 cups"."""


def inventory_summary_text(inventory: Sequence[InventoryItem]) -> str:
    """'2 lb chicken thighs, rice, 3 eggs' style summary."""
    parts = []
    for item in inventory or []:
        text = f"{item.quantity} {item.name}" if item.quantity else item.name
        text = text.strip()
        if text:
            parts.append(text)
    return ", ".join(parts)


def build_user_context(user: UserContext) -> str:
    return "\n".join(
        [
            f"- Cuisine preferences: {', '.join(user.cuisine_preferences) or 'Any'}",
            f"- Dietary restrictions: {', '.join(user.dietary_restrictions) or 'None'}",
            f"- Allergies: {', '.join(user.allergies) or 'None'}",
        ]
    )


def build_recipe_generation_prompt(
    inventory: Sequence[InventoryItem],
    user: UserContext,
    prefs: RecipePreferences,
    count: int = RECIPES_PER_REQUEST,
) -> str:
    """Prompt for several recipes built around the user's stock."""
    max_time = prefs.max_time_minutes or "no limit"
    return f"""I have these ingredients: {inventory_summary_text(inventory) or 'nothing listed'}.
My profile:
{build_user_context(user)}

Recipe preferences:
- Servings (number of people): {prefs.servings}
- Max total time (prep + cook): {max_time} minutes
- Meal type: {prefs.meal_type}
- Cravings / mood: {prefs.cravings or 'None specified'}
- Must include this ingredient if possible: {prefs.must_include_ingredient or 'None'}

Suggest {count} creative recipes that prioritize using my existing stock to reduce waste.
Keep each recipe within the max total time ({max_time} minutes).
If a meal type is provided (not "any"), make recipes appropriate for that meal type.
If a must-include ingredient is provided, include it in each recipe when reasonable.
Rate each recipe with a match_score (0-100) based on how many ingredients I already have vs need to buy.
Set cuisine to a single word such as italian, mexican or thai.

In tags, include short tags such as: cuisine, meal type, "serves {prefs.servings}", cravings keywords (if any), and dietary-friendly tags when appropriate."""


def build_single_recipe_prompt(
    inventory: Sequence[InventoryItem],
    user: UserContext,
    meal_type: str,
    max_time_minutes: int,
    servings: int,
) -> str:
    """Prompt for one recipe filling a weekly plan slot."""
    return f"""I have these ingredients: {inventory_summary_text(inventory) or 'nothing listed'}.
My profile:
{build_user_context(user)}

Create ONE recipe suitable for {meal_type}.
- Servings: {servings}
- Max total time (prep + cook): {max_time_minutes} minutes

Prioritize using my existing ingredients."""
