"""
Mealwise - Weekly Meal Plan Optimizer.

Re-weights already-ranked candidates across the 21 slots of a week
(7 days x breakfast/lunch/dinner) to keep meals varied and the cooking
effort balanced.

A WeeklyContext belongs to a single plan request. Slots are decided
strictly in order because each one reads and then mutates the context.
"""

from dataclasses import dataclass, field, replace
from collections.abc import Sequence

from mealwise.models import LibraryRecipe
from mealwise.recipes.constants import TARGET_EFFORT_PER_SLOT
from mealwise.recipes.normalize import normalize_ingredient_name
from mealwise.recipes.scoring import RankedCandidate, clamp01

# Checked in order; the first hit is the recipe's primary protein
PRIMARY_PROTEINS = (
    "chicken",
    "beef",
    "pork",
    "fish",
    "salmon",
    "shrimp",
    "tofu",
    "turkey",
    "lamb",
)

# Number of penalty factors the penalty total is normalized by
VARIETY_PENALTY_FACTORS = 4

VARIETY_WEIGHT = 0.6
EFFORT_WEIGHT = 0.4

# Combined score 0.0 -> 0.5x, 1.0 -> 1.2x
MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 1.2


@dataclass
class WeeklyContext:
    """Mutable state shared by the slots of one plan."""

    used_recipe_ids: set[str] = field(default_factory=set)
    cuisine_counts: dict[str, int] = field(default_factory=dict)
    protein_counts: dict[str, int] = field(default_factory=dict)
    total_effort_minutes: int = 0
    target_effort_per_slot: int = TARGET_EFFORT_PER_SLOT
    used_ingredients: set[str] = field(default_factory=set)


def create_weekly_context(target_effort_per_slot: int = TARGET_EFFORT_PER_SLOT) -> WeeklyContext:
    return WeeklyContext(target_effort_per_slot=target_effort_per_slot)


def _ingredient_names(recipe: LibraryRecipe) -> list[str]:
    return [n for n in map(normalize_ingredient_name, recipe.all_ingredient_names) if n]


def primary_protein(ingredient_names: Sequence[str]) -> str | None:
    """First protein keyword found in any ingredient name."""
    for protein in PRIMARY_PROTEINS:
        if any(protein in name for name in ingredient_names):
            return protein
    return None


def compute_variety_score(candidate: RankedCandidate, context: WeeklyContext) -> float:
    """
    Variety in [0, 1]; 1 means no penalty.

    Penalties: cuisine repeats (0.15 per prior use, capped at 0.5),
    primary protein repeats (0.1 on the 2nd use, 0.3 from the 3rd),
    exact repeat (1.0). Overlap with already-used ingredients earns a
    bonus of up to 0.2.
    """
    recipe = candidate.recipe
    penalties = 0.0

    cuisine = (recipe.cuisine or "").lower().strip()
    if cuisine:
        penalties += min(context.cuisine_counts.get(cuisine, 0) * 0.15, 0.5)

    names = _ingredient_names(recipe)
    protein = primary_protein(names)
    if protein:
        uses = context.protein_counts.get(protein, 0)
        if uses >= 2:
            penalties += 0.3
        elif uses == 1:
            penalties += 0.1

    if recipe.id in context.used_recipe_ids:
        penalties += 1.0

    reuse_count = sum(1 for name in names if name in context.used_ingredients)
    penalties -= min(reuse_count * 0.05, 0.2)

    ratio = max(0.0, min(penalties, VARIETY_PENALTY_FACTORS)) / VARIETY_PENALTY_FACTORS
    return 1.0 - ratio


def compute_effort_balance(
    candidate: RankedCandidate, context: WeeklyContext, slots_so_far: int
) -> float:
    """
    Effort score in [0, 1].

    1 minus the deviation of the running per-slot average (including this
    candidate) from the target, relative to the target.
    """
    target = context.target_effort_per_slot
    new_average = (context.total_effort_minutes + candidate.recipe.effort_minutes) / (slots_so_far + 1)
    deviation = abs(new_average - target)
    return max(0.0, 1.0 - deviation / target)


def compute_weekly_adjustment(
    candidate: RankedCandidate, context: WeeklyContext, slot_index: int
) -> float:
    """Multiplier in [0.5, 1.2] from the variety/effort blend."""
    combined = (
        compute_variety_score(candidate, context) * VARIETY_WEIGHT
        + compute_effort_balance(candidate, context, slot_index) * EFFORT_WEIGHT
    )
    return MIN_MULTIPLIER + combined * (MAX_MULTIPLIER - MIN_MULTIPLIER)


def apply_weekly_optimization(
    candidates: Sequence[RankedCandidate], context: WeeklyContext, slot_index: int
) -> list[RankedCandidate]:
    """
    Copies of the candidates with adjusted composite scores, best first.

    Ordering uses the raw product; the stored score is clamped to [0, 1].
    """
    adjusted = [
        (c.composite_score * compute_weekly_adjustment(c, context, slot_index), c)
        for c in candidates
    ]
    adjusted.sort(key=lambda pair: pair[0], reverse=True)
    return [replace(c, composite_score=clamp01(raw)) for raw, c in adjusted]


def update_weekly_context(context: WeeklyContext, recipe: LibraryRecipe) -> None:
    """Record a committed slot: id, cuisine, primary protein, ingredients, effort."""
    context.used_recipe_ids.add(recipe.id)

    cuisine = (recipe.cuisine or "").lower().strip()
    if cuisine:
        context.cuisine_counts[cuisine] = context.cuisine_counts.get(cuisine, 0) + 1

    names = _ingredient_names(recipe)
    protein = primary_protein(names)
    if protein:
        context.protein_counts[protein] = context.protein_counts.get(protein, 0) + 1

    context.used_ingredients.update(names)
    context.total_effort_minutes += recipe.effort_minutes
