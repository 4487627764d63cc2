"""
Mealwise - Recipe Scoring.

Ranks library candidates for a request by a composite score in [0, 1]:

- Inventory coverage (40%): share of the recipe's ingredients on hand
- Explicit preference (15%): meal type, must-include, cuisine preferences
- Quality (20%): stored quality nudged by feedback and usage
- Taste similarity (15%): cosine vs. the user's taste embedding
- Novelty (10%): bonus for recipes the user has not seen lately

The reuse gate then decides whether the top candidate is good enough to
serve instead of generating a new recipe.
"""

import logging
import math
import statistics
from dataclasses import dataclass, field
from collections.abc import Sequence

from mealwise.models import InventoryItem, LibraryRecipe, RecipePreferences, UserContext
from mealwise.recipes.constants import (
    CUISINE_MISMATCH_CREDIT,
    DEFAULT_QUALITY,
    MIN_TASTE_INTERACTIONS,
    NEUTRAL_SCORE,
    REUSE_MAX_MISSING,
    REUSE_SCORE_THRESHOLD,
)
from mealwise.recipes.normalize import normalize_ingredient_name, normalized_name_set
from mealwise.recipes.taste import TasteEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """Composite weights. Need not sum to 1; the composite is clamped."""

    inventory_coverage: float = 0.40
    explicit_preference: float = 0.15
    quality: float = 0.20
    taste_similarity: float = 0.15
    novelty: float = 0.10


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass
class RankedCandidate:
    """A library recipe with its score breakdown for one request."""

    recipe: LibraryRecipe
    inventory_coverage: float
    missing_ingredients: list[str] = field(default_factory=list)
    preference_score: float = NEUTRAL_SCORE
    quality_score: float = DEFAULT_QUALITY
    taste_similarity: float = NEUTRAL_SCORE
    novelty_bonus: float = NEUTRAL_SCORE
    composite_score: float = 0.0

    @property
    def missing_count(self) -> int:
        return len(self.missing_ingredients)


def clamp01(value: float) -> float:
    """Clamp to [0, 1]; non-finite values become 0."""
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


# =============================================================================
# Factor Scores
# =============================================================================


def compute_inventory_coverage(
    recipe_ingredient_names: Sequence[str],
    inventory: Sequence[InventoryItem],
) -> tuple[float, list[str]]:
    """
    Fraction of the recipe's ingredients found in the inventory.

    Returns:
        (coverage, missing normalized names). (0.0, []) for a recipe
        without ingredients.
    """
    have_set = normalized_name_set(item.name for item in inventory or [])
    normalized = [n for n in map(normalize_ingredient_name, recipe_ingredient_names or []) if n]

    if not normalized:
        return 0.0, []

    missing = [name for name in normalized if name not in have_set]
    coverage = (len(normalized) - len(missing)) / len(normalized)
    return coverage, missing


def compute_quality_score(recipe: LibraryRecipe) -> float:
    """
    Stored quality adjusted by bounded feedback and usage terms.

    - feedback: (upvote ratio - 0.5) * 0.2, so at most +/- 0.1
    - usage: min(0.05, log10(usage + 1) * 0.03)
    """
    base = clamp01(recipe.quality_score) if recipe.quality_score is not None else DEFAULT_QUALITY

    up = max(0, recipe.thumbs_up)
    down = max(0, recipe.thumbs_down)
    total = up + down
    ratio = up / total if total > 0 else 0.5
    feedback_boost = (ratio - 0.5) * 0.2

    usage = max(0, recipe.usage_count)
    usage_boost = min(0.05, math.log10(usage + 1) * 0.03)

    return clamp01(base + feedback_boost + usage_boost)


def compute_preference_score(
    recipe: LibraryRecipe,
    user: UserContext,
    prefs: RecipePreferences,
) -> float:
    """
    Average over the preference axes the request actually supplies.

    Axes: meal type match, must-include ingredient present, cuisine in the
    user's preferences (0.4 partial credit otherwise). 0.5 if none apply.
    """
    score = 0.0
    denom = 0

    meal_type = (prefs.meal_type or "any").lower().strip()
    if meal_type and meal_type != "any":
        denom += 1
        score += 1.0 if (recipe.meal_type or "").lower().strip() == meal_type else 0.0

    must_include = (prefs.must_include_ingredient or "").strip()
    if must_include:
        denom += 1
        wanted = normalize_ingredient_name(must_include)
        score += 1.0 if wanted in normalized_name_set(recipe.ingredient_names) else 0.0

    cuisines = [c.lower().strip() for c in user.cuisine_preferences if c and c.strip()]
    if cuisines:
        denom += 1
        row_cuisine = (recipe.cuisine or "").lower().strip()
        score += 1.0 if row_cuisine and row_cuisine in cuisines else CUISINE_MISMATCH_CREDIT

    return NEUTRAL_SCORE if denom == 0 else clamp01(score / denom)


def compute_composite_score(
    *,
    coverage: float,
    preference: float,
    quality: float,
    taste: float,
    novelty: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted sum of the five factors, clamped to [0, 1]."""
    return clamp01(
        coverage * weights.inventory_coverage
        + preference * weights.explicit_preference
        + quality * weights.quality
        + taste * weights.taste_similarity
        + novelty * weights.novelty
    )


# =============================================================================
# Ranking
# =============================================================================


def _base_candidate(
    recipe: LibraryRecipe,
    inventory: Sequence[InventoryItem],
    user: UserContext,
    prefs: RecipePreferences,
) -> RankedCandidate:
    coverage, missing = compute_inventory_coverage(recipe.ingredient_names, inventory)
    return RankedCandidate(
        recipe=recipe,
        inventory_coverage=coverage,
        missing_ingredients=missing,
        preference_score=compute_preference_score(recipe, user, prefs),
        quality_score=compute_quality_score(recipe),
    )


def _finish(candidate: RankedCandidate, weights: ScoringWeights) -> RankedCandidate:
    candidate.composite_score = compute_composite_score(
        coverage=candidate.inventory_coverage,
        preference=candidate.preference_score,
        quality=candidate.quality_score,
        taste=candidate.taste_similarity,
        novelty=candidate.novelty_bonus,
        weights=weights,
    )
    return candidate


def _sort_ranked(ranked: list[RankedCandidate]) -> list[RankedCandidate]:
    # sorted() is stable, so ties keep input order
    return sorted(ranked, key=lambda c: c.composite_score, reverse=True)


def rank_candidates_sync(
    candidates: Sequence[LibraryRecipe],
    inventory: Sequence[InventoryItem],
    user: UserContext,
    prefs: RecipePreferences,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[RankedCandidate]:
    """
    Rank without taste or novelty lookups.

    Both store-backed factors are neutral (0.5).
    """
    ranked = [
        _finish(_base_candidate(recipe, inventory, user, prefs), weights)
        for recipe in candidates or []
    ]
    return _sort_ranked(ranked)


class ScoringEngine:
    """
    Ranks candidates with the full five-factor composite.

    Taste similarity and novelty need a TasteEngine and a user id; without
    them both factors stay neutral.
    """

    def __init__(
        self,
        taste: TasteEngine | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        *,
        min_taste_interactions: int = MIN_TASTE_INTERACTIONS,
    ):
        self.taste = taste
        self.weights = weights
        self.min_taste_interactions = min_taste_interactions

    async def rank(
        self,
        candidates: Sequence[LibraryRecipe],
        inventory: Sequence[InventoryItem],
        user: UserContext,
        prefs: RecipePreferences,
        user_id: str | None = None,
    ) -> list[RankedCandidate]:
        """Score every candidate and sort by composite, best first."""
        if self.taste is None or not user_id:
            return rank_candidates_sync(candidates, inventory, user, prefs, self.weights)

        profile = await self.taste.taste_store.get_user_profile(user_id)
        use_taste = profile is not None and profile.interaction_count >= self.min_taste_interactions

        ranked = []
        for recipe in candidates or []:
            candidate = _base_candidate(recipe, inventory, user, prefs)
            if use_taste:
                candidate.taste_similarity = await self.taste.taste_similarity(
                    profile.embedding, recipe
                )
            candidate.novelty_bonus = await self.taste.novelty_score(user_id, recipe.id)
            ranked.append(_finish(candidate, self.weights))

        return _sort_ranked(ranked)


# =============================================================================
# Reuse Gate
# =============================================================================


def should_reuse(
    top: RankedCandidate | None,
    *,
    score_threshold: float = REUSE_SCORE_THRESHOLD,
    max_missing: int = REUSE_MAX_MISSING,
) -> bool:
    """Reuse iff the candidate scores high enough and needs few purchases."""
    if top is None:
        return False
    return top.composite_score >= score_threshold and top.missing_count <= max_missing


def gate_failure_reason(
    ranked: Sequence[RankedCandidate],
    *,
    score_threshold: float = REUSE_SCORE_THRESHOLD,
    max_missing: int = REUSE_MAX_MISSING,
) -> str:
    """Why the reuse gate rejected the top candidate."""
    if not ranked:
        return "no_candidates"
    if ranked[0].composite_score < score_threshold:
        return "score_below_threshold"
    if ranked[0].missing_count > max_missing:
        return "too_many_missing_ingredients"
    return "unknown"


def log_ranking_telemetry(ranked: Sequence[RankedCandidate]) -> None:
    """Log score distribution and the top candidate's breakdown."""
    if not ranked:
        logger.info("Recipe ranking completed: 0 candidates")
        return

    scores = [c.composite_score for c in ranked]
    top = ranked[0]
    logger.info(
        f"Recipe ranking completed: candidates={len(ranked)} "
        f"min={min(scores):.3f} max={max(scores):.3f} median={statistics.median(scores):.3f} "
        f"top={top.recipe.id} composite={top.composite_score:.3f} "
        f"coverage={top.inventory_coverage:.3f} preference={top.preference_score:.3f} "
        f"quality={top.quality_score:.3f} taste={top.taste_similarity:.3f} "
        f"novelty={top.novelty_bonus:.3f} missing={top.missing_count}"
    )
