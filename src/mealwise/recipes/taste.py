"""
Mealwise - Taste Embeddings.

Per-user taste profiles and per-recipe embeddings over 26 named axes
(cuisine, flavor, protein, cooking method, complexity, time band).

Recipe embeddings are rule-based: keyword hits over the recipe's metadata,
L2-normalized, computed once and cached in the TasteStore. User embeddings
move towards (or away from) recipe embeddings with an exponential moving
average, one interaction signal at a time.
"""

import logging
import math
import re
from collections.abc import Iterable, Sequence

from mealwise.db.base import LibraryStore, TasteStore
from mealwise.errors import EmbeddingDimensionError
from mealwise.models import InteractionSignal, LibraryRecipe, SignalType
from mealwise.recipes.constants import NEUTRAL_SCORE, NOVELTY_WINDOW_DAYS

logger = logging.getLogger(__name__)

TasteEmbedding = list[float]

# =============================================================================
# Embedding Axes
# =============================================================================

EMBEDDING_DIMENSIONS: tuple[str, ...] = (
    "cuisine_italian",
    "cuisine_asian",
    "cuisine_mexican",
    "cuisine_indian",
    "cuisine_american",
    "cuisine_mediterranean",
    "flavor_spicy",
    "flavor_savory",
    "flavor_sweet",
    "flavor_sour",
    "protein_chicken",
    "protein_beef",
    "protein_fish",
    "protein_vegetarian",
    "protein_pork",
    "method_grilled",
    "method_baked",
    "method_fried",
    "method_steamed",
    "method_raw",
    "complexity_simple",
    "complexity_moderate",
    "complexity_complex",
    "time_quick",
    "time_medium",
    "time_long",
)

EMBEDDING_SIZE = len(EMBEDDING_DIMENSIONS)

_AXIS_INDEX = {name: i for i, name in enumerate(EMBEDDING_DIMENSIONS)}

CUISINE_MAP = {
    "italian": "cuisine_italian",
    "asian": "cuisine_asian",
    "chinese": "cuisine_asian",
    "japanese": "cuisine_asian",
    "thai": "cuisine_asian",
    "korean": "cuisine_asian",
    "vietnamese": "cuisine_asian",
    "mexican": "cuisine_mexican",
    "indian": "cuisine_indian",
    "american": "cuisine_american",
    "mediterranean": "cuisine_mediterranean",
    "greek": "cuisine_mediterranean",
    "middle_eastern": "cuisine_mediterranean",
    "middle eastern": "cuisine_mediterranean",
}

PROTEIN_KEYWORDS = {
    "chicken": "protein_chicken",
    "turkey": "protein_chicken",
    "beef": "protein_beef",
    "steak": "protein_beef",
    "fish": "protein_fish",
    "salmon": "protein_fish",
    "tuna": "protein_fish",
    "shrimp": "protein_fish",
    "pork": "protein_pork",
    "bacon": "protein_pork",
    "tofu": "protein_vegetarian",
    "tempeh": "protein_vegetarian",
    "lentil": "protein_vegetarian",
    "chickpea": "protein_vegetarian",
    "bean": "protein_vegetarian",
}

FLAVOR_PATTERNS = {
    "flavor_spicy": re.compile(r"chili|chile|jalape|cayenne|sriracha|hot sauce|spicy|chipotle"),
    "flavor_savory": re.compile(r"soy sauce|parmesan|mushroom|miso|anchov|fish sauce|stock|broth"),
    "flavor_sweet": re.compile(r"sugar|honey|maple|sweet|chocolate|caramel"),
    "flavor_sour": re.compile(r"lemon|lime|vinegar|tamarind|pickle|yogurt"),
}

METHOD_KEYWORDS = {
    "grill": "method_grilled",
    "grilled": "method_grilled",
    "bake": "method_baked",
    "baked": "method_baked",
    "roast": "method_baked",
    "fry": "method_fried",
    "fried": "method_fried",
    "steam": "method_steamed",
    "steamed": "method_steamed",
    "raw": "method_raw",
    "salad": "method_raw",
}

# Signal -> (EMA weight, direction)
SIGNAL_WEIGHTS: dict[SignalType, tuple[float, int]] = {
    SignalType.COOKED: (0.15, 1),
    SignalType.REPEATED: (0.20, 1),
    SignalType.THUMBS_UP: (0.25, 1),
    SignalType.THUMBS_DOWN: (0.20, -1),
    SignalType.SKIPPED: (0.05, -1),
    SignalType.EDITED: (0.08, 1),
}


# =============================================================================
# Vector Utilities
# =============================================================================


def zero_embedding() -> TasteEmbedding:
    """Zero vector of EMBEDDING_SIZE."""
    return [0.0] * EMBEDDING_SIZE


def normalize_vector(vec: Sequence[float]) -> TasteEmbedding:
    """Scale to unit length. A zero vector is returned unchanged."""
    magnitude = math.sqrt(sum(v * v for v in vec))
    if magnitude == 0:
        return list(vec)
    return [v / magnitude for v in vec]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for mismatched lengths or zero vectors."""
    if len(a) != len(b):
        return 0.0
    dot = mag_a = mag_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        mag_a += x * x
        mag_b += y * y
    denom = math.sqrt(mag_a) * math.sqrt(mag_b)
    return 0.0 if denom == 0 else dot / denom


def ema_update(
    current: Sequence[float],
    signal: Sequence[float],
    alpha: float = 0.1,
) -> TasteEmbedding:
    """
    Exponential moving average: current * (1 - alpha) + signal * alpha.

    Raises:
        EmbeddingDimensionError: if the vectors differ in length
    """
    if len(current) != len(signal):
        raise EmbeddingDimensionError(len(current), len(signal))
    return [c * (1 - alpha) + s * alpha for c, s in zip(current, signal)]


def dominant_axes(embedding: Sequence[float], n: int = 2) -> list[str]:
    """Names of the n strongest axes, strongest first."""
    ranked = sorted(range(len(embedding)), key=lambda i: embedding[i], reverse=True)
    return [EMBEDDING_DIMENSIONS[i] for i in ranked[:n] if embedding[i] > 0]


# =============================================================================
# Recipe Embedding Generation
# =============================================================================


def _ingredient_text(ingredients: Iterable) -> str:
    parts = []
    for item in ingredients or []:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict):
            parts.append(str(item.get("name") or ""))
        else:
            parts.append(getattr(item, "name", "") or "")
    return " ".join(parts).lower()


def generate_recipe_embedding(
    *,
    cuisine: str | None = None,
    ingredients: Sequence = (),
    instructions: Sequence[str] = (),
    prep_time: int | None = None,
    cook_time: int | None = None,
) -> TasteEmbedding:
    """
    Encode recipe metadata as a unit-length taste vector.

    Deterministic and rule-based:
    - cuisine sets its axis to 1
    - protein and flavor keywords in the ingredients set their axes to 1
    - method keywords in the instructions set their axes to 1
    - total time picks the time band and a 0.8 complexity hint
      (<=20 quick/simple, <=45 medium/moderate, else long/complex)
    - ingredient count reinforces complexity (<=5 simple, >=12 complex) at 0.6
    """
    emb = zero_embedding()

    def bump(axis: str, value: float) -> None:
        i = _AXIS_INDEX[axis]
        emb[i] = max(emb[i], value)

    cuisine_key = (cuisine or "").lower().strip()
    if cuisine_key in CUISINE_MAP:
        bump(CUISINE_MAP[cuisine_key], 1.0)

    ingredient_text = _ingredient_text(ingredients)
    for keyword, axis in PROTEIN_KEYWORDS.items():
        if keyword in ingredient_text:
            bump(axis, 1.0)
    for axis, pattern in FLAVOR_PATTERNS.items():
        if pattern.search(ingredient_text):
            bump(axis, 1.0)

    instruction_text = " ".join(instructions or []).lower()
    for keyword, axis in METHOD_KEYWORDS.items():
        if keyword in instruction_text:
            bump(axis, 1.0)

    total_time = (prep_time or 0) + (cook_time or 0)
    if total_time <= 20:
        bump("time_quick", 1.0)
        bump("complexity_simple", 0.8)
    elif total_time <= 45:
        bump("time_medium", 1.0)
        bump("complexity_moderate", 0.8)
    else:
        bump("time_long", 1.0)
        bump("complexity_complex", 0.8)

    ingredient_count = len(ingredients or [])
    if ingredient_count <= 5:
        bump("complexity_simple", 0.6)
    elif ingredient_count >= 12:
        bump("complexity_complex", 0.6)

    return normalize_vector(emb)


def embed_library_recipe(recipe: LibraryRecipe) -> TasteEmbedding:
    """generate_recipe_embedding over a library row."""
    return generate_recipe_embedding(
        cuisine=recipe.cuisine,
        ingredients=recipe.ingredients or recipe.ingredient_names,
        instructions=recipe.instructions,
        prep_time=recipe.prep_time,
        cook_time=recipe.cook_time,
    )


def signal_to_embedding_delta(
    signal_type: SignalType, recipe_embedding: Sequence[float]
) -> tuple[TasteEmbedding, float]:
    """Signed recipe embedding and the EMA weight for this signal."""
    weight, sign = SIGNAL_WEIGHTS.get(signal_type, (0.1, 1))
    return [v * sign for v in recipe_embedding], weight


def novelty_from_count(count: int) -> float:
    """Full bonus for unseen recipes, decaying stepwise with repeats."""
    if count <= 0:
        return 1.0
    if count == 1:
        return 0.7
    if count <= 3:
        return 0.4
    return 0.1


# =============================================================================
# Store-backed Operations
# =============================================================================


class TasteEngine:
    """
    Store-backed taste operations.

    Reads and writes embeddings through the TasteStore; falls back to the
    LibraryStore to embed recipes that were never cached.
    """

    def __init__(
        self,
        taste_store: TasteStore,
        library_store: LibraryStore | None = None,
        *,
        novelty_window_days: int = NOVELTY_WINDOW_DAYS,
    ):
        self.taste_store = taste_store
        self.library_store = library_store
        self.novelty_window_days = novelty_window_days

    async def get_or_compute_recipe_embedding(
        self, recipe: LibraryRecipe
    ) -> TasteEmbedding:
        """Cached embedding, computing and caching it on first use."""
        cached = await self.taste_store.get_recipe_embedding(recipe.id)
        if cached is not None:
            return cached
        embedding = embed_library_recipe(recipe)
        await self.taste_store.upsert_recipe_embedding(recipe.id, embedding)
        return embedding

    async def taste_similarity(
        self, profile_embedding: Sequence[float], recipe: LibraryRecipe
    ) -> float:
        """Cosine similarity remapped from [-1, 1] to [0, 1]."""
        recipe_embedding = await self.get_or_compute_recipe_embedding(recipe)
        similarity = cosine_similarity(profile_embedding, recipe_embedding)
        return max(0.0, min(1.0, (similarity + 1) / 2))

    async def novelty_score(self, user_id: str | None, recipe_id: str) -> float:
        """Novelty bonus from recent interactions with this exact recipe."""
        if not user_id:
            return NEUTRAL_SCORE
        count = await self.taste_store.count_recent_interactions(
            user_id, recipe_id, self.novelty_window_days
        )
        return novelty_from_count(count)

    async def apply_interaction_signal(self, signal: InteractionSignal) -> bool:
        """
        Fold one interaction into the user's taste profile.

        Steps:
        1. Fetch the recipe embedding (compute and cache if missing)
        2. Load the user's embedding (zero vector for new users)
        3. EMA towards the signed recipe embedding, re-normalize
        4. Persist with an interaction increment
        5. Append the signal to the interaction log

        Returns:
            False if the recipe is unknown and nothing was updated
        """
        recipe_embedding = await self.taste_store.get_recipe_embedding(signal.recipe_id)

        if recipe_embedding is None:
            recipe = None
            if self.library_store is not None:
                recipe = await self.library_store.get_recipe(signal.recipe_id)
            if recipe is None:
                logger.info(
                    f"Skipping {signal.signal_type.value} signal for unknown recipe {signal.recipe_id}"
                )
                return False
            recipe_embedding = embed_library_recipe(recipe)
            await self.taste_store.upsert_recipe_embedding(signal.recipe_id, recipe_embedding)

        profile = await self.taste_store.get_user_profile(signal.user_id)
        current = profile.embedding if profile is not None else zero_embedding()

        delta, weight = signal_to_embedding_delta(signal.signal_type, recipe_embedding)
        updated = normalize_vector(ema_update(current, delta, weight))

        await self.taste_store.upsert_user_profile(signal.user_id, updated, True)
        await self.taste_store.record_interaction(signal)

        logger.info(
            f"Applied {signal.signal_type.value} signal: user={signal.user_id} "
            f"recipe={signal.recipe_id} weight={weight}"
        )
        return True
