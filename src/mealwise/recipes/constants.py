"""
Mealwise - Engine Constants.

Default thresholds and planning constants. EngineSettings exposes the
tunable ones; everything here is the baseline.
"""

# =============================================================================
# Reuse Gate
# =============================================================================

# Minimum composite score to serve a library recipe instead of generating
REUSE_SCORE_THRESHOLD = 0.78

# Maximum missing ingredients allowed for reuse
REUSE_MAX_MISSING = 3

# Library candidates fetched per request
DEFAULT_CANDIDATE_LIMIT = 30
MAX_CANDIDATE_LIMIT = 50

# =============================================================================
# Deduplication
# =============================================================================

# Ingredient Jaccard similarity above which a generated recipe is a duplicate
DUPLICATE_THRESHOLD = 0.85

# Recent library slice sampled for duplicate checks
DEDUP_SAMPLE_LIMIT = 30
DEDUP_SAMPLE_MIN = 5
DEDUP_SAMPLE_MAX = 50

# =============================================================================
# Scoring
# =============================================================================

# Stored quality used when a recipe has none
DEFAULT_QUALITY = 0.55

# Neutral value for factors that cannot be computed
NEUTRAL_SCORE = 0.5

# Partial credit for a recipe outside the user's cuisine preferences
CUISINE_MISMATCH_CREDIT = 0.4

# =============================================================================
# Taste
# =============================================================================

# Interactions required before a taste profile affects ranking
MIN_TASTE_INTERACTIONS = 3

# Trailing window for novelty scoring
NOVELTY_WINDOW_DAYS = 14

# =============================================================================
# Weekly Planner
# =============================================================================

# Target average effort (prep + cook minutes) per slot
TARGET_EFFORT_PER_SLOT = 35

WEEK_DAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

MEAL_SLOTS = ("breakfast", "lunch", "dinner")

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack", "any")

# Number of recipes returned to the caller per request
RECIPES_PER_REQUEST = 3
