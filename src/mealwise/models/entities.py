"""
Mealwise - Entity Models.

Pydantic models for the recipe library and the per-request inputs.
They are used for:
- Type-safe store operations (library rows, taste profiles)
- Structured generation outputs via Instructor
- Responses handed back to the calling API layer
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RecipeSource(str, Enum):
    """Provenance of a library recipe."""

    GENERATED = "generated"
    CURATED = "curated"
    USER_SUBMITTED = "user_submitted"


class SignalType(str, Enum):
    """Kinds of user interaction that feed the taste profile."""

    COOKED = "cooked"
    SKIPPED = "skipped"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"
    REPEATED = "repeated"
    EDITED = "edited"


# =============================================================================
# Library
# =============================================================================


class RecipeIngredient(BaseModel):
    """One line of a recipe's ingredient list."""

    name: str
    amount: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return v.strip()


class LibraryRecipe(BaseModel):
    """
    A recipe in the shared library.

    Immutable once loaded; counters change only through the store
    (increment_usage, record_feedback).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    ingredient_names: list[str] = Field(default_factory=list)
    ingredient_signature: str | None = None
    cuisine: str | None = None
    meal_type: str | None = None
    diet_tags: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    prep_time: int | None = None
    cook_time: int | None = None
    servings: int | None = None
    calories: int | None = None
    source: RecipeSource = RecipeSource.CURATED
    quality_score: float | None = None
    usage_count: int = 0
    save_count: int = 0
    thumbs_up: int = 0
    thumbs_down: int = 0
    created_by_user_id: str | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_ingredient_names(cls, data: Any) -> Any:
        # Rows seeded without the name column derive it from the ingredient list
        if isinstance(data, dict) and not data.get("ingredient_names"):
            names = []
            for item in data.get("ingredients") or []:
                name = item.get("name") if isinstance(item, dict) else getattr(item, "name", None)
                if isinstance(name, str) and name.strip():
                    names.append(name.strip())
            data = {**data, "ingredient_names": names}
        return data

    @property
    def effort_minutes(self) -> int:
        """Prep plus cook time, treating unknowns as zero."""
        return (self.prep_time or 0) + (self.cook_time or 0)

    @property
    def all_ingredient_names(self) -> list[str]:
        """Names from the ingredient list, falling back to the name column."""
        names = [i.name for i in self.ingredients if i.name]
        return names or list(self.ingredient_names)


class RecipeDraft(BaseModel):
    """Insert payload for a new library recipe."""

    title: str
    description: str | None = None
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    ingredient_names: list[str] = Field(default_factory=list)
    ingredient_signature: str = ""
    cuisine: str | None = None
    meal_type: str | None = None
    diet_tags: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    prep_time: int | None = None
    cook_time: int | None = None
    servings: int | None = None
    calories: int | None = None
    source: RecipeSource = RecipeSource.GENERATED
    created_by_user_id: str | None = None

    def as_library_recipe(self, recipe_id: str) -> LibraryRecipe:
        """View this draft as a library recipe with the given id."""
        return LibraryRecipe(id=recipe_id, updated_at=_utc_now(), **self.model_dump())


class InsertedRecipe(BaseModel):
    """Result of a successful library insert."""

    id: str
    ingredient_signature: str


# =============================================================================
# Request Inputs
# =============================================================================


class InventoryItem(BaseModel):
    """Something the user has on hand. Supplied per request."""

    name: str
    quantity: str | None = None


class UserContext(BaseModel):
    """Read-only profile of the requesting user."""

    cuisine_preferences: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    household_size: int | None = None
    max_cooking_time: int | None = None


class RecipePreferences(BaseModel):
    """Per-request overrides."""

    servings: int = Field(default=2, ge=1)
    max_time_minutes: int | None = Field(default=45, ge=1)
    meal_type: str = "any"
    cravings: str | None = None
    must_include_ingredient: str | None = None

    @field_validator("meal_type")
    @classmethod
    def _lower_meal_type(cls, v: str) -> str:
        return (v or "any").lower().strip() or "any"


# =============================================================================
# Taste
# =============================================================================


class TasteProfile(BaseModel):
    """A user's taste embedding and how many signals shaped it."""

    user_id: str
    embedding: list[float]
    interaction_count: int = 0
    updated_at: datetime | None = None


class InteractionSignal(BaseModel):
    """One entry of the append-only interaction log."""

    user_id: str
    recipe_id: str
    signal_type: SignalType
    metadata: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=_utc_now)


# =============================================================================
# Generation Output (validated at the orchestrator boundary)
# =============================================================================


class GeneratedRecipe(BaseModel):
    """A recipe produced by the generation service."""

    title: str = Field(min_length=1)
    description: str | None = None
    ingredients: list[RecipeIngredient] = Field(min_length=1)
    instructions: list[str] = Field(default_factory=list)
    prep_time: int | None = Field(default=None, ge=0, description="Prep time in minutes")
    cook_time: int | None = Field(default=None, ge=0, description="Cook time in minutes")
    calories: int | None = Field(default=None, ge=0)
    cuisine: str | None = None
    match_score: int = Field(
        default=0,
        ge=0,
        le=100,
        description="How much of the recipe the user already has (0-100)",
    )
    tags: list[str] = Field(default_factory=list)


class GeneratedRecipeBatch(BaseModel):
    """Several candidate recipes from one generation call."""

    recipes: list[GeneratedRecipe] = Field(min_length=1)


# =============================================================================
# Responses
# =============================================================================


class RecipeResponse(BaseModel):
    """A recipe as handed back to the caller."""

    id: str
    title: str
    description: str | None = None
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    prep_time: int | None = None
    cook_time: int | None = None
    calories: int | None = None
    match_score: int = 0
    tags: list[str] = Field(default_factory=list)


class GenerationTelemetry(BaseModel):
    """What the ranking saw when deciding reuse vs generate."""

    candidate_count: int = 0
    top_score: float | None = None
    gate_reason: str | None = None


class GenerateRecipesResult(BaseModel):
    """Recipes for one request and how they were obtained."""

    recipes: list[RecipeResponse] = Field(default_factory=list)
    mode: Literal["reuse", "generate"]
    telemetry: GenerationTelemetry = Field(default_factory=GenerationTelemetry)


class DayMealPlan(BaseModel):
    """One day of a weekly plan. Unsatisfiable slots stay None."""

    day: str
    breakfast: RecipeResponse | None = None
    lunch: RecipeResponse | None = None
    dinner: RecipeResponse | None = None
