"""
Mealwise - Errors.

Collaborator failures (stores, generation service) surface as these types
or propagate unchanged. Best-effort bookkeeping never raises.
"""


class MealwiseError(Exception):
    """Base class for engine errors."""


class ConfigurationError(MealwiseError):
    """Required credentials or settings are missing."""


class GenerationError(MealwiseError):
    """The generation service failed or is not configured."""


class MalformedGenerationError(GenerationError):
    """Generation output did not match the expected recipe structure."""


class EmbeddingDimensionError(MealwiseError, ValueError):
    """Two taste vectors of different length were combined."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding dimension mismatch: {expected} != {actual}")
