"""
Mealwise - Ingredient Name Normalization.

Canonical ingredient names so "Tomatoes" and "tomato" collide, plus the
set helpers built on them (signature, Jaccard similarity).
"""

import re
from collections.abc import Iterable

_PARENS = re.compile(r"\([^)]*\)")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def _singularize_once(name: str) -> str:
    # Length guards keep short words like "gas" and "bass" intact
    if name.endswith("ies") and len(name) > 4:
        return name[:-3] + "y"
    if name.endswith("es") and len(name) > 4:
        return name[:-2]
    if name.endswith("s") and len(name) > 3 and not name.endswith("ss"):
        return name[:-1]
    return name


def normalize_ingredient_name(name: str | None) -> str:
    """
    Normalize an ingredient name for matching.

    Operations:
    - Lowercase
    - Drop parenthetical asides
    - Replace punctuation with spaces
    - Collapse whitespace
    - Conservative singularization, repeated until stable

    Examples:
        normalize_ingredient_name("Tomatoes") -> "tomato"
        normalize_ingredient_name("Berries (fresh)") -> "berry"
        normalize_ingredient_name("Sea  Bass") -> "sea bass"
    """
    raw = (name or "").lower()
    text = _PARENS.sub(" ", raw)
    text = _NON_ALNUM.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()

    # Iterating to a fixed point keeps the function idempotent
    while True:
        singular = _singularize_once(text).strip()
        if singular == text:
            return text
        text = singular


def normalized_name_set(names: Iterable[str | None]) -> set[str]:
    """Normalize names and drop empties."""
    return {n for n in (normalize_ingredient_name(x) for x in names) if n}


def ingredient_signature(names: Iterable[str | None]) -> str:
    """
    Cheap equality fingerprint for a recipe's ingredients.

    Normalized, deduplicated, sorted, pipe-joined.
    """
    return "|".join(sorted(normalized_name_set(names)))


def jaccard(a: set[str], b: set[str]) -> float:
    """
    Jaccard similarity of two sets.

    Both empty -> 1.0, exactly one empty -> 0.0.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union
