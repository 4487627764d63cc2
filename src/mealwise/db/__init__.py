"""
Mealwise - Persistence Layer.

Store protocols plus in-memory and Supabase implementations.
"""

from mealwise.db.base import LibraryStore, TasteStore

__all__ = [
    "LibraryStore",
    "TasteStore",
]
