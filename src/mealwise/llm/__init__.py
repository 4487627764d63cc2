"""
Mealwise - Generation Service.

Provides structured recipe generation via Instructor.
"""

from mealwise.llm.client import GenerationImage, GenerativeService

__all__ = [
    "GenerationImage",
    "GenerativeService",
]
