"""
Mealwise - Recipe reuse and weekly meal planning engine.

Decides whether a meal slot can be served from the shared recipe library
or needs a freshly generated recipe, and keeps a week of meals varied.
"""

__version__ = "1.0.0"
