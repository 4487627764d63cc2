"""
Mealwise - Configuration and settings.

EngineSettings holds credentials for the collaborators (Supabase, OpenAI)
and the tunable engine thresholds. Defaults match the engine constants.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mealwise.recipes import constants


class EngineSettings(BaseSettings):
    """
    Settings for the recipe reuse engine.

    Every collaborator credential is optional: the engine can rank and reuse
    without OpenAI, and can run on in-memory stores without Supabase.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    mealwise_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # MEALWISE_LOG_PROMPTS=1 - log prompts to local files (dev only)
    mealwise_log_prompts: bool = False

    # OpenAI (generation service)
    openai_api_key: str | None = None
    generation_model: str = "gpt-4.1-mini"
    generation_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Supabase (library + taste stores)
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None

    # Reuse gate
    reuse_score_threshold: float = Field(default=constants.REUSE_SCORE_THRESHOLD, ge=0.0, le=1.0)
    reuse_max_missing: int = Field(default=constants.REUSE_MAX_MISSING, ge=0)
    candidate_limit: int = Field(
        default=constants.DEFAULT_CANDIDATE_LIMIT, ge=1, le=constants.MAX_CANDIDATE_LIMIT
    )

    # Deduplication
    duplicate_threshold: float = Field(default=constants.DUPLICATE_THRESHOLD, ge=0.0, le=1.0)
    dedup_sample_limit: int = Field(
        default=constants.DEDUP_SAMPLE_LIMIT,
        ge=constants.DEDUP_SAMPLE_MIN,
        le=constants.DEDUP_SAMPLE_MAX,
    )

    # Weekly planner and taste
    target_effort_per_slot: int = Field(default=constants.TARGET_EFFORT_PER_SLOT, ge=1)
    novelty_window_days: int = Field(default=constants.NOVELTY_WINDOW_DAYS, ge=1)
    min_taste_interactions: int = Field(default=constants.MIN_TASTE_INTERACTIONS, ge=0)

    @property
    def is_development(self) -> bool:
        return self.mealwise_env == "development"

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def has_generation(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: EngineSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()


def configure_logging(level: str | None = None) -> None:
    """
    Attach a stream handler to the package logger.

    Safe to call repeatedly; only the level changes after the first call.
    """
    logger = logging.getLogger("mealwise")
    logger.setLevel(getattr(logging, level or settings.log_level))

    if logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
