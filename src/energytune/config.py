"""Configuration settings for the EnergyTune analytics engine."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


# __file__ = src/energytune/config.py
# .parent.parent.parent = project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (ENERGYTUNE_*)."""

    model_config = SettingsConfigDict(
        env_prefix="ENERGYTUNE_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Progress reporting
    progress_tick_ms: int = 50
    min_progress_per_tick: float = 0.001  # 1% per 500ms at 50ms ticks
    optimistic_target: float = 0.90  # Reach 90% by the estimated duration
    optimistic_max_lead: float = 0.15
    progress_cap_before_complete: float = 0.95

    # Duration estimates
    duration_history_size: int = 5
    estimate_ms_per_entry: int = 15
    min_estimate_ms: int = 800
    overdue_buffer_min_s: float = 10.0
    overdue_buffer_max_s: float = 30.0

    # Source frequency processing
    top_sources: int = 10
    source_examples: int = 3

    # Pattern engine
    extract_chunk_size: int = 5
    phrase_chunk_size: int = 10
    category_chunk_size: int = 3
    deep_max_sources: int = 100
    max_patterns: int = 20
    max_sub_patterns: int = 6

    # Pattern readiness
    readiness_target_days: int = 10
    readiness_enough_days: int = 7


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
