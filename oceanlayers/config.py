"""
Configuration management for the ocean layers engine.
Loads environment variables and provides typed processing defaults.

Usage:
    from oceanlayers.config import settings

    print(settings.default_grid_resolution)
    settings.configure_logging()
"""
import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # ========================================================================
    # Grid / Vector Defaults
    # ========================================================================
    default_grid_resolution: float = 0.01
    default_vector_scale: float = 0.009
    default_max_vectors: int = 1000
    default_model: str = "NGOFS2"

    # Upstream query cap (rows per fetch). Larger inputs are logged, never truncated.
    upstream_row_cap: int = 10000

    # ========================================================================
    # Background Worker
    # ========================================================================
    worker_max_workers: int = 2

    # ========================================================================
    # Metrics
    # ========================================================================
    metrics_enabled: bool = True
    metrics_slow_threshold_ms: float = 100.0
    metrics_log_interval: float = 60.0

    # ========================================================================
    # Logging
    # ========================================================================
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ========================================================================
    # Pydantic Settings Configuration
    # ========================================================================
    model_config = SettingsConfigDict(
        env_prefix="OCEANLAYERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def configure_logging(self):
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=self.log_format)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Engine settings
    """
    return Settings()


# Convenience exports
settings = get_settings()
