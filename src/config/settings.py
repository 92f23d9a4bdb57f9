# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for token budgets, cache behaviour and logging.
Budget and TTL defaults are the figures the platform shipped with; every
one of them can be overridden from the environment.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from depcontext.context.models import TierBudgets


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Catalog ===
    catalog_path: Path | None = None
    default_resource_cost: float = 1.0

    # === Context aggregation ===
    tier1_token_budget: int = 500
    tier2_token_budget: int = 2000
    tier3_token_budget: int = 1000
    min_fragment_tokens: int = 50
    chars_per_token: int = 4

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.depcontext/cache")
    cache_redis_url: str = ""
    cache_ttl_seconds: int = 24 * 60 * 60
    cache_reaper_interval_seconds: int = 60 * 60

    # === Workers ===
    compute_max_workers: int = 8

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        for tier in ("tier1", "tier2", "tier3"):
            value = getattr(self, f"{tier}_token_budget")
            if value <= 0:
                errors.append(f"{tier.upper()}_TOKEN_BUDGET must be > 0 (got {value})")

        if self.min_fragment_tokens < 1:
            errors.append("MIN_FRAGMENT_TOKENS must be >= 1")
        elif self.min_fragment_tokens > self.tier1_token_budget:
            errors.append("MIN_FRAGMENT_TOKENS must be <= TIER1_TOKEN_BUDGET")

        if self.chars_per_token < 1:
            errors.append("CHARS_PER_TOKEN must be >= 1")

        if self.cache_ttl_seconds <= 0:
            errors.append("CACHE_TTL_SECONDS must be > 0")

        if self.cache_reaper_interval_seconds <= 0:
            errors.append("CACHE_REAPER_INTERVAL_SECONDS must be > 0")

        if self.compute_max_workers < 1:
            errors.append("COMPUTE_MAX_WORKERS must be >= 1")

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def tier_budgets(self) -> TierBudgets:
        """Token budgets per context tier."""
        return TierBudgets(
            tier1=self.tier1_token_budget,
            tier2=self.tier2_token_budget,
            tier3=self.tier3_token_budget,
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-deployment config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
