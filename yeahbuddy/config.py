"""
Service settings.

Read from YEAHBUDDY_* environment variables and an optional .env file.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings for the token, review and account services."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # ==========================================================================
    # Access tokens
    # ==========================================================================

    # Random bytes per token identifier; 16 bytes is the 128-bit floor.
    token_bytes: int = Field(default=32, ge=16, le=128)
    token_issue_attempts: int = Field(default=5, ge=1)
    tokens_expire_with_stage: bool = True

    # Seconds between revocation sweeps of ended stages; 0 disables the sweep.
    revocation_sweep_interval_seconds: float = Field(default=300, ge=0)

    # ==========================================================================
    # Accounts
    # ==========================================================================

    password_hash_iterations: int = Field(default=100_000, ge=1)

    # YAML file with administrators, tutors, teams and stages to load at startup
    directory_seed_file: str = ""

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def sweep_enabled(self) -> bool:
        return self.revocation_sweep_interval_seconds > 0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "YEAHBUDDY_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
