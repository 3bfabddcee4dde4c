# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
student lifecycle core. Settings are loaded from environment variables
with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from student_lifecycle.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration for the enrollment store.

    Any SQLAlchemy async URL is accepted. SQLite (aiosqlite) is the
    default; PostgreSQL is used through asyncpg.

    Attributes:
        url: SQLAlchemy async connection URL.
        echo: Log every SQL statement.
        pool_size: Connection pool size (ignored for SQLite).
        max_overflow: Maximum overflow connections (ignored for SQLite).
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
    )

    url: str = "sqlite+aiosqlite:///./student_lifecycle.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured backend is SQLite."""
        return self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        """Check if the configured backend is an in-memory SQLite database."""
        return self.is_sqlite and (":memory:" in self.url or self.url.endswith("://"))


class EnrollmentSettings(BaseSettings):
    """Enrollment command behaviour.

    Attributes:
        lock_timeout_seconds: Upper bound for waiting on a class or student lock.
        conflict_retry_attempts: Attempts for a command that loses a concurrency race.
        academic_year_start_month: Month (1-12) in which a new academic year begins.
        default_assignment_type: Assignment type used when the caller gives none.
    """

    model_config = SettingsConfigDict(
        env_prefix="ENROLLMENT_",
        extra="ignore",
    )

    lock_timeout_seconds: float = Field(default=5.0, gt=0)
    conflict_retry_attempts: int = Field(default=3, ge=1, le=10)
    academic_year_start_month: int = Field(default=7, ge=1, le=12)
    default_assignment_type: Literal["initial", "transfer_in", "promotion"] = "initial"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Enrollment store settings.
        enrollment: Enrollment command settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    enrollment: EnrollmentSettings = Field(default_factory=EnrollmentSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production on a non-durable store.
        """
        if self.is_production and self.database.is_memory:
            raise ValueError(
                "An in-memory database cannot be used in production. "
                "Set DATABASE_URL to a durable store."
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
