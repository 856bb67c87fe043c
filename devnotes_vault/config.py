"""
Centralized configuration management for the credential vault.

This module provides a unified configuration system with support for:
- Environment variables
- Security policy defaults (verification TTL, lockout, retention)
- Validation using Pydantic
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, LogLevel, Timeouts


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./devnotes_vault.db"
        ),
        description="Database connection string",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SecurityConfig(BaseModel):
    """Security policy for the re-authentication gate and audit retention."""

    require_password_verification: bool = Field(
        default_factory=lambda: _env_flag(
            EnvironmentVariable.REQUIRE_PASSWORD_VERIFICATION.value
        ),
        description="Default for gating reveal/copy behind password re-entry",
    )
    audit_log_retention_days: int = Field(
        default_factory=lambda: int(
            os.getenv(EnvironmentVariable.AUDIT_LOG_RETENTION_DAYS.value, "90")
        ),
        description="Default audit retention in days (0 = never prune)",
    )
    verification_ttl_seconds: int = Field(
        default=Timeouts.VERIFICATION_TTL, gt=0, description="Lifetime of a verification"
    )
    sliding_verification: bool = Field(
        default=True, description="Extend the verification each time the gate passes"
    )
    max_failed_attempts: int = Field(
        default=5, gt=0, description="Failed attempts before lockout"
    )
    failure_window_seconds: int = Field(
        default=Timeouts.FAILURE_WINDOW, gt=0, description="Window for counting failed attempts"
    )
    lockout_seconds: int = Field(
        default=Timeouts.LOCKOUT, gt=0, description="Lockout duration in seconds"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: _env_flag(EnvironmentVariable.DEBUG.value),
        description="Debug mode",
    )

    # Sub-configurations
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )

    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)

    def set_custom(self, key: str, value: Any) -> None:
        """Set a custom configuration value."""
        self.custom[key] = value


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
