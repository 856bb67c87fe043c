"""
Constants for the credential vault.

This module centralizes the magic strings and limits used across the
vault so option names, environment variables and time windows stay
consistent.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"
    REQUIRE_PASSWORD_VERIFICATION = "VAULT_REQUIRE_PASSWORD_VERIFICATION"
    AUDIT_LOG_RETENTION_DAYS = "VAULT_AUDIT_LOG_RETENTION_DAYS"


class OptionName(str, Enum):
    """Keys of the rows in the options table."""

    ENCRYPTION_KEY = "vault_encryption_key"
    SETTINGS = "vault_settings"


# Numeric constants
class Limits:
    """System limits and thresholds."""

    KEY_BYTES = 32
    NONCE_BYTES = 12
    TAG_BYTES = 16
    DEFAULT_PAGE_SIZE = 50
    MAX_PAGE_SIZE = 500
    MAX_LABEL_LENGTH = 255
    MAX_URL_LENGTH = 500


# Time-related constants (in seconds)
class Timeouts:
    """Timeout values in seconds."""

    VERIFICATION_TTL = 15 * 60
    FAILURE_WINDOW = 5 * 60
    LOCKOUT = 5 * 60


UNKNOWN_CLIENT_ADDRESS = "0.0.0.0"
UNKNOWN_USER_NAME = "Unknown User"
