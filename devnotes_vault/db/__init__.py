"""
SQLAlchemy models for the credential vault.

This module provides a common entry point for all models.
"""

from .db_audit_models import AuditLogEntry
from .db_base import JSON, TimestampMixin, UTCDateTime, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    get_development_config,
    get_production_config,
    import_all_models,
    init_db,
)
from .db_credential_models import Credential
from .db_option_models import Option
from .db_verification_models import VerificationState

__all__ = [
    # Base definitions
    "Base",
    "JSON",
    "TimestampMixin",
    "UTCDateTime",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "import_all_models",
    "init_db",
    "get_production_config",
    "get_development_config",
    # Models
    "AuditLogEntry",
    "Credential",
    "Option",
    "VerificationState",
]
