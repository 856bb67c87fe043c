"""Service layer for the credential vault."""

from .audit_log_service import AuditLogService
from .base_service import Clock, SessionManagedService
from .credential_service import CredentialStore
from .key_service import KeyManager
from .settings_service import SettingsService
from .user_directory import UserDirectory, UserInfo
from .vault_service import CredentialVault
from .verification_service import AccessVerifier

__all__ = [
    "AccessVerifier",
    "AuditLogService",
    "Clock",
    "CredentialStore",
    "CredentialVault",
    "KeyManager",
    "SessionManagedService",
    "SettingsService",
    "UserDirectory",
    "UserInfo",
]
