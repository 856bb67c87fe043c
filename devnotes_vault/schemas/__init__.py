"""Pydantic schemas for the credential vault."""

from .audit_schemas import AuditLogEntryRead, AuditLogFilter, AuditLogPage
from .credential_schemas import (
    ApiKeySecrets,
    CredentialCreate,
    CredentialRead,
    CredentialSecrets,
    CredentialSummary,
    CredentialUpdate,
    SecureNoteSecrets,
    SshKeySecrets,
    UsernamePasswordSecrets,
    build_secrets,
)
from .result_schema import ErrorDetail, OperationResult
from .settings_schema import VaultSettings

__all__ = [
    "ApiKeySecrets",
    "AuditLogEntryRead",
    "AuditLogFilter",
    "AuditLogPage",
    "CredentialCreate",
    "CredentialRead",
    "CredentialSecrets",
    "CredentialSummary",
    "CredentialUpdate",
    "ErrorDetail",
    "OperationResult",
    "SecureNoteSecrets",
    "SshKeySecrets",
    "UsernamePasswordSecrets",
    "VaultSettings",
    "build_secrets",
]
