"""
Enums used across the devnotes_vault package.

This module contains enum definitions that are used by multiple modules
to avoid circular import issues.
"""

import enum
from typing import Dict, FrozenSet, Tuple


class CredentialType(str, enum.Enum):
    """Closed set of credential kinds."""

    USERNAME_PASSWORD = "username_password"
    API_KEY = "api_key"
    SSH_KEY = "ssh_key"
    SECURE_NOTE = "secure_note"

    @property
    def label(self) -> str:
        return _CREDENTIAL_TYPE_LABELS[self]

    @property
    def sensitive_fields(self) -> Tuple["SensitiveField", ...]:
        """Sensitive fields that may be populated for this type."""
        return SENSITIVE_FIELDS_BY_TYPE[self]


class SensitiveField(str, enum.Enum):
    """Fields stored only as encrypted envelopes."""

    USERNAME = "username"
    PASSWORD = "password"
    API_KEY = "api_key"
    SSH_KEY = "ssh_key"
    SECURE_NOTE = "secure_note"

    @property
    def column(self) -> str:
        """Name of the envelope column backing this field."""
        return f"{self.value}_encrypted"


class AuditAction(str, enum.Enum):
    """Actions recorded in the audit log."""

    VIEWED = "viewed"
    COPIED = "copied"
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    NOTES_ACCESSED = "notes_accessed"
    NOTES_SAVED = "notes_saved"
    NOTES_COPIED = "notes_copied"
    NOTES_PASTED = "notes_pasted"
    NOTES_EXPORTED = "notes_exported"

    @property
    def label(self) -> str:
        return _AUDIT_ACTION_LABELS[self]

    @property
    def is_notes_action(self) -> bool:
        return self in NOTES_ACTIONS


_CREDENTIAL_TYPE_LABELS: Dict[CredentialType, str] = {
    CredentialType.USERNAME_PASSWORD: "Username & Password",
    CredentialType.API_KEY: "API Key",
    CredentialType.SSH_KEY: "SSH Key",
    CredentialType.SECURE_NOTE: "Secure Note",
}

_AUDIT_ACTION_LABELS: Dict[AuditAction, str] = {
    AuditAction.VIEWED: "Viewed",
    AuditAction.COPIED: "Copied",
    AuditAction.CREATED: "Created",
    AuditAction.MODIFIED: "Modified",
    AuditAction.DELETED: "Deleted",
    AuditAction.NOTES_ACCESSED: "Notes Accessed",
    AuditAction.NOTES_SAVED: "Notes Saved",
    AuditAction.NOTES_COPIED: "Notes Copied",
    AuditAction.NOTES_PASTED: "Notes Pasted",
    AuditAction.NOTES_EXPORTED: "Notes Exported",
}

SENSITIVE_FIELDS_BY_TYPE: Dict[CredentialType, Tuple[SensitiveField, ...]] = {
    CredentialType.USERNAME_PASSWORD: (SensitiveField.USERNAME, SensitiveField.PASSWORD),
    CredentialType.API_KEY: (SensitiveField.API_KEY,),
    CredentialType.SSH_KEY: (SensitiveField.SSH_KEY,),
    CredentialType.SECURE_NOTE: (SensitiveField.SECURE_NOTE,),
}

CREDENTIAL_ACTIONS: FrozenSet[AuditAction] = frozenset(
    {
        AuditAction.VIEWED,
        AuditAction.COPIED,
        AuditAction.CREATED,
        AuditAction.MODIFIED,
        AuditAction.DELETED,
    }
)

NOTES_ACTIONS: FrozenSet[AuditAction] = frozenset(set(AuditAction) - CREDENTIAL_ACTIONS)
