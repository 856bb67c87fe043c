"""
Pydantic schemas for vault credentials.

Secret values are modelled as a tagged union over the four credential kinds,
so each kind only ever carries its own sensitive fields. Secret strings are
never whitespace-stripped; SSH keys and notes depend on exact content.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..constants import Limits
from ..enums import CredentialType, SensitiveField


class BaseCredentialSchema(BaseModel):
    """Base schema for credential payloads."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        use_enum_values=False,
    )


# ==================== SECRET VARIANTS ====================


class BaseSecrets(BaseCredentialSchema):
    """Common behaviour for the per-type secret payloads."""

    def field_values(self) -> Dict[SensitiveField, str]:
        """Sensitive field values keyed by field."""
        return {
            SensitiveField(name): getattr(self, name)
            for name in type(self).model_fields
            if name != "type"
        }


class UsernamePasswordSecrets(BaseSecrets):
    type: Literal["username_password"] = "username_password"
    username: str = ""
    password: str = ""


class ApiKeySecrets(BaseSecrets):
    type: Literal["api_key"] = "api_key"
    api_key: str = ""


class SshKeySecrets(BaseSecrets):
    type: Literal["ssh_key"] = "ssh_key"
    ssh_key: str = ""


class SecureNoteSecrets(BaseSecrets):
    type: Literal["secure_note"] = "secure_note"
    secure_note: str = ""


CredentialSecrets = Annotated[
    Union[UsernamePasswordSecrets, ApiKeySecrets, SshKeySecrets, SecureNoteSecrets],
    Field(discriminator="type"),
]

SECRETS_BY_TYPE = {
    CredentialType.USERNAME_PASSWORD: UsernamePasswordSecrets,
    CredentialType.API_KEY: ApiKeySecrets,
    CredentialType.SSH_KEY: SshKeySecrets,
    CredentialType.SECURE_NOTE: SecureNoteSecrets,
}


def build_secrets(credential_type: CredentialType, values: Dict[str, Any]):
    """Build the secret payload for a type, keeping only the type's own fields."""
    schema = SECRETS_BY_TYPE[CredentialType(credential_type)]
    relevant = {
        field.value: values[field.value]
        for field in CredentialType(credential_type).sensitive_fields
        if values.get(field.value) is not None
    }
    return schema(**relevant)


def _validate_label(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Label is required.")
    return v


# ==================== WRITE SCHEMAS ====================


class CredentialCreate(BaseCredentialSchema):
    """
    Payload for creating a credential.

    Accepts either a nested ``secrets`` object or the flat form used by admin
    forms (``{"label": ..., "type": "api_key", "api_key": ...}``). Flat secret
    fields that do not belong to ``type`` are dropped.
    """

    label: str = Field(..., max_length=Limits.MAX_LABEL_LENGTH)
    type: CredentialType = CredentialType.USERNAME_PASSWORD
    secrets: Optional[CredentialSecrets] = None
    url: Optional[str] = Field(None, max_length=Limits.MAX_URL_LENGTH)
    notes: Optional[str] = None
    sort_order: int = 0

    @model_validator(mode="before")
    @classmethod
    def gather_flat_secrets(cls, data: Any) -> Any:
        """Collect flat secret fields into the tagged ``secrets`` payload."""
        if not isinstance(data, dict) or data.get("secrets") is not None:
            return data
        try:
            credential_type = CredentialType(data.get("type", CredentialType.USERNAME_PASSWORD))
        except ValueError:
            # Let field validation report the bad type
            return data
        data = dict(data)
        data["secrets"] = build_secrets(credential_type, data).model_dump()
        return data

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return _validate_label(v)

    @model_validator(mode="after")
    def check_secrets_match_type(self) -> "CredentialCreate":
        if self.secrets is not None and self.secrets.type != self.type.value:
            raise ValueError(
                f"Secrets of type '{self.secrets.type}' do not match credential type '{self.type.value}'"
            )
        return self

    def secret_values(self) -> Dict[SensitiveField, str]:
        return self.secrets.field_values() if self.secrets is not None else {}


class CredentialUpdate(BaseCredentialSchema):
    """
    Partial update payload.

    Only fields explicitly present are applied (``model_fields_set``). An empty
    string for a secret field clears that field.
    """

    label: Optional[str] = Field(None, max_length=Limits.MAX_LABEL_LENGTH)
    type: Optional[CredentialType] = None
    url: Optional[str] = Field(None, max_length=Limits.MAX_URL_LENGTH)
    notes: Optional[str] = None
    sort_order: Optional[int] = None

    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None
    ssh_key: Optional[str] = None
    secure_note: Optional[str] = None

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: Optional[str]) -> Optional[str]:
        return _validate_label(v)

    def provided_secrets(self, credential_type: CredentialType) -> Dict[SensitiveField, str]:
        """Secret fields present in the payload that belong to ``credential_type``."""
        return {
            field: getattr(self, field.value) or ""
            for field in CredentialType(credential_type).sensitive_fields
            if field.value in self.model_fields_set
        }


# ==================== READ SCHEMAS ====================


class CredentialSummary(BaseModel):
    """Credential metadata for listings. Never carries secrets or envelopes."""

    id: int
    label: str
    type: CredentialType
    type_label: str = ""
    url: Optional[str] = None
    notes: Optional[str] = None
    sort_order: int = 0
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def fill_type_label(self) -> "CredentialSummary":
        if not self.type_label:
            self.type_label = self.type.label
        return self


class CredentialRead(CredentialSummary):
    """
    A single credential.

    ``secrets`` is only set when the credential was read with decryption.
    ``populated_fields`` lists the sensitive fields that hold an envelope and
    ``corrupted_fields`` the ones whose envelope could not be opened (their
    value in ``secrets`` is empty).
    """

    secrets: Optional[CredentialSecrets] = None
    populated_fields: List[SensitiveField] = Field(default_factory=list)
    corrupted_fields: List[SensitiveField] = Field(default_factory=list)

    def secret_value(self, field: SensitiveField) -> str:
        """Decrypted value of a field, or empty when absent or not relevant to the type."""
        if self.secrets is None:
            return ""
        return self.secrets.field_values().get(SensitiveField(field), "")
