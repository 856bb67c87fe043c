"""
Tests for credential payload schemas.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from devnotes_vault.enums import CredentialType, SensitiveField
from devnotes_vault.schemas.audit_schemas import AuditLogFilter
from devnotes_vault.schemas.credential_schemas import (
    ApiKeySecrets,
    CredentialCreate,
    CredentialRead,
    CredentialSummary,
    CredentialUpdate,
    SshKeySecrets,
    UsernamePasswordSecrets,
    build_secrets,
)
from devnotes_vault.schemas.settings_schema import VaultSettings


class TestBuildSecrets:
    def test_keeps_only_type_fields(self):
        secrets = build_secrets(
            CredentialType.API_KEY, {"api_key": "sk-1", "password": "ignored"}
        )
        assert isinstance(secrets, ApiKeySecrets)
        assert secrets.field_values() == {SensitiveField.API_KEY: "sk-1"}

    def test_missing_fields_default_empty(self):
        secrets = build_secrets(CredentialType.USERNAME_PASSWORD, {"username": "root"})
        assert secrets.field_values() == {
            SensitiveField.USERNAME: "root",
            SensitiveField.PASSWORD: "",
        }


class TestCredentialCreate:
    def test_flat_form_payload(self):
        payload = CredentialCreate.model_validate(
            {"label": "Prod DB", "type": "username_password", "username": "root", "password": "pw"}
        )

        assert payload.type == CredentialType.USERNAME_PASSWORD
        assert isinstance(payload.secrets, UsernamePasswordSecrets)
        assert payload.secret_values() == {
            SensitiveField.USERNAME: "root",
            SensitiveField.PASSWORD: "pw",
        }

    def test_irrelevant_flat_fields_dropped(self):
        payload = CredentialCreate.model_validate(
            {"label": "GitHub", "type": "api_key", "api_key": "ghp", "password": "stray"}
        )
        assert payload.secret_values() == {SensitiveField.API_KEY: "ghp"}

    def test_nested_secrets_payload(self):
        payload = CredentialCreate(
            label="Deploy key",
            type=CredentialType.SSH_KEY,
            secrets={"type": "ssh_key", "ssh_key": "-----BEGIN KEY-----\n"},
        )
        assert isinstance(payload.secrets, SshKeySecrets)

    def test_default_type(self):
        assert CredentialCreate(label="x").type == CredentialType.USERNAME_PASSWORD

    def test_label_trimmed(self):
        assert CredentialCreate(label="  Prod DB  ").label == "Prod DB"

    @pytest.mark.parametrize("label", ["", "   "])
    def test_blank_label_rejected(self, label):
        with pytest.raises(PydanticValidationError, match="Label is required."):
            CredentialCreate(label=label)

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            CredentialCreate.model_validate({"label": "x", "type": "pgp_key"})

    def test_mismatched_secrets_rejected(self):
        with pytest.raises(PydanticValidationError, match="do not match"):
            CredentialCreate(
                label="x", type=CredentialType.API_KEY, secrets={"type": "ssh_key", "ssh_key": "k"}
            )

    def test_secret_whitespace_preserved(self):
        payload = CredentialCreate.model_validate(
            {"label": "note", "type": "secure_note", "secure_note": "  indented\n"}
        )
        assert payload.secret_values()[SensitiveField.SECURE_NOTE] == "  indented\n"


class TestCredentialUpdate:
    def test_provided_secrets_only(self):
        update = CredentialUpdate.model_validate({"password": "new"})

        assert update.provided_secrets(CredentialType.USERNAME_PASSWORD) == {
            SensitiveField.PASSWORD: "new"
        }
        assert update.provided_secrets(CredentialType.API_KEY) == {}

    def test_explicit_empty_clears(self):
        update = CredentialUpdate.model_validate({"username": ""})
        assert update.provided_secrets(CredentialType.USERNAME_PASSWORD) == {
            SensitiveField.USERNAME: ""
        }

    def test_blank_label_rejected(self):
        with pytest.raises(PydanticValidationError):
            CredentialUpdate(label=" ")


class TestCredentialRead:
    def _summary_fields(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        return {
            "id": 1,
            "label": "GitHub",
            "type": "api_key",
            "created_at": now,
            "updated_at": now,
        }

    def test_type_label_filled(self):
        summary = CredentialSummary(**self._summary_fields())
        assert summary.type_label == "API Key"
        assert not hasattr(summary, "secrets")

    def test_secret_value(self):
        read = CredentialRead(
            **self._summary_fields(), secrets={"type": "api_key", "api_key": "ghp"}
        )
        assert read.secret_value(SensitiveField.API_KEY) == "ghp"
        assert read.secret_value(SensitiveField.PASSWORD) == ""

    def test_secret_value_without_decryption(self):
        assert CredentialRead(**self._summary_fields()).secret_value("api_key") == ""


class TestAuditLogFilter:
    def test_rejects_inverted_range(self):
        with pytest.raises(PydanticValidationError):
            AuditLogFilter(date_from="2026-02-02", date_to="2026-02-01")

    def test_rejects_unknown_keys(self):
        with pytest.raises(PydanticValidationError):
            AuditLogFilter.model_validate({"credential_label": "x"})

    def test_parses_action(self):
        assert AuditLogFilter(action_type="copied").action_type.label == "Copied"


class TestVaultSettings:
    def test_defaults(self):
        settings = VaultSettings()
        assert settings.require_password_verification is False
        assert settings.audit_log_retention_days == 90

    def test_negative_retention_rejected(self):
        with pytest.raises(PydanticValidationError):
            VaultSettings(audit_log_retention_days=-1)
