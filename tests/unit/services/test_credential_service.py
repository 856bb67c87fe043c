"""
Tests for the credential store.

Secrets go through the real codec and key manager; the assertions read the
raw rows to prove plaintext never reaches the database.
"""

import pytest

from devnotes_vault.db import AuditLogEntry, Credential
from devnotes_vault.enums import CredentialType, SensitiveField
from devnotes_vault.exceptions import (
    CredentialNotFoundError,
    EncryptionUnavailableError,
    ValidationError,
)
from devnotes_vault.utils import encryption_utils
from tests.fixtures.factories import CredentialFactory


def _row(db_session, credential_id) -> Credential:
    db_session.expire_all()
    return db_session.get(Credential, credential_id)


def _actions(db_session):
    return [
        e.action_type for e in db_session.query(AuditLogEntry).order_by(AuditLogEntry.id).all()
    ]


class TestCreate:
    def test_secrets_stored_encrypted(self, store, actor, db_session, codec):
        credential_id = store.create(
            {"label": "Prod DB", "type": "username_password", "username": "root", "password": "s3cret!"}
        )

        row = _row(db_session, credential_id)
        assert row.username_encrypted not in (None, "", "root")
        assert "s3cret!" not in row.password_encrypted
        assert codec.decrypt(row.password_encrypted) == "s3cret!"
        assert row.api_key_encrypted is None
        assert row.created_by == "1"

    def test_only_type_fields_encrypted(self, store, actor, db_session):
        credential_id = store.create(
            {"label": "GitHub", "type": "api_key", "api_key": "ghp_x", "password": "stray"}
        )

        row = _row(db_session, credential_id)
        assert row.api_key_encrypted
        assert row.password_encrypted is None
        assert row.username_encrypted is None

    def test_empty_secret_not_stored(self, store, actor, db_session):
        credential_id = store.create({"label": "Half", "username": "root", "password": ""})
        assert _row(db_session, credential_id).password_encrypted is None

    def test_audited(self, store, actor, db_session):
        credential_id = store.create({"label": "Prod DB"})

        entry = db_session.query(AuditLogEntry).one()
        assert entry.action_type == "created"
        assert entry.credential_id == credential_id
        assert entry.credential_label == "Prod DB"

    @pytest.mark.parametrize("label", ["", "   "])
    def test_blank_label_rejected(self, store, actor, db_session, label):
        with pytest.raises(ValidationError) as exc_info:
            store.create({"label": label, "password": "x"})

        assert exc_info.value.message == "Label is required."
        assert db_session.query(Credential).count() == 0

    def test_missing_label_rejected(self, store, actor):
        with pytest.raises(ValidationError) as exc_info:
            store.create({"type": "api_key"})
        assert exc_info.value.message == "Label is required."

    def test_unknown_type_rejected(self, store, actor):
        with pytest.raises(ValidationError):
            store.create({"label": "x", "type": "pgp_key"})

    def test_requires_actor(self, store):
        with pytest.raises(ValidationError):
            store.create({"label": "x"})

    def test_refused_without_encryption(self, store, actor, db_session, monkeypatch):
        monkeypatch.setattr(encryption_utils, "_load_aead", lambda: None)

        with pytest.raises(EncryptionUnavailableError):
            store.create({"label": "Prod DB", "password": "s3cret!"})
        assert db_session.query(Credential).count() == 0


class TestRead:
    def test_list_ordered_without_secrets(self, store, actor):
        store.create({"label": "beta", "sort_order": 1, "password": "pw"})
        store.create({"label": "alpha", "sort_order": 1})
        store.create({"label": "zulu", "sort_order": 0})

        summaries = store.list()

        assert [s.label for s in summaries] == ["zulu", "alpha", "beta"]
        dumped = summaries[2].model_dump()
        assert "secrets" not in dumped
        assert not any(key.endswith("_encrypted") for key in dumped)
        assert dumped["type_label"] == "Username & Password"

    def test_get_without_decrypt(self, store, actor):
        credential_id = store.create({"label": "GitHub", "type": "api_key", "api_key": "ghp"})

        credential = store.get(credential_id)

        assert credential.secrets is None
        assert credential.populated_fields == [SensitiveField.API_KEY]

    def test_get_with_decrypt(self, store, actor):
        credential_id = store.create(
            {"label": "Deploy", "type": "ssh_key", "ssh_key": "-----BEGIN-----\nabc\n"}
        )

        credential = store.get(credential_id, decrypt=True)

        assert credential.secret_value(SensitiveField.SSH_KEY) == "-----BEGIN-----\nabc\n"
        assert credential.corrupted_fields == []

    def test_get_unknown_returns_none(self, store):
        assert store.get(9999) is None

    def test_get_or_raise_unknown(self, store):
        with pytest.raises(CredentialNotFoundError):
            store.get_or_raise(9999)

    def test_invalid_id(self, store):
        with pytest.raises(ValidationError):
            store.get("abc")

    def test_corrupted_field_isolated(self, store, actor, db_session):
        credential_id = store.create({"label": "Prod DB", "username": "root", "password": "pw"})
        row = _row(db_session, credential_id)
        row.password_encrypted = "AAAA" + row.password_encrypted[4:]
        db_session.flush()

        credential = store.get(credential_id, decrypt=True)

        assert credential.secret_value(SensitiveField.USERNAME) == "root"
        assert credential.secret_value(SensitiveField.PASSWORD) == ""
        assert credential.corrupted_fields == [SensitiveField.PASSWORD]

    def test_factory_row_without_envelopes(self, store):
        credential = CredentialFactory(type="secure_note")

        read = store.get(credential.id, decrypt=True)

        assert read.populated_fields == []
        assert read.secret_value(SensitiveField.SECURE_NOTE) == ""


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, store, actor, db_session, codec):
        credential_id = store.create(
            {"label": "Prod DB", "username": "root", "password": "old", "url": "https://db"}
        )

        store.update(credential_id, {"password": "new"})

        row = _row(db_session, credential_id)
        assert codec.decrypt(row.password_encrypted) == "new"
        assert codec.decrypt(row.username_encrypted) == "root"
        assert row.url == "https://db"
        assert row.label == "Prod DB"

    def test_empty_secret_clears_field(self, store, actor, db_session):
        credential_id = store.create({"label": "Prod DB", "username": "root", "password": "pw"})

        store.update(credential_id, {"username": ""})

        assert _row(db_session, credential_id).username_encrypted is None

    def test_type_change_clears_all_envelopes(self, store, actor, db_session, codec):
        credential_id = store.create({"label": "Prod DB", "username": "root", "password": "pw"})

        store.update(credential_id, {"type": "api_key", "api_key": "sk-live"})

        row = _row(db_session, credential_id)
        assert row.type == CredentialType.API_KEY.value
        assert row.username_encrypted is None
        assert row.password_encrypted is None
        assert codec.decrypt(row.api_key_encrypted) == "sk-live"

    def test_same_type_keeps_envelopes(self, store, actor, db_session):
        credential_id = store.create({"label": "Prod DB", "username": "root", "password": "pw"})

        store.update(credential_id, {"type": "username_password", "label": "Prod DB (primary)"})

        row = _row(db_session, credential_id)
        assert row.password_encrypted is not None
        assert row.label == "Prod DB (primary)"

    def test_irrelevant_secret_ignored(self, store, actor, db_session):
        credential_id = store.create({"label": "GitHub", "type": "api_key", "api_key": "ghp"})

        store.update(credential_id, {"password": "stray"})

        assert _row(db_session, credential_id).password_encrypted is None

    def test_updated_at_stamped_and_audited(self, store, actor, db_session, clock):
        credential_id = store.create({"label": "Prod DB"})
        later = clock.advance(hours=2)

        store.update(credential_id, {"notes": "rotated quarterly"})

        row = _row(db_session, credential_id)
        assert row.updated_at == later
        assert row.notes == "rotated quarterly"
        assert _actions(db_session) == ["created", "modified"]

    def test_unknown_id(self, store, actor):
        with pytest.raises(CredentialNotFoundError):
            store.update(4242, {"label": "x"})

    def test_blank_label_rejected(self, store, actor):
        credential_id = store.create({"label": "Prod DB"})
        with pytest.raises(ValidationError):
            store.update(credential_id, {"label": ""})


class TestDelete:
    def test_delete_audits_prior_label(self, store, actor, db_session):
        credential_id = store.create({"label": "Old server"})

        store.delete(credential_id)

        assert _row(db_session, credential_id) is None
        entry = db_session.query(AuditLogEntry).order_by(AuditLogEntry.id.desc()).first()
        assert entry.action_type == "deleted"
        assert entry.credential_label == "Old server"
        assert entry.credential_id == credential_id

    def test_delete_unknown(self, store, actor):
        with pytest.raises(CredentialNotFoundError):
            store.delete(777)


class TestReorder:
    def test_positions_follow_sequence(self, store, actor):
        a = store.create({"label": "a"})
        b = store.create({"label": "b"})
        c = store.create({"label": "c"})

        assert store.reorder([c, a, b]) == 3

        assert [s.label for s in store.list()] == ["c", "a", "b"]

    def test_string_ids_accepted_and_unknown_skipped(self, store, actor):
        a = store.create({"label": "a"})
        b = store.create({"label": "b"})

        assert store.reorder([str(b), "9999", str(a)]) == 2
        assert [s.label for s in store.list()] == ["b", "a"]

    def test_invalid_ids(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.reorder(["1", "two"])
        assert exc_info.value.message == "Invalid order data."
