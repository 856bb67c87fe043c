"""
Credential store: CRUD over vault credentials.

Each sensitive field is stored as its own envelope produced by the
SecretEnvelopeCodec. Plaintext secrets never reach the database, listings
never carry secrets or envelopes, and every write is recorded in the audit
log. Concurrent updates to one credential are last-write-wins.
"""

from typing import Any, List, Mapping, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError

from ..context.operation_context import operation
from ..context.request_context import RequestContext, actor_required
from ..db.db_credential_models import Credential
from ..enums import AuditAction, CredentialType, SensitiveField
from ..exceptions import DecryptionError, ErrorCode, ValidationError, not_found
from ..schemas.credential_schemas import (
    CredentialCreate,
    CredentialRead,
    CredentialSummary,
    CredentialUpdate,
    build_secrets,
)
from ..utils.encryption_utils import SecretEnvelopeCodec
from .audit_log_service import AuditLogService
from .base_service import SessionManagedService


class CredentialStore(SessionManagedService):
    """
    Owns credential rows.

    Writes call ``codec.ensure_available()`` before anything else so a
    runtime without the AEAD primitive can never store secrets.
    """

    def __init__(
        self,
        session=None,
        codec: Optional[SecretEnvelopeCodec] = None,
        audit_log: Optional[AuditLogService] = None,
        **kwargs,
    ):
        super().__init__(session=session, **kwargs)
        if codec is None or audit_log is None:
            raise ValueError("CredentialStore requires a codec and an audit log")
        self.codec = codec
        self.audit_log = audit_log

    # ==================== READS ====================

    def list(self) -> List[CredentialSummary]:
        """All credentials as metadata only, ordered by sort_order then label."""
        try:
            rows = (
                self.session.query(Credential)
                .order_by(Credential.sort_order.asc(), Credential.label.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self._handle_service_exception("list_credentials", e)

        return [CredentialSummary.model_validate(row) for row in rows]

    def _load(self, credential_id: int) -> Optional[Credential]:
        try:
            return self.session.get(Credential, int(credential_id))
        except (TypeError, ValueError):
            raise ValidationError(
                "Invalid credential ID.",
                field="credential_id",
                error_code=ErrorCode.INVALID_FORMAT,
            )
        except SQLAlchemyError as e:
            self._handle_service_exception("get_credential", e, credential_id)

    def _load_or_raise(self, credential_id: int) -> Credential:
        credential = self._load(credential_id)
        if credential is None:
            raise not_found("Credential", credential_id=credential_id)
        return credential

    def get(self, credential_id: int, decrypt: bool = False) -> Optional[CredentialRead]:
        """
        Fetch one credential.

        With ``decrypt`` every envelope of the credential's type is opened. A
        field whose envelope cannot be opened comes back empty and is listed
        in ``corrupted_fields``; the rest of the read still succeeds.

        Returns:
            The credential, or None if it does not exist
        """
        credential = self._load(credential_id)
        if credential is None:
            return None
        return self._to_read(credential, decrypt)

    def get_or_raise(self, credential_id: int, decrypt: bool = False) -> CredentialRead:
        """Like ``get`` but raises CredentialNotFoundError for unknown ids."""
        return self._to_read(self._load_or_raise(credential_id), decrypt)

    def _to_read(self, credential: Credential, decrypt: bool) -> CredentialRead:
        summary = CredentialSummary.model_validate(credential)
        populated = [f for f in SensitiveField if getattr(credential, f.column)]

        secrets = None
        corrupted: List[SensitiveField] = []
        if decrypt:
            values = {}
            for field in CredentialType(credential.type).sensitive_fields:
                try:
                    values[field.value] = self.codec.decrypt(getattr(credential, field.column))
                except DecryptionError:
                    values[field.value] = ""
                    corrupted.append(field)
                    self.logger.warning(
                        "Credential field could not be decrypted",
                        extra={"credential_id": credential.id, "field": field.value},
                    )
            secrets = build_secrets(CredentialType(credential.type), values).model_dump()

        return CredentialRead(
            **summary.model_dump(),
            secrets=secrets,
            populated_fields=populated,
            corrupted_fields=corrupted,
        )

    # ==================== WRITES ====================

    @actor_required
    @operation()
    def create(self, data: Union[CredentialCreate, Mapping[str, Any]]) -> int:
        """
        Create a credential, encrypting only the fields relevant to its type.

        Returns:
            The new credential id

        Raises:
            EncryptionUnavailableError: If secrets cannot be encrypted
            ValidationError: If the label is empty or the type unknown
            StorageError: If the insert fails
        """
        self.codec.ensure_available()
        payload = self._validate(CredentialCreate, data)
        now = self.clock()

        credential = Credential(
            label=payload.label,
            type=payload.type.value,
            url=payload.url or None,
            notes=payload.notes or None,
            sort_order=payload.sort_order,
            created_by=RequestContext.get_current_actor_id(),
            created_at=now,
            updated_at=now,
        )
        for field, value in payload.secret_values().items():
            if value:
                setattr(credential, field.column, self.codec.encrypt(value))

        try:
            self.session.add(credential)
            self.session.flush()
        except SQLAlchemyError as e:
            self._handle_service_exception("create_credential", e)

        self.logger.info(
            "Credential created",
            extra={"credential_id": credential.id, "credential_type": credential.type},
        )
        self._audit(AuditAction.CREATED, credential.label, credential.id)
        return credential.id

    @actor_required
    @operation()
    def update(
        self, credential_id: int, data: Union[CredentialUpdate, Mapping[str, Any]]
    ) -> None:
        """
        Apply a partial update.

        Only fields present in ``data`` are touched. A type change clears every
        envelope before the new type's fields are written; an empty secret
        value clears that field.

        Raises:
            EncryptionUnavailableError: If secrets cannot be encrypted
            ValidationError: If the payload is invalid
            CredentialNotFoundError: If the id is unknown
            StorageError: If the update fails
        """
        self.codec.ensure_available()
        payload = self._validate(CredentialUpdate, data)
        credential = self._load_or_raise(credential_id)
        provided = payload.model_fields_set

        if "label" in provided and payload.label is not None:
            credential.label = payload.label
        if "url" in provided:
            credential.url = payload.url or None
        if "notes" in provided:
            credential.notes = payload.notes or None
        if "sort_order" in provided and payload.sort_order is not None:
            credential.sort_order = payload.sort_order

        if payload.type is not None and payload.type.value != credential.type:
            for field in SensitiveField:
                setattr(credential, field.column, None)
            credential.type = payload.type.value

        for field, value in payload.provided_secrets(CredentialType(credential.type)).items():
            setattr(credential, field.column, self.codec.encrypt(value) if value else None)

        credential.updated_at = self.clock()

        try:
            self.session.flush()
        except SQLAlchemyError as e:
            self._handle_service_exception("update_credential", e, credential_id)

        self.logger.info("Credential updated", extra={"credential_id": credential.id})
        self._audit(AuditAction.MODIFIED, credential.label, credential.id)

    @actor_required
    @operation()
    def delete(self, credential_id: int) -> None:
        """
        Hard-delete a credential. The audit entry keeps the pre-delete label.

        Raises:
            CredentialNotFoundError: If the id is unknown
            StorageError: If the delete fails
        """
        credential = self._load_or_raise(credential_id)
        label, deleted_id = credential.label, credential.id

        try:
            self.session.delete(credential)
            self.session.flush()
        except SQLAlchemyError as e:
            self._handle_service_exception("delete_credential", e, credential_id)

        self.logger.info("Credential deleted", extra={"credential_id": deleted_id})
        self._audit(AuditAction.DELETED, label, deleted_id)

    @operation()
    def reorder(self, ordered_ids: Sequence[Any]) -> int:
        """
        Set each credential's sort_order to its position in ``ordered_ids``.

        Ids that do not exist are skipped and credentials missing from the
        sequence keep their current position.

        Returns:
            Number of credentials repositioned
        """
        try:
            ids = [int(credential_id) for credential_id in ordered_ids]
        except (TypeError, ValueError) as e:
            raise ValidationError(
                "Invalid order data.",
                field="order",
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
            )

        updated = 0
        try:
            for position, credential_id in enumerate(ids):
                updated += (
                    self.session.query(Credential)
                    .filter(Credential.id == credential_id)
                    .update({Credential.sort_order: position}, synchronize_session="fetch")
                )
        except SQLAlchemyError as e:
            self._handle_service_exception("reorder_credentials", e)

        return updated

    def _audit(self, action: AuditAction, label: str, credential_id: int) -> None:
        if self.audit_log.log(action, label, credential_id) is None:
            self.logger.warning(
                "Audit entry not recorded",
                extra={"action_type": action.value, "credential_id": credential_id},
            )
