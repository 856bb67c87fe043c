"""
Credential vault boundary.

These are the entry points the admin UI calls. Each one runs against the
acting identity in the RequestContext, settles the session's unit of work
and returns an OperationResult; no exception crosses this boundary.

Secret reads (get for edit, reveal, copy) go through the access verifier
gate and are recorded in the audit log. Writes are not gated here; the host
application checks edit capability before calling in.
"""

from typing import Any, Callable, Mapping, Optional, Sequence

from pydantic_core import to_jsonable_python
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..context.request_context import RequestContext
from ..enums import AuditAction, SensitiveField
from ..exceptions import (
    BaseError,
    ErrorCode,
    ErrorKind,
    ServiceError,
    ValidationError,
    storage_failed,
)
from ..schemas.result_schema import OperationResult
from ..utils.encryption_utils import SecretEnvelopeCodec
from ..utils.logger import get_logger
from .audit_log_service import AuditLogService
from .credential_service import CredentialStore
from .settings_service import SettingsService
from .verification_service import AccessVerifier

# Failures that leave nothing worth keeping in the unit of work
_ROLLBACK_KINDS = frozenset(
    {ErrorKind.STORAGE, ErrorKind.INTERNAL, ErrorKind.ENCRYPTION_UNAVAILABLE}
)


def _parse_field(field: str) -> SensitiveField:
    try:
        return SensitiveField(field)
    except ValueError:
        raise ValidationError(
            "Invalid field.", field="field", error_code=ErrorCode.INVALID_FORMAT, value=str(field)
        )


class CredentialVault:
    """Uniform-result facade over the store, verifier, audit log and settings."""

    def __init__(
        self,
        session: Session,
        codec: SecretEnvelopeCodec,
        store: CredentialStore,
        verifier: AccessVerifier,
        audit_log: AuditLogService,
        settings: SettingsService,
        logger=None,
    ):
        self.session = session
        self.codec = codec
        self.store = store
        self.verifier = verifier
        self.audit_log = audit_log
        self.settings = settings
        self.logger = logger or get_logger()

    def _run(self, operation_name: str, func: Callable[[], Any]) -> OperationResult:
        """
        Execute one operation as a unit of work and map the outcome.

        Errors caused by the caller's input (validation, wrong password,
        lockout) still commit, so failure counters and lockouts persist.
        Storage and internal failures roll back.
        """
        try:
            data = func()
            self.session.commit()
            return OperationResult.ok(to_jsonable_python(data))
        except BaseError as e:
            self._settle(e)
            return OperationResult.fail(e)
        except SQLAlchemyError as e:
            self.session.rollback()
            return OperationResult.fail(storage_failed(operation_name, cause=e))
        except Exception as e:
            self.session.rollback()
            return OperationResult.fail(
                ServiceError(
                    "An unexpected error occurred.",
                    operation=operation_name,
                    cause=e,
                )
            )

    def _settle(self, error: BaseError) -> None:
        if error.kind in _ROLLBACK_KINDS:
            self.session.rollback()
            return
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logger.error(
                "Failed to persist state after a rejected operation",
                extra={"error_id": error.error_id, "error_type": type(e).__name__},
            )

    # ==================== CREDENTIAL READS ====================

    def list_credentials(self) -> OperationResult:
        def run():
            RequestContext.require_actor_id()
            return [summary.model_dump(mode="json") for summary in self.store.list()]

        return self._run("list_credentials", run)

    def get_credential(self, credential_id: int) -> OperationResult:
        """Full credential with decrypted secrets, for the edit form. Gated and audited."""

        def run():
            actor_id = RequestContext.require_actor_id()
            self.verifier.require_verified(actor_id)
            credential = self.store.get_or_raise(credential_id, decrypt=True)
            self.audit_log.log(AuditAction.VIEWED, credential.label, credential.id)
            return credential.model_dump(mode="json")

        return self._run("get_credential", run)

    def reveal_field(self, credential_id: int, field: str) -> OperationResult:
        return self._read_field("reveal_field", AuditAction.VIEWED, credential_id, field)

    def copy_field(self, credential_id: int, field: str) -> OperationResult:
        return self._read_field("copy_field", AuditAction.COPIED, credential_id, field)

    def _read_field(
        self, operation_name: str, action: AuditAction, credential_id: int, field: str
    ) -> OperationResult:
        def run():
            actor_id = RequestContext.require_actor_id()
            sensitive_field = _parse_field(field)
            self.verifier.require_verified(actor_id)
            credential = self.store.get_or_raise(credential_id, decrypt=True)
            self.audit_log.log(
                action, credential.label, credential.id, f"Field: {sensitive_field.value}"
            )
            return {
                "value": credential.secret_value(sensitive_field),
                "corrupted": sensitive_field in credential.corrupted_fields,
            }

        return self._run(operation_name, run)

    # ==================== CREDENTIAL WRITES ====================

    def save_credential(
        self, data: Mapping[str, Any], credential_id: Optional[int] = None
    ) -> OperationResult:
        """Create when ``credential_id`` is None, otherwise apply a partial update."""

        def run():
            RequestContext.require_actor_id()
            self.codec.ensure_available()
            if credential_id:
                self.store.update(credential_id, data)
                return {"id": int(credential_id)}
            return {"id": self.store.create(data)}

        return self._run("save_credential", run)

    def delete_credential(self, credential_id: int) -> OperationResult:
        def run():
            RequestContext.require_actor_id()
            self.store.delete(credential_id)
            return {"id": int(credential_id)}

        return self._run("delete_credential", run)

    def reorder_credentials(self, order: Sequence[Any]) -> OperationResult:
        def run():
            RequestContext.require_actor_id()
            if not order:
                raise ValidationError(
                    "Invalid order data.", field="order", error_code=ErrorCode.MISSING_REQUIRED
                )
            return {"updated": self.store.reorder(order)}

        return self._run("reorder_credentials", run)

    # ==================== VERIFICATION ====================

    def verify_password(self, password: str) -> OperationResult:
        def run():
            self.verifier.verify(RequestContext.require_actor_id(), password)
            return {"verified": True}

        return self._run("verify_password", run)

    def verification_status(self) -> OperationResult:
        def run():
            actor_id = RequestContext.require_actor_id()
            return {
                "verified": self.verifier.check_required(actor_id),
                "locked_out": self.verifier.is_locked_out(actor_id),
            }

        return self._run("verification_status", run)

    # ==================== AUDIT & SETTINGS ====================

    def get_activity_log(
        self,
        page: int = 1,
        action_type: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
        per_page: Optional[int] = None,
    ) -> OperationResult:
        def run():
            RequestContext.require_actor_id()
            criteria = dict(filters or {})
            if action_type:
                criteria["action_type"] = action_type
            kwargs = {"per_page": per_page} if per_page else {}
            return self.audit_log.query(criteria, page=page, **kwargs).model_dump(mode="json")

        return self._run("get_activity_log", run)

    def log_notes_action(self, action_type: str, details: Optional[str] = None) -> OperationResult:
        def run():
            RequestContext.require_actor_id()
            return {"id": self.audit_log.log_notes(action_type, details)}

        return self._run("log_notes_action", run)

    def get_settings(self) -> OperationResult:
        return self._run("get_settings", lambda: self.settings.get_settings().model_dump())

    def save_settings(self, settings: Mapping[str, Any]) -> OperationResult:
        def run():
            RequestContext.require_actor_id()
            return self.settings.save_settings(settings).model_dump()

        return self._run("save_settings", run)

    def prune_audit_log(self) -> OperationResult:
        """Scheduled cleanup entry point; needs no actor."""
        return self._run("prune_audit_log", lambda: {"deleted": self.audit_log.prune_expired()})
