"""
Access verifier: the password re-entry gate in front of secret reveal/copy.

Two independent pieces of state per actor live in ``verification_sessions``:

* verification: ``verified_at``, valid for ``verification_ttl_seconds`` and
  extended each time the gate passes when sliding verification is on
* rate limiting: ``failed_attempts`` counted within a rolling window since
  the last failure, and ``lockout_until`` once the limit is reached

The failure counter is incremented with a single UPDATE so concurrent
requests from one actor cannot under-count.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import case, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import SecurityConfig, get_config
from ..context.operation_context import operation
from ..db.db_verification_models import VerificationState
from ..enums import AuditAction
from ..exceptions import (
    ErrorCode,
    IncorrectPasswordError,
    LockedOutError,
    ValidationError,
    VerificationRequiredError,
    storage_failed,
)
from .audit_log_service import AuditLogService
from .base_service import SessionManagedService
from .settings_service import SettingsService
from .user_directory import UserDirectory

LOCKOUT_AUDIT_DETAILS = "Password verification lockout triggered"


class AccessVerifier(SessionManagedService):
    """Per-actor re-authentication gate with lockout."""

    def __init__(
        self,
        session=None,
        user_directory: Optional[UserDirectory] = None,
        settings: Optional[SettingsService] = None,
        audit_log: Optional[AuditLogService] = None,
        security: Optional[SecurityConfig] = None,
        **kwargs,
    ):
        super().__init__(session=session, **kwargs)
        if user_directory is None or settings is None or audit_log is None:
            raise ValueError("AccessVerifier requires a user directory, settings and audit log")
        self.user_directory = user_directory
        self.settings = settings
        self.audit_log = audit_log
        self.security = security or get_config().security

    @property
    def verification_ttl(self) -> timedelta:
        return timedelta(seconds=self.security.verification_ttl_seconds)

    @property
    def failure_window(self) -> timedelta:
        return timedelta(seconds=self.security.failure_window_seconds)

    @property
    def lockout_duration(self) -> timedelta:
        return timedelta(seconds=self.security.lockout_seconds)

    def _state(self, actor_id: str) -> Optional[VerificationState]:
        return self.session.get(VerificationState, str(actor_id), populate_existing=True)

    def _state_for_update(self, actor_id: str) -> VerificationState:
        state = self._state(actor_id)
        if state is not None:
            return state
        try:
            with self.session.begin_nested():
                state = VerificationState(actor_id=str(actor_id), failed_attempts=0)
                self.session.add(state)
        except IntegrityError:
            # Created concurrently by another request for the same actor
            state = self._state(actor_id)
            if state is None:
                raise
        return state

    # ==================== GATE ====================

    def check_required(self, actor_id: str) -> bool:
        """
        Whether the actor may see secret values right now.

        True when verification is switched off in settings or the actor's
        verification has not expired. An expired verification is cleared.
        """
        if not self.settings.get_settings().require_password_verification:
            return True

        try:
            state = self._state(actor_id)
            if state is None or state.verified_at is None:
                return False

            now = self.clock()
            if now - state.verified_at < self.verification_ttl:
                if self.security.sliding_verification:
                    state.verified_at = now
                    self.session.flush()
                return True

            state.verified_at = None
            self.session.flush()
        except SQLAlchemyError as e:
            raise storage_failed("check_verification", cause=e, actor_id=actor_id) from e

        self.logger.info("Password verification expired", extra={"actor_id": actor_id})
        return False

    def require_verified(self, actor_id: str) -> None:
        """Raise VerificationRequiredError unless ``check_required`` passes."""
        if not self.check_required(actor_id):
            raise VerificationRequiredError(actor_id=actor_id)

    def is_locked_out(self, actor_id: str) -> bool:
        try:
            state = self._state(actor_id)
        except SQLAlchemyError as e:
            raise storage_failed("is_locked_out", cause=e, actor_id=actor_id) from e
        return bool(state and state.lockout_until and state.lockout_until > self.clock())

    def revoke(self, actor_id: str) -> None:
        """Drop the actor's verification (e.g. on logout)."""
        try:
            state = self._state(actor_id)
            if state is not None and state.verified_at is not None:
                state.verified_at = None
                self.session.flush()
        except SQLAlchemyError as e:
            raise storage_failed("revoke_verification", cause=e, actor_id=actor_id) from e

    # ==================== VERIFY ====================

    @operation()
    def verify(self, actor_id: str, password: str) -> None:
        """
        Check a re-entered login password.

        Raises:
            LockedOutError: While the actor is locked out, or on the failure
                that triggers the lockout
            ValidationError: If the password is empty
            IncorrectPasswordError: On any other mismatch
            StorageError: If the verification state cannot be written
        """
        now = self.clock()

        try:
            state = self._state_for_update(actor_id)
        except SQLAlchemyError as e:
            raise storage_failed("verify_password", cause=e, actor_id=actor_id) from e

        if state.lockout_until is not None and state.lockout_until > now:
            raise LockedOutError(
                actor_id=actor_id,
                retry_after_seconds=int((state.lockout_until - now).total_seconds()),
            )

        if not password:
            raise ValidationError(
                "Password is required.",
                field="password",
                error_code=ErrorCode.MISSING_REQUIRED,
            )

        if self.user_directory.check_password(actor_id, password):
            try:
                state.failed_attempts = 0
                state.last_failed_at = None
                state.lockout_until = None
                state.verified_at = now
                self.session.flush()
            except SQLAlchemyError as e:
                raise storage_failed("verify_password", cause=e, actor_id=actor_id) from e
            self.logger.info("Password verified", extra={"actor_id": actor_id})
            return

        attempts = self._record_failure(actor_id, state, now)

        if attempts >= self.security.max_failed_attempts:
            try:
                state.failed_attempts = 0
                state.last_failed_at = None
                state.lockout_until = now + self.lockout_duration
                self.session.flush()
            except SQLAlchemyError as e:
                raise storage_failed("verify_password", cause=e, actor_id=actor_id) from e

            self.logger.warning(
                "Password verification lockout triggered",
                extra={"actor_id": actor_id, "failed_attempts": attempts},
            )
            self.audit_log.log(AuditAction.VIEWED, None, None, LOCKOUT_AUDIT_DETAILS)
            raise LockedOutError(
                actor_id=actor_id, retry_after_seconds=self.security.lockout_seconds
            )

        raise IncorrectPasswordError(
            actor_id=actor_id,
            attempts_remaining=self.security.max_failed_attempts - attempts,
        )

    def _record_failure(self, actor_id: str, state: VerificationState, now) -> int:
        """Atomically bump the failure counter, restarting it when the window has lapsed."""
        window_start = now - self.failure_window
        try:
            self.session.query(VerificationState).filter(
                VerificationState.actor_id == str(actor_id)
            ).update(
                {
                    VerificationState.failed_attempts: case(
                        (
                            or_(
                                VerificationState.last_failed_at.is_(None),
                                VerificationState.last_failed_at <= window_start,
                            ),
                            1,
                        ),
                        else_=VerificationState.failed_attempts + 1,
                    ),
                    VerificationState.last_failed_at: now,
                },
                synchronize_session=False,
            )
            self.session.refresh(state)
        except SQLAlchemyError as e:
            raise storage_failed("verify_password", cause=e, actor_id=actor_id) from e

        self.logger.info(
            "Password verification failed",
            extra={"actor_id": actor_id, "failed_attempts": state.failed_attempts},
        )
        return state.failed_attempts
