"""
Append-only audit log of sensitive vault actions.

Entries are written inside a SAVEPOINT so a failed audit insert never rolls
back the credential operation it accompanies. Entries are never updated;
the only delete path is age-based pruning.
"""

import math
from datetime import UTC, datetime, time, timedelta
from typing import Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..constants import Limits, UNKNOWN_USER_NAME
from ..context.operation_context import operation
from ..context.request_context import RequestContext
from ..db.db_audit_models import AuditLogEntry
from ..enums import AuditAction
from ..exceptions import ErrorCode, ValidationError, storage_failed
from ..schemas.audit_schemas import AuditLogEntryRead, AuditLogFilter, AuditLogPage
from .base_service import SessionManagedService
from .settings_service import SettingsService
from .user_directory import UserDirectory, UserInfo


def _parse_action(action_type: Union[str, AuditAction]) -> AuditAction:
    try:
        return AuditAction(action_type)
    except ValueError:
        raise ValidationError(
            f"Unknown audit action: {action_type}",
            field="action_type",
            error_code=ErrorCode.INVALID_FORMAT,
            value=str(action_type),
        )


class AuditLogService(SessionManagedService):
    """
    Records and queries audit entries.

    Actor identity and client address are taken from the active
    RequestContext at write time.
    """

    def __init__(
        self,
        session=None,
        user_directory: Optional[UserDirectory] = None,
        settings: Optional[SettingsService] = None,
        **kwargs,
    ):
        super().__init__(session=session, **kwargs)
        self.user_directory = user_directory
        self.settings = settings

    def log(
        self,
        action_type: Union[str, AuditAction],
        target_label: Optional[str] = None,
        target_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> Optional[int]:
        """
        Append an audit entry.

        Args:
            action_type: One of AuditAction
            target_label: Snapshot of the credential label
            target_id: Credential id, if any
            details: Free-text context such as "Field: password"

        Returns:
            The new entry id, or None if storage failed (logged, not raised)

        Raises:
            ValidationError: If action_type is not a known action
        """
        action = _parse_action(action_type)

        try:
            with self.session.begin_nested():
                entry = AuditLogEntry(
                    user_id=RequestContext.get_current_actor_id(),
                    action_type=action.value,
                    credential_label=target_label,
                    credential_id=target_id,
                    details=details,
                    ip_address=RequestContext.get_client_address(),
                    created_at=self.clock(),
                )
                self.session.add(entry)
        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to write audit log entry",
                extra={
                    "action_type": action.value,
                    "credential_id": target_id,
                    "error_type": type(e).__name__,
                },
            )
            return None

        return entry.id

    def log_notes(self, action_type: Union[str, AuditAction], details: Optional[str] = None):
        """Record a notes action (no credential target)."""
        action = _parse_action(action_type)
        if not action.is_notes_action:
            raise ValidationError(
                f"Not a notes action: {action.value}",
                field="action_type",
                error_code=ErrorCode.INVALID_FORMAT,
            )
        return self.log(action, details=details)

    @operation()
    def query(
        self,
        filters: Optional[AuditLogFilter] = None,
        page: int = 1,
        per_page: int = Limits.DEFAULT_PAGE_SIZE,
    ) -> AuditLogPage:
        """
        Return one page of entries, newest first, enriched with actor details.

        Raises:
            ValidationError: If the filters are invalid
            StorageError: If the query fails
        """
        filters = self._validate(AuditLogFilter, filters or {})
        page = max(1, int(page))
        per_page = min(max(1, int(per_page)), Limits.MAX_PAGE_SIZE)

        try:
            query = self.session.query(AuditLogEntry)

            if filters.action_type is not None:
                query = query.filter(AuditLogEntry.action_type == filters.action_type.value)
            if filters.actor_id:
                query = query.filter(AuditLogEntry.user_id == filters.actor_id)
            if filters.target_id is not None:
                query = query.filter(AuditLogEntry.credential_id == filters.target_id)
            if filters.date_from:
                start = datetime.combine(filters.date_from, time.min, tzinfo=UTC)
                query = query.filter(AuditLogEntry.created_at >= start)
            if filters.date_to:
                end = datetime.combine(filters.date_to, time.max, tzinfo=UTC)
                query = query.filter(AuditLogEntry.created_at <= end)

            total = query.count()
            rows = (
                query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
                .all()
            )
        except SQLAlchemyError as e:
            raise storage_failed("query_audit_log", cause=e) from e

        users: Dict[str, Optional[UserInfo]] = {}
        items = [self._to_read(row, users) for row in rows]

        return AuditLogPage(
            items=items,
            total=total,
            pages=math.ceil(total / per_page),
            current_page=page,
            per_page=per_page,
        )

    def _lookup_user(self, actor_id: Optional[str], cache: Dict[str, Optional[UserInfo]]):
        if not actor_id or self.user_directory is None:
            return None
        if actor_id not in cache:
            cache[actor_id] = self.user_directory.get_user(actor_id)
        return cache[actor_id]

    def _to_read(self, row: AuditLogEntry, users: Dict[str, Optional[UserInfo]]):
        user = self._lookup_user(row.user_id, users)
        try:
            action_label = AuditAction(row.action_type).label
        except ValueError:
            action_label = row.action_type

        return AuditLogEntryRead(
            id=row.id,
            actor_id=row.user_id,
            action_type=row.action_type,
            action_label=action_label,
            target_label=row.credential_label,
            target_id=row.credential_id,
            details=row.details,
            client_address=row.ip_address,
            created_at=row.created_at,
            user_display_name=user.display_name if user else UNKNOWN_USER_NAME,
            user_email=user.email if user else "",
        )

    @operation()
    def prune(self, retention_days: int) -> int:
        """
        Delete entries older than ``retention_days``.

        A retention of zero or less means keep everything.

        Returns:
            Number of entries deleted
        """
        if retention_days is None or int(retention_days) <= 0:
            return 0

        cutoff = self.clock() - timedelta(days=int(retention_days))
        try:
            deleted = (
                self.session.query(AuditLogEntry)
                .filter(AuditLogEntry.created_at < cutoff)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise storage_failed("prune_audit_log", cause=e) from e

        self.logger.info(
            "Pruned audit log",
            extra={"retention_days": retention_days, "deleted": deleted},
        )
        return deleted

    def prune_expired(self) -> int:
        """Prune using the persisted retention setting. Entry point for scheduled cleanup."""
        settings = self.settings or SettingsService(session=self.session, clock=self.clock)
        return self.prune(settings.get_settings().audit_log_retention_days)
