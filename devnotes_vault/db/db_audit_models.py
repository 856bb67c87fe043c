"""
Audit log model.

Append-only: rows are inserted once and only removed by age-based pruning.
``credential_label`` is a snapshot of the label at the time of the action so
entries stay readable after the credential is deleted; ``credential_id`` is
deliberately not a foreign key and may dangle.
"""

from sqlalchemy import Column, Index, Integer, String, Text

from .db_base import UTCDateTime, utc_now
from .db_config import Base


class AuditLogEntry(Base):
    """Simple audit log model - just data, no logic."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(191), nullable=True)
    action_type = Column(String(50), nullable=False)
    credential_label = Column(String(255), nullable=True)
    credential_id = Column(Integer, nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_audit_log_user_id", "user_id"),
        Index("ix_audit_log_action_type", "action_type"),
        Index("ix_audit_log_credential_id", "credential_id"),
        Index("ix_audit_log_created_at", "created_at"),
    )
