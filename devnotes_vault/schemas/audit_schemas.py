"""
Pydantic schemas for audit log queries.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums import AuditAction


class AuditLogFilter(BaseModel):
    """Filters for audit log queries. Date bounds are inclusive by calendar day (UTC)."""

    action_type: Optional[AuditAction] = None
    actor_id: Optional[str] = None
    target_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_date_range(self) -> "AuditLogFilter":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class AuditLogEntryRead(BaseModel):
    """An audit entry enriched with actor display metadata at read time."""

    id: int
    actor_id: Optional[str] = None
    action_type: str
    action_label: str = ""
    target_label: Optional[str] = None
    target_id: Optional[int] = None
    details: Optional[str] = None
    client_address: Optional[str] = None
    created_at: datetime
    user_display_name: str = ""
    user_email: str = ""

    model_config = ConfigDict(from_attributes=True)


class AuditLogPage(BaseModel):
    """One page of audit entries plus paging metadata."""

    items: List[AuditLogEntryRead] = Field(default_factory=list)
    total: int = 0
    pages: int = 0
    current_page: int = 1
    per_page: int = 50
