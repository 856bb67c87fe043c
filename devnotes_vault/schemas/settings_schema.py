"""
Pydantic schema for persisted vault settings.
"""

from pydantic import BaseModel, ConfigDict, Field


class VaultSettings(BaseModel):
    """Runtime-editable vault policy."""

    require_password_verification: bool = Field(
        default=False, description="Gate reveal/copy of secrets behind password re-entry"
    )
    audit_log_retention_days: int = Field(
        default=90, ge=0, description="Days to keep audit entries (0 = never prune)"
    )

    model_config = ConfigDict(extra="ignore")
