"""
Key/value options table holding process-wide state (root key, settings).
"""

from sqlalchemy import Column, String

from .db_base import JSON, UTCDateTime, utc_now
from .db_config import Base


class Option(Base):
    """Simple option model - just data, no logic."""

    __tablename__ = "options"

    name = Column(String(191), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)
