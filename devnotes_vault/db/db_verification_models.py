"""
Per-actor verification and lockout state.

Verification (``verified_at``) and rate limiting (``failed_attempts``,
``last_failed_at``, ``lockout_until``) are independent and expire on their
own clocks.
"""

from sqlalchemy import Column, Integer, String

from .db_base import UTCDateTime
from .db_config import Base


class VerificationState(Base):
    """Simple verification state model - just data, no logic."""

    __tablename__ = "verification_sessions"

    actor_id = Column(String(191), primary_key=True)
    verified_at = Column(UTCDateTime, nullable=True)
    failed_attempts = Column(Integer, nullable=False, default=0)
    last_failed_at = Column(UTCDateTime, nullable=True)
    lockout_until = Column(UTCDateTime, nullable=True)
