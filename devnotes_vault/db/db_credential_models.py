"""
Credential model.

Just the data structure - no business logic or class methods. The five
``*_encrypted`` columns hold opaque envelopes; plaintext secrets never land
in this table.
"""

from sqlalchemy import Column, Index, Integer, String, Text

from .db_base import TimestampMixin
from .db_config import Base


class Credential(Base, TimestampMixin):
    """Simple credential model - just data, no logic."""

    __tablename__ = "credentials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="username_password")

    # Envelope columns
    username_encrypted = Column(Text, nullable=True)
    password_encrypted = Column(Text, nullable=True)
    api_key_encrypted = Column(Text, nullable=True)
    ssh_key_encrypted = Column(Text, nullable=True)
    secure_note_encrypted = Column(Text, nullable=True)

    # Plaintext metadata
    url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_by = Column(String(191), nullable=True)

    __table_args__ = (
        Index("ix_credentials_sort_order", "sort_order"),
        Index("ix_credentials_created_by", "created_by"),
    )

    def __repr__(self):
        return f"<Credential(id={self.id}, label='{self.label}', type='{self.type}')>"
