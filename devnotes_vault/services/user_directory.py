"""
Boundary to the host application's user accounts.

The vault never stores login passwords or profile data. It asks the host
for display metadata (audit log enrichment) and to check a re-entered login
password (verification gate).
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class UserInfo(BaseModel):
    actor_id: str
    display_name: str
    email: str = ""


class UserDirectory(ABC):
    """Host-provided user lookup and password check."""

    @abstractmethod
    def get_user(self, actor_id: str) -> Optional[UserInfo]:
        """Return display metadata for an actor, or None if the account is gone."""

    @abstractmethod
    def check_password(self, actor_id: str, password: str) -> bool:
        """Return True if ``password`` is the actor's current login password."""
