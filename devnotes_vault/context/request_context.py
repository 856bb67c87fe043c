"""
Request context management for the credential vault.

Every vault operation runs on behalf of an authenticated actor coming in
through some request transport. This module keeps that actor identity and
the client network address in thread-local storage so the audit log and the
logging filter can pick them up without threading them through every call.
"""

import ipaddress
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generator, Mapping, Optional

from ..constants import UNKNOWN_CLIENT_ADDRESS
from ..exceptions import ErrorCode, ValidationError
from ..utils.logger import get_logger

# Proxy headers consulted for the client address, most trusted first
CLIENT_ADDRESS_HEADERS = (
    "CF-Connecting-IP",
    "X-Forwarded-For",
    "X-Forwarded",
    "X-Cluster-Client-IP",
    "Forwarded-For",
    "Forwarded",
)


@dataclass(frozen=True)
class RequestIdentity:
    """Who is acting and from where."""

    actor_id: str
    client_address: str = UNKNOWN_CLIENT_ADDRESS


class RequestContext:
    """
    Manages the acting identity using thread-local storage.
    """

    _thread_local = threading.local()
    _logger = get_logger()

    @classmethod
    def set_current(cls, actor_id: str, client_address: Optional[str] = None) -> None:
        """
        Set the acting identity for the execution context.

        Args:
            actor_id: ID of the authenticated actor
            client_address: Client network address (defaults to 0.0.0.0)

        Raises:
            ValidationError: If actor_id is empty
        """
        if actor_id is None or not str(actor_id).strip():
            raise ValidationError(
                "actor_id must be a non-empty string",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="actor_id",
            )

        cls._thread_local.identity = RequestIdentity(
            actor_id=str(actor_id).strip(),
            client_address=client_address or UNKNOWN_CLIENT_ADDRESS,
        )
        cls._logger.debug(f"Current actor set to: {actor_id}")

    @classmethod
    def get_current(cls) -> Optional[RequestIdentity]:
        return getattr(cls._thread_local, "identity", None)

    @classmethod
    def get_current_actor_id(cls) -> Optional[str]:
        """
        Get the current actor ID from the execution context.

        Returns:
            Current actor ID or None if not set
        """
        identity = cls.get_current()
        return identity.actor_id if identity else None

    @classmethod
    def get_client_address(cls) -> str:
        identity = cls.get_current()
        return identity.client_address if identity else UNKNOWN_CLIENT_ADDRESS

    @classmethod
    def require_actor_id(cls) -> str:
        """Return the current actor ID or raise when no request context is active."""
        actor_id = cls.get_current_actor_id()
        if not actor_id:
            raise ValidationError(
                "No authenticated actor in request context",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="actor_id",
            )
        return actor_id

    @classmethod
    def clear_current(cls) -> None:
        if hasattr(cls._thread_local, "identity"):
            delattr(cls._thread_local, "identity")
        cls._logger.debug("Current actor cleared")


@contextmanager
def request_context(
    actor_id: str, client_address: Optional[str] = None
) -> Generator[RequestIdentity, None, None]:
    """
    Context manager for a single authenticated request.

    Sets the acting identity for the duration of the context and restores the
    previous one afterward.

    Args:
        actor_id: ID of the authenticated actor
        client_address: Client network address

    Yields:
        The active RequestIdentity
    """
    previous = RequestContext.get_current()
    RequestContext.set_current(actor_id, client_address)
    try:
        yield RequestContext.get_current()
    finally:
        if previous:
            RequestContext.set_current(previous.actor_id, previous.client_address)
        else:
            RequestContext.clear_current()


def actor_required(func: Callable) -> Callable:
    """Decorator that rejects calls made outside an authenticated request context."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        RequestContext.require_actor_id()
        return func(*args, **kwargs)

    return wrapper


def _first_valid_ip(raw: str) -> Optional[str]:
    candidate = raw.split(",")[0].strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def resolve_client_address(
    headers: Optional[Mapping[str, str]] = None, remote_addr: Optional[str] = None
) -> str:
    """
    Pick the client address from proxy headers, then the socket peer address.

    Only the first entry of a comma-separated header is considered. Values
    that are not valid IPv4/IPv6 addresses are skipped.

    Args:
        headers: Request headers (matched case-insensitively)
        remote_addr: Address of the directly connected peer

    Returns:
        The first valid address found, or 0.0.0.0
    """
    normalized = {k.lower(): v for k, v in (headers or {}).items()}

    for header in CLIENT_ADDRESS_HEADERS:
        value = normalized.get(header.lower())
        if value:
            address = _first_valid_ip(value)
            if address:
                return address

    if remote_addr:
        address = _first_valid_ip(remote_addr)
        if address:
            return address

    return UNKNOWN_CLIENT_ADDRESS
