"""Context management for operations and the acting identity."""

from .operation_context import OperationContext, operation
from .request_context import (
    RequestContext,
    RequestIdentity,
    actor_required,
    request_context,
    resolve_client_address,
)

__all__ = [
    "operation",
    "OperationContext",
    "RequestContext",
    "RequestIdentity",
    "actor_required",
    "request_context",
    "resolve_client_address",
]
