"""Utility modules for the credential vault."""

from .encryption_utils import EMPTY_ENVELOPE, KeyProvider, SecretEnvelopeCodec
from .logger import ContextAwareLogger, RequestContextFilter, configure_logging, get_logger

__all__ = [
    # Encryption utilities
    "EMPTY_ENVELOPE",
    "KeyProvider",
    "SecretEnvelopeCodec",
    # Logging utilities
    "ContextAwareLogger",
    "RequestContextFilter",
    "configure_logging",
    "get_logger",
]
