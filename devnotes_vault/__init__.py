"""Encrypted credential vault with a re-authentication gate and audit trail."""

__version__ = "0.1.0"
