"""
Envelope encryption for individual secret field values.

Envelope format: base64( nonce[12] || ciphertext || GCM tag[16] ), AES-256-GCM,
no associated data. A fresh random nonce is drawn on every call; the root key
is fetched from the key provider per call and never kept on the codec.

Never log plaintext or envelope values.
"""

import base64
import binascii
import os
from typing import Optional, Protocol

from ..constants import Limits
from ..exceptions import DecryptionError, EncryptionUnavailableError
from .logger import get_logger

EMPTY_ENVELOPE = ""
MIN_ENVELOPE_BYTES = Limits.NONCE_BYTES + Limits.TAG_BYTES


class KeyProvider(Protocol):
    def get_key(self) -> bytes: ...


def _load_aead():
    """Return the AEAD cipher class, or None when the primitive cannot be loaded."""
    try:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM
    except ImportError:
        return None
    return AESGCM


class SecretEnvelopeCodec:
    """Encrypts and decrypts single field values under the root key."""

    def __init__(self, key_provider: KeyProvider):
        self.key_provider = key_provider
        self.logger = get_logger()

    def is_available(self) -> bool:
        """Whether the AEAD primitive is usable in this runtime."""
        return _load_aead() is not None

    def ensure_available(self) -> None:
        """
        Raise EncryptionUnavailableError when secrets cannot be encrypted.

        Called before any credential write so nothing is stored in the clear.
        """
        if not self.is_available():
            raise EncryptionUnavailableError()

    def _cipher(self):
        aead = _load_aead()
        if aead is None:
            raise EncryptionUnavailableError()
        key = self.key_provider.get_key()
        return aead(key)

    def encrypt(self, plaintext: Optional[str]) -> str:
        """
        Seal a plaintext value into an envelope.

        Args:
            plaintext: Value to encrypt. Empty input yields the empty envelope.

        Returns:
            Base64 envelope string
        """
        if not plaintext:
            return EMPTY_ENVELOPE

        nonce = os.urandom(Limits.NONCE_BYTES)
        sealed = self._cipher().encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, envelope: Optional[str]) -> str:
        """
        Open an envelope.

        Args:
            envelope: Base64 envelope. Empty input yields an empty string.

        Returns:
            The plaintext

        Raises:
            DecryptionError: If the envelope is malformed, truncated, tampered
                with, or was sealed under a different key
        """
        if not envelope:
            return ""

        try:
            raw = base64.b64decode(envelope, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Envelope is not valid base64", cause=e)

        if len(raw) < MIN_ENVELOPE_BYTES:
            raise DecryptionError(
                "Envelope is too short", envelope_bytes=len(raw), minimum=MIN_ENVELOPE_BYTES
            )

        cipher = self._cipher()
        nonce, sealed = raw[: Limits.NONCE_BYTES], raw[Limits.NONCE_BYTES :]

        from cryptography.exceptions import InvalidTag

        try:
            plaintext = cipher.decrypt(nonce, sealed, None)
        except InvalidTag as e:
            raise DecryptionError("Envelope failed authentication", cause=e)

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted value is not valid UTF-8", cause=e)
