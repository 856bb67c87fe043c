"""
Root key management.

The vault has exactly one 32-byte root key, stored base64-encoded in the
options table. It is generated lazily on first use and read from storage on
every call; nothing here caches it.
"""

import base64
import binascii
import secrets
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..constants import Limits, OptionName
from ..context.operation_context import operation
from ..db.db_option_models import Option
from ..exceptions import storage_failed
from .base_service import SessionManagedService


def _decode_key(stored: Optional[str]) -> Optional[bytes]:
    """Decode a stored key, returning None when it is missing or malformed."""
    if not stored or not isinstance(stored, str):
        return None
    try:
        key = base64.b64decode(stored, validate=True)
    except (binascii.Error, ValueError):
        return None
    return key if len(key) == Limits.KEY_BYTES else None


def _encode_key(key: bytes) -> str:
    return base64.b64encode(key).decode("ascii")


class KeyManager(SessionManagedService):
    """Owns the root key. The only component allowed to read it from storage."""

    def _load_option(self) -> Optional[Option]:
        return self.session.get(Option, OptionName.ENCRYPTION_KEY.value, populate_existing=True)

    def get_key(self) -> bytes:
        """
        Return the persisted root key, generating and persisting one if needed.

        Returns:
            32 raw key bytes

        Raises:
            StorageError: If the options table cannot be read or written
        """
        try:
            option = self._load_option()
            key = _decode_key(option.value if option else None)
            if key is not None:
                return key

            if option is not None:
                # A malformed key cannot open anything; replace it
                self.logger.warning(
                    "Stored encryption key is invalid, generating a new one",
                    extra={"option_name": OptionName.ENCRYPTION_KEY.value},
                )
                return self._store_new_key(option)

            return self._insert_first_key()
        except SQLAlchemyError as e:
            raise storage_failed("get_key", cause=e) from e

    def _insert_first_key(self) -> bytes:
        key = secrets.token_bytes(Limits.KEY_BYTES)
        try:
            with self.session.begin_nested():
                self.session.add(
                    Option(
                        name=OptionName.ENCRYPTION_KEY.value,
                        value=_encode_key(key),
                        updated_at=self.clock(),
                    )
                )
        except IntegrityError:
            # Another writer stored a key first; theirs wins
            existing = _decode_key(getattr(self._load_option(), "value", None))
            if existing is None:
                raise
            return existing

        self.logger.info("Generated new encryption key")
        return key

    def _store_new_key(self, option: Option) -> bytes:
        key = secrets.token_bytes(Limits.KEY_BYTES)
        option.value = _encode_key(key)
        option.updated_at = self.clock()
        self.session.flush()
        return key

    def has_key(self) -> bool:
        """Whether a valid root key is already persisted."""
        try:
            option = self._load_option()
        except SQLAlchemyError as e:
            raise storage_failed("has_key", cause=e) from e
        return _decode_key(option.value if option else None) is not None

    @operation()
    def regenerate_key(self) -> None:
        """
        Overwrite the root key with a fresh one.

        Destructive: every existing envelope becomes permanently unreadable.
        Only for key-compromise recovery, never routine rotation.
        """
        try:
            option = self._load_option()
            if option is None:
                self._insert_first_key()
            else:
                self._store_new_key(option)
        except SQLAlchemyError as e:
            raise storage_failed("regenerate_key", cause=e) from e

        self.logger.warning(
            "Encryption key regenerated; existing credentials can no longer be decrypted"
        )
