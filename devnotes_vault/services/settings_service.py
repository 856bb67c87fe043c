"""
Persisted vault settings stored as one JSON document in the options table.
"""

from typing import Any, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..config import SecurityConfig, get_config
from ..constants import OptionName
from ..context.operation_context import operation
from ..db.db_option_models import Option
from ..exceptions import storage_failed
from ..schemas.settings_schema import VaultSettings
from .base_service import SessionManagedService


class SettingsService(SessionManagedService):
    """Reads and writes VaultSettings, falling back to configured defaults."""

    def __init__(self, session=None, security: Optional[SecurityConfig] = None, **kwargs):
        super().__init__(session=session, **kwargs)
        self.security = security or get_config().security

    def defaults(self) -> VaultSettings:
        return VaultSettings(
            require_password_verification=self.security.require_password_verification,
            audit_log_retention_days=self.security.audit_log_retention_days,
        )

    def get_settings(self) -> VaultSettings:
        """Stored settings merged over the defaults."""
        try:
            option = self.session.get(Option, OptionName.SETTINGS.value)
        except SQLAlchemyError as e:
            raise storage_failed("get_settings", cause=e) from e

        stored = option.value if option and isinstance(option.value, dict) else {}
        return VaultSettings.model_validate({**self.defaults().model_dump(), **stored})

    def get(self, key: str, default: Any = None) -> Any:
        """Single setting value, or ``default`` when the key is unknown."""
        return getattr(self.get_settings(), key, default)

    @operation()
    def save_settings(self, settings: Union[VaultSettings, Mapping[str, Any]]) -> VaultSettings:
        """
        Validate and persist settings. Keys not given keep their current value.

        Raises:
            ValidationError: If a value is out of range
            StorageError: If the options table cannot be written
        """
        if isinstance(settings, VaultSettings):
            merged = settings
        else:
            current = self.get_settings().model_dump()
            merged = self._validate(VaultSettings, {**current, **dict(settings)})

        try:
            option = self.session.get(Option, OptionName.SETTINGS.value)
            if option is None:
                option = Option(name=OptionName.SETTINGS.value)
                self.session.add(option)
            option.value = merged.model_dump()
            option.updated_at = self.clock()
            self.session.flush()
        except SQLAlchemyError as e:
            raise storage_failed("save_settings", cause=e) from e

        self.logger.info("Vault settings saved", extra=merged.model_dump())
        return merged
