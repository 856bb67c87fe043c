"""
Composition root.

Builds every vault component once for a session and wires them together
explicitly, so there are no module-level singletons to reset in tests.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from .config import AppConfig, get_config
from .db.db_base import utc_now
from .services.audit_log_service import AuditLogService
from .services.base_service import Clock
from .services.credential_service import CredentialStore
from .services.key_service import KeyManager
from .services.settings_service import SettingsService
from .services.user_directory import UserDirectory
from .services.vault_service import CredentialVault
from .services.verification_service import AccessVerifier
from .utils.encryption_utils import SecretEnvelopeCodec


@dataclass
class VaultContainer:
    key_manager: KeyManager
    codec: SecretEnvelopeCodec
    settings: SettingsService
    audit_log: AuditLogService
    store: CredentialStore
    verifier: AccessVerifier
    vault: CredentialVault


def create_vault(
    session: Session,
    user_directory: UserDirectory,
    config: Optional[AppConfig] = None,
    clock: Clock = utc_now,
) -> VaultContainer:
    """
    Wire up the vault for one session.

    Args:
        session: Request-scoped SQLAlchemy session shared by all components
        user_directory: Host application's user lookup and password check
        config: Application config (defaults to the global config)
        clock: Source of "now" shared by every component

    Returns:
        VaultContainer with all components
    """
    config = config or get_config()

    key_manager = KeyManager(session=session, clock=clock)
    codec = SecretEnvelopeCodec(key_manager)
    settings = SettingsService(session=session, security=config.security, clock=clock)
    audit_log = AuditLogService(
        session=session, user_directory=user_directory, settings=settings, clock=clock
    )
    store = CredentialStore(session=session, codec=codec, audit_log=audit_log, clock=clock)
    verifier = AccessVerifier(
        session=session,
        user_directory=user_directory,
        settings=settings,
        audit_log=audit_log,
        security=config.security,
        clock=clock,
    )
    vault = CredentialVault(
        session=session,
        codec=codec,
        store=store,
        verifier=verifier,
        audit_log=audit_log,
        settings=settings,
    )

    return VaultContainer(
        key_manager=key_manager,
        codec=codec,
        settings=settings,
        audit_log=audit_log,
        store=store,
        verifier=verifier,
        vault=vault,
    )
