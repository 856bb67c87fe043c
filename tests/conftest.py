"""
Shared test fixtures for the credential vault.

Every test runs against a fresh in-memory SQLite schema. Time is driven by a
FakeClock so verification expiry, lockouts and retention can be exercised
without sleeping.
"""

import pytest
from sqlalchemy.orm import Session

from devnotes_vault.config import AppConfig, SecurityConfig, reset_config, set_config
from devnotes_vault.context.request_context import RequestContext, request_context
from devnotes_vault.db import DatabaseConfig, DatabaseManager, import_all_models
from devnotes_vault.db.db_config import Base, initialize_db, set_db_manager
from devnotes_vault.exceptions import clear_correlation_id
from tests.fixtures.factories import configure_factories
from tests.fixtures.fakes import FakeClock, InMemoryUserDirectory


# ==================== DATABASE FIXTURES ====================


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(
        db_type="sqlite",
        database=":memory:",
        echo=False,
        development_mode=True,
    )


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()
    manager = initialize_db(db_config)
    yield manager
    set_db_manager(None)
    manager.close()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so committed
    data never leaks between tests.
    """
    Base.metadata.create_all(db_manager.engine)
    session = db_manager.get_session()
    configure_factories(session)

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(db_manager.engine)


# ==================== CONTEXT FIXTURES ====================


@pytest.fixture(autouse=True)
def clean_thread_state():
    """Request context and correlation ids are thread-local; never carry them across tests."""
    RequestContext.clear_current()
    clear_correlation_id()
    yield
    RequestContext.clear_current()
    clear_correlation_id()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def security() -> SecurityConfig:
    return SecurityConfig(
        require_password_verification=False,
        audit_log_retention_days=90,
    )


@pytest.fixture
def app_config(security: SecurityConfig) -> AppConfig:
    config = AppConfig(security=security)
    set_config(config)
    yield config
    reset_config()


@pytest.fixture
def user_directory() -> InMemoryUserDirectory:
    directory = InMemoryUserDirectory()
    directory.add("1", "Ada Admin", "ada@example.com", password="correct horse")
    directory.add("2", "Bob Editor", "bob@example.com", password="battery staple")
    return directory


@pytest.fixture
def actor():
    """Run the test as actor 1 from a known address."""
    with request_context("1", "203.0.113.7") as identity:
        yield identity


@pytest.fixture
def container(db_session, user_directory, app_config, clock):
    """Fully wired vault sharing the test session."""
    from devnotes_vault.container import create_vault

    return create_vault(db_session, user_directory, config=app_config, clock=clock)


@pytest.fixture
def vault(container):
    return container.vault


@pytest.fixture
def store(container):
    return container.store


@pytest.fixture
def audit_log(container):
    return container.audit_log


@pytest.fixture
def verifier(container):
    return container.verifier


@pytest.fixture
def settings_service(container):
    return container.settings


@pytest.fixture
def codec(container):
    return container.codec


@pytest.fixture
def key_manager(container):
    return container.key_manager


@pytest.fixture
def enable_verification(settings_service, db_session):
    """Turn the re-authentication gate on."""
    settings_service.save_settings({"require_password_verification": True})
    db_session.commit()
