"""
Test fixtures shared by the unit tests.

Every test gets its own SQLite in-memory credential store with freshly
created tables; configuration, logging and correlation state are reset
around each test so environment changes do not leak.
"""

import pytest

from fitbit_token_bridge.config import DatabaseConfig, reset_config
from fitbit_token_bridge.constants import KeyingScheme
from fitbit_token_bridge.db import Base, DatabaseManager, import_all_models
from fitbit_token_bridge.exceptions import clear_correlation_id
from fitbit_token_bridge.schemas.token_record_schema import TokenFields
from fitbit_token_bridge.stores.credential_store import CredentialStore
from fitbit_token_bridge.utils.logger import reset_logging

FIXED_NOW_MS = 1_700_000_000_000


@pytest.fixture(autouse=True)
def reset_process_state():
    """Forget cached config, the function logger and the correlation id."""
    reset_config()
    reset_logging()
    clear_correlation_id()
    yield
    reset_config()
    reset_logging()
    clear_correlation_id()


@pytest.fixture
def db_config() -> DatabaseConfig:
    """SQLite in-memory database configuration for testing."""
    return DatabaseConfig(url="sqlite:///:memory:", echo=False)


@pytest.fixture
def db_manager(db_config: DatabaseConfig):
    """Database manager with all credential tables created."""
    import_all_models()
    manager = DatabaseManager(db_config)
    Base.metadata.create_all(manager.engine)

    yield manager

    Base.metadata.drop_all(manager.engine)
    manager.close()


@pytest.fixture
def session_factory(db_manager: DatabaseManager):
    return db_manager.session_factory


@pytest.fixture
def store(session_factory) -> CredentialStore:
    """Credential store using the current keying scheme."""
    return CredentialStore(session_factory)


@pytest.fixture
def legacy_store(session_factory) -> CredentialStore:
    """Credential store over the same tables using the legacy keying scheme."""
    return CredentialStore(session_factory, keying_scheme=KeyingScheme.LEGACY)


@pytest.fixture
def clock():
    """Fixed clock returning FIXED_NOW_MS."""
    return lambda: FIXED_NOW_MS


@pytest.fixture
def token_fields() -> TokenFields:
    return TokenFields(access_token="a", refresh_token="r", expires_at=100)
