"""
Test fixtures for requirement sync unit tests.

This module provides shared test fixtures including database setup,
configuration, and the in-memory graph store.
"""

import pytest
from sqlalchemy.orm import Session

from requirement_sync_core.config import (
    AppConfig,
    DatabaseConfig,
    GraphStoreConfig,
    IssueTrackerConfig,
    OAuthConfig,
    PrincipalConfig,
    RequirementApiConfig,
    reset_config,
    set_config,
)
from requirement_sync_core.context.tenant_context import TenantContext
from requirement_sync_core.db import DatabaseManager, close_db, import_all_models
from requirement_sync_core.db.db_config import set_db_manager
from requirement_sync_core.exceptions import clear_correlation_id
from requirement_sync_core.services.credential_service import CredentialService
from requirement_sync_core.services.secret_store import SecretStore
from requirement_sync_core.utils.logger import reset_logging
from tests.fixtures.graph_store import InMemoryGraphStore


@pytest.fixture(autouse=True)
def app_config() -> AppConfig:
    """Isolated configuration with test endpoints and no fallback secret."""
    config = AppConfig(
        database=DatabaseConfig(connection_string="sqlite:///:memory:"),
        oauth=OAuthConfig(
            token_url="https://auth.test/oauth/token",
            audience="https://vitareq.api",
            fallback_client_id="fallback-client-id",
            fallback_client_secret=None,
        ),
        requirement_api=RequirementApiConfig(base_url="https://vitareq.test/"),
        graph=GraphStoreConfig(base_url="https://graph.test", api_token="graph-token"),
        issue_tracker=IssueTrackerConfig(site_url="", user=None, api_token=None),
        principal=PrincipalConfig(external_id="vitareq-user-1", email="owner@example.com"),
    )
    set_config(config)

    yield config

    reset_config()
    close_db()
    reset_logging()
    TenantContext.clear_current_tenant()
    clear_correlation_id()


@pytest.fixture(scope="function")
def db_manager() -> DatabaseManager:
    """SQLite in-memory database with the secret store tables."""
    import_all_models()
    manager = DatabaseManager(
        DatabaseConfig(connection_string="sqlite:///:memory:"), development_mode=True
    )
    manager.create_tables()
    set_db_manager(manager)

    yield manager

    manager.drop_tables()
    manager.close()
    set_db_manager(None)


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    session = db_manager.get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def secret_store(db_session) -> SecretStore:
    return SecretStore(session=db_session)


@pytest.fixture
def credential_service(secret_store) -> CredentialService:
    return CredentialService(secret_store=secret_store)


@pytest.fixture
def graph_store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def sample_credentials() -> dict:
    return {"clientId": "client-abc-123", "clientSecret": "supersecretvalue"}
