"""
Test configuration and fixtures.

Provides:
- In-memory SQLite DocumentStore (fresh per test, seeded on first load)
- Repositories wired to that store
- EngineContext and a FastAPI TestClient running the full lifespan
"""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from context import open_context
from database import make_engine
from main import create_app
from store_engine import DocumentStore
from services.connectivity import Connectivity
from services.help_requests import HelpRequestRepository
from services.inventory import InventoryRepository
from services.organizations import OrganizationRepository
from services.replenishment import ReplenishmentEngine
from services.ticker import TickerService
from services.users import UserRepository


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url="sqlite://",
        store_key="aera_test_db",
        sync_latency=0,
        remote_api_url=None,
        start_online=True,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def store():
    store = DocumentStore(make_engine("sqlite://"), key="aera_test_db")
    store.open()
    yield store
    store.close()


@pytest.fixture
def connectivity():
    return Connectivity(online=True)


@pytest.fixture
def users(store):
    return UserRepository(store)


@pytest.fixture
def orgs(store):
    return OrganizationRepository(store)


@pytest.fixture
def inventory(store):
    return InventoryRepository(store)


@pytest.fixture
def help_requests(store, connectivity):
    return HelpRequestRepository(store, connectivity)


@pytest.fixture
def replenishment(store, connectivity):
    return ReplenishmentEngine(store, connectivity)


@pytest.fixture
def ticker(store):
    return TickerService(store)


# =============================================================================
# Engine / API Fixtures
# =============================================================================

@pytest.fixture
def ctx():
    context = open_context(make_settings())
    yield context
    context.close()


@pytest.fixture
def client():
    app = create_app(make_settings())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def settings_factory():
    """Build Settings for an isolated in-memory engine, with overrides."""
    return make_settings
