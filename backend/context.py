"""
Engine context - the one object that wires the engine together.

Contains:
- EngineContext: store, connectivity flag and every repository/service
- open_context(): build it from Settings (or an existing SQLAlchemy engine)

All services share the injected DocumentStore; nothing is global, so tests
and a server can run independent engines side by side.

Usage:
    ctx = open_context(Settings(database_url="sqlite://"))
    ctx.replenishment.submit("CH-9921", "Water Cases", 10)
    ctx.close()
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from config import Settings
from database import make_engine
from store_engine import DocumentStore
from services.connectivity import Connectivity
from services.help_requests import HelpRequestRepository
from services.inventory import InventoryRepository
from services.organizations import OrganizationRepository
from services.remote_peer import RemotePeerClient
from services.replenishment import ReplenishmentEngine
from services.sync import SyncReconciler
from services.ticker import TickerService
from services.users import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    settings: Settings
    store: DocumentStore
    connectivity: Connectivity
    users: UserRepository
    organizations: OrganizationRepository
    inventory: InventoryRepository
    help_requests: HelpRequestRepository
    replenishment: ReplenishmentEngine
    ticker: TickerService
    sync: SyncReconciler
    peer: Optional[RemotePeerClient] = None

    def close(self):
        self.sync.detach()
        self.store.close()


def open_context(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> EngineContext:
    settings = settings or Settings()
    store = DocumentStore(engine or make_engine(settings.database_url), key=settings.store_key)
    store.open()

    connectivity = Connectivity(online=settings.start_online)
    peer = None
    if settings.remote_api_url:
        peer = RemotePeerClient(settings.remote_api_url, timeout=settings.remote_timeout)
        logger.info(f"Remote peer configured: {settings.remote_api_url}")

    sync = SyncReconciler(store, latency=settings.sync_latency, peer=peer)
    sync.attach(connectivity)

    return EngineContext(
        settings=settings,
        store=store,
        connectivity=connectivity,
        users=UserRepository(store),
        organizations=OrganizationRepository(store),
        inventory=InventoryRepository(store),
        help_requests=HelpRequestRepository(store, connectivity),
        replenishment=ReplenishmentEngine(store, connectivity),
        ticker=TickerService(store),
        sync=sync,
        peer=peer,
    )
