"""
AERA - Emergency Response Data Engine
Local-first store for households, organizations, supplies and help requests
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from config import Settings
from context import open_context
from routers import help_requests, organizations, replenishment, sync, ticker, users, websocket
from routers.websocket import StoreEventHub

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the API around a fresh engine context (opened on startup)."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("AERA engine starting up...")
        context = open_context(settings, engine=engine)
        app.state.context = context
        app.state.hub.attach(context.store, asyncio.get_running_loop())
        yield
        # Shutdown
        logger.info("AERA engine shutting down...")
        app.state.hub.detach()
        context.close()

    app = FastAPI(
        title="AERA API",
        description="Emergency response data engine",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.hub = StoreEventHub()

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Tighten in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(organizations.router, prefix="/api/orgs", tags=["Organizations"])
    app.include_router(replenishment.router, prefix="/api/replenishment", tags=["Replenishment"])
    app.include_router(help_requests.router, prefix="/api/help", tags=["Help Requests"])
    app.include_router(ticker.router, prefix="/api/ticker", tags=["Ticker"])
    app.include_router(sync.router, prefix="/api/sync", tags=["Sync"])
    app.include_router(websocket.router, tags=["WebSocket"])

    @app.get("/")
    async def root():
        return {"status": "ok", "service": "AERA API", "version": VERSION}

    @app.get("/health")
    async def health():
        context = app.state.context
        revision = context.store.current_revision()
        return {
            "status": "healthy" if revision is not None else "degraded",
            "online": context.connectivity.is_online,
            "revision": revision,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
