"""
WebSocket endpoint for real-time store updates.

/ws/store - pushes a message after every committed write:
    - connected:     sent once on connect, with the current revision
    - store_changed: {topic, revision, source} (source "external" when
                     another process wrote the shared database)
    - ping/pong:     keepalive in both directions

Clients re-read whatever they display when store_changed arrives; the
event carries no data.
"""

import asyncio
import json
import logging
from typing import Callable, Optional, Set

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from store_engine import ChangeEvent, DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()

# Server-side ping interval (seconds) - keep under common proxy idle timeouts
SERVER_PING_INTERVAL = 30


class StoreEventHub:
    """Connection pool for /ws/store, fed by DocumentStore.on_change."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def attach(self, store: DocumentStore, loop: asyncio.AbstractEventLoop):
        self.detach()
        self._loop = loop
        self._unsubscribe = store.on_change(self._on_store_change)

    def detach(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self._loop = None

    def _on_store_change(self, event: ChangeEvent):
        # Saves can happen off the event loop (threadpool, sync scripts)
        if self._loop is None or self._loop.is_closed():
            return
        message = {
            "type": "store_changed",
            "topic": event.topic,
            "revision": event.revision,
            "source": event.source,
        }
        asyncio.run_coroutine_threadsafe(self.broadcast(message), self._loop)

    async def add(self, websocket: WebSocket):
        async with self._lock:
            self._connections.add(websocket)
            logger.info(f"WebSocket /ws/store connected (total: {len(self._connections)})")

    async def remove(self, websocket: WebSocket):
        async with self._lock:
            self._connections.discard(websocket)
            logger.info(f"WebSocket /ws/store disconnected (total: {len(self._connections)})")

    async def broadcast(self, message: dict):
        async with self._lock:
            connections = self._connections.copy()

        if not connections:
            return

        # Serialize once
        message_json = json.dumps(message)

        failed = []
        for websocket in connections:
            try:
                await websocket.send_text(message_json)
            except Exception as e:
                logger.warning(f"Failed to send to /ws/store WebSocket: {e}")
                failed.append(websocket)

        if failed:
            async with self._lock:
                for ws in failed:
                    self._connections.discard(ws)


# =============================================================================
# Ping/pong handlers
# =============================================================================

async def _server_ping_loop(websocket: WebSocket, stop_event: asyncio.Event):
    """Send periodic pings from server to keep connection alive through proxies"""
    try:
        while not stop_event.is_set():
            await asyncio.sleep(SERVER_PING_INTERVAL)
            if stop_event.is_set():
                break
            try:
                await websocket.send_json({"type": "ping"})
            except Exception:
                break
    except asyncio.CancelledError:
        pass


async def _receive_loop(websocket: WebSocket, stop_event: asyncio.Event):
    try:
        while not stop_event.is_set():
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON received: {e}")
                continue
            if message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Receive loop error: {e}")
    finally:
        stop_event.set()


# =============================================================================
# Endpoints
# =============================================================================

@router.websocket("/ws/store")
async def websocket_store(websocket: WebSocket):
    hub: StoreEventHub = websocket.app.state.hub
    context = websocket.app.state.context

    await websocket.accept()
    await hub.add(websocket)

    try:
        await websocket.send_json({
            "type": "connected",
            "revision": context.store.current_revision(),
        })
    except Exception as e:
        logger.error(f"Failed to send connection confirmation: {e}")
        await hub.remove(websocket)
        return

    stop_event = asyncio.Event()
    ping_task = asyncio.create_task(_server_ping_loop(websocket, stop_event))
    receive_task = asyncio.create_task(_receive_loop(websocket, stop_event))

    try:
        # Either task finishing means the client went away
        done, pending = await asyncio.wait(
            [ping_task, receive_task],
            return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        stop_event.set()
        ping_task.cancel()
        receive_task.cancel()
        await hub.remove(websocket)


@router.get("/ws/status")
async def websocket_status(request: Request):
    """Connection count (for monitoring)"""
    return {"store": request.app.state.hub.connection_count}
