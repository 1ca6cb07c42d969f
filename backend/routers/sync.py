"""
Sync router - connectivity flag, offline reconciliation, store maintenance
"""

from fastapi import APIRouter, Depends, HTTPException

from context import EngineContext
from schemas_store import StoreModel
from routers.helpers import get_context

router = APIRouter()


class ConnectivityUpdate(StoreModel):
    online: bool


@router.get("/status")
async def sync_status(ctx: EngineContext = Depends(get_context)):
    return {
        "online": ctx.connectivity.is_online,
        "pending": ctx.sync.pending_count(),
        "revision": ctx.store.current_revision(),
        "remotePeer": ctx.settings.remote_api_url,
    }


@router.post("/connectivity")
async def set_connectivity(data: ConnectivityUpdate, ctx: EngineContext = Depends(get_context)):
    """Going back online schedules a sync in the background."""
    ctx.connectivity.set_online(data.online)
    return {"online": ctx.connectivity.is_online}


@router.post("")
async def sync_now(ctx: EngineContext = Depends(get_context)):
    synced = await ctx.sync.sync_pending()
    return {"synced": synced, "pending": ctx.sync.pending_count()}


@router.post("/poll")
async def poll_changes(ctx: EngineContext = Depends(get_context)):
    """Check for writes by other processes sharing the database."""
    return {"changed": ctx.store.poll_changes(), "revision": ctx.store.current_revision()}


@router.post("/reset")
async def reset_store(ctx: EngineContext = Depends(get_context)):
    """Discard all local state. The next read re-seeds the demo dataset."""
    if not ctx.store.reset():
        raise HTTPException(status_code=503, detail="Store could not be reset")
    return {"status": "ok"}
