"""
Ticker router - the scrolling alert line

Org-scoped broadcasts are set under /api/orgs/{org_id}/broadcast.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from context import EngineContext
from schemas_store import StoreModel
from routers.helpers import get_context, raise_for_result

router = APIRouter()


class SystemTickerUpdate(StoreModel):
    message: str = ""


@router.get("")
async def get_ticker(user_id: Optional[str] = None, ctx: EngineContext = Depends(get_context)):
    """Resolved ticker text for a user (default: the logged-in one)."""
    profile = ctx.users.get(user_id) if user_id else ctx.users.current_profile()
    return {"message": ctx.ticker.resolve(profile)}


@router.put("/system")
async def set_system_ticker(data: SystemTickerUpdate, ctx: EngineContext = Depends(get_context)):
    """Admin-wide alert. Empty message clears it."""
    raise_for_result(ctx.ticker.set_system_ticker(data.message))
    return {"message": ctx.ticker.resolve(ctx.users.current_profile())}
