"""
Users router - profiles, login session, activation, status pings
"""

from fastapi import APIRouter, Depends, HTTPException

from context import EngineContext
from schemas_store import StoreModel, UserProfile, UserProfileUpdate
from routers.helpers import get_context, raise_for_result

router = APIRouter()


class LoginRequest(StoreModel):
    identifier: str     # phone number or email


class ActiveUpdate(StoreModel):
    active: bool


@router.get("")
async def list_users(ctx: EngineContext = Depends(get_context)):
    return ctx.users.list_all()


@router.post("")
async def upsert_user(profile: UserProfile, ctx: EngineContext = Depends(get_context)):
    """Create or replace a profile; it becomes the current session."""
    return raise_for_result(ctx.users.upsert(profile))


@router.get("/session")
async def get_session(ctx: EngineContext = Depends(get_context)):
    return {
        "hasSession": ctx.users.has_session(),
        "profile": ctx.users.current_profile(),
    }


@router.post("/login")
async def login(data: LoginRequest, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.users.login(data.identifier))


@router.post("/logout")
async def logout(ctx: EngineContext = Depends(get_context)):
    raise_for_result(ctx.users.logout())
    return {"status": "ok"}


@router.get("/{user_id}")
async def get_user(user_id: str, ctx: EngineContext = Depends(get_context)):
    user = ctx.users.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}")
async def update_user(user_id: str, data: UserProfileUpdate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.users.update(user_id, data))


@router.post("/{user_id}/active")
async def set_user_active(user_id: str, data: ActiveUpdate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.users.set_active(user_id, data.active))


@router.post("/{user_id}/ping")
async def ping_user(user_id: str, ctx: EngineContext = Depends(get_context)):
    """Ask a member to check in."""
    return raise_for_result(ctx.users.send_ping(user_id))
