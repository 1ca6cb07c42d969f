"""
Help requests router - household intake, triage and status checks
"""

from fastapi import APIRouter, Depends, HTTPException

from context import EngineContext
from schemas_store import HelpRequestData, StoreModel
from services.stock_status import calculate_priority
from routers.helpers import get_context, raise_for_result

router = APIRouter()


class PingResponse(StoreModel):
    is_safe: bool


class LocationUpdate(StoreModel):
    location: str


class StatusUpdate(StoreModel):
    status: str


@router.post("")
async def submit_help_request(data: HelpRequestData, ctx: EngineContext = Depends(get_context)):
    """File a request for the logged-in user (or guest). Priority is computed here."""
    return raise_for_result(ctx.help_requests.submit(data))


@router.post("/priority")
async def preview_priority(data: HelpRequestData):
    """Triage without filing, for the wizard's summary step."""
    return {"priority": calculate_priority(data)}


@router.get("/active")
async def active_request(ctx: EngineContext = Depends(get_context)):
    return ctx.help_requests.active_request()


@router.get("/last-location")
async def last_known_location(ctx: EngineContext = Depends(get_context)):
    return ctx.help_requests.last_known_location()


@router.post("/ping-response")
async def respond_to_ping(data: PingResponse, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.help_requests.respond_to_ping(data.is_safe))


@router.get("/user/{user_id}")
async def list_for_user(user_id: str, ctx: EngineContext = Depends(get_context)):
    return ctx.help_requests.list_for_user(user_id)


@router.post("/{request_id}/location")
async def update_location(request_id: str, data: LocationUpdate, ctx: EngineContext = Depends(get_context)):
    if not data.location.strip():
        raise HTTPException(status_code=400, detail="Location is required")
    return raise_for_result(ctx.help_requests.update_location(request_id, data.location))


@router.post("/{request_id}/status")
async def update_status(request_id: str, data: StatusUpdate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.help_requests.update_status(request_id, data.status))
