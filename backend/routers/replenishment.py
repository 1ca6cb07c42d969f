"""
Replenishment router - resupply requests from organizations to providers

    POST /                         submit (PENDING)
    POST /{id}/fulfill             provider marks APPROVED/FULFILLED
    GET  /{id}/stock-preview       what stocking would add
    POST /{id}/stock               shelve the delivery (STOCKED)
    POST /{id}/status              administrative status overwrite
    POST /{id}/sign                release / receipt signature
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from context import EngineContext
from schemas_store import ReplenishmentStatus, SignatureType, StoreModel
from routers.helpers import get_context, raise_for_result

router = APIRouter()


class ReplenishmentCreate(StoreModel):
    org_id: str
    item: str
    quantity: Any       # validated by the engine: positive whole number


class FulfillRequest(StoreModel):
    delivered: Dict[str, Any] = {}
    status: str = ReplenishmentStatus.FULFILLED.value
    org_confirmed: bool = False


class StockRequest(StoreModel):
    delivered: Dict[str, Any]


class StatusUpdate(StoreModel):
    status: str


class SignRequest(StoreModel):
    signature: str
    signature_type: str = SignatureType.RELEASE.value


@router.get("")
async def list_requests(org_id: Optional[str] = None, ctx: EngineContext = Depends(get_context)):
    if org_id:
        return ctx.replenishment.list_for_org(org_id)
    return ctx.replenishment.list_all()


@router.get("/aggregate")
async def aggregate_requests(ctx: EngineContext = Depends(get_context)):
    """Demand per item across all orgs, most outstanding first."""
    return ctx.replenishment.aggregate()


@router.post("")
async def submit_request(data: ReplenishmentCreate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.replenishment.submit(data.org_id, data.item, data.quantity))


@router.get("/{request_id}")
async def get_request(request_id: str, ctx: EngineContext = Depends(get_context)):
    request = ctx.replenishment.get(request_id)
    if not request:
        raise HTTPException(status_code=404, detail="Replenishment request not found")
    return request


@router.post("/{request_id}/fulfill")
async def fulfill_request(request_id: str, data: FulfillRequest, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.replenishment.fulfill(
        request_id, data.delivered, status=data.status, org_confirmed=data.org_confirmed,
    ))


@router.get("/{request_id}/stock-preview")
async def preview_stock(request_id: str, quantity: Optional[int] = None, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.replenishment.propose_stock(request_id, quantity))


@router.post("/{request_id}/stock")
async def stock_request(request_id: str, data: StockRequest, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.replenishment.stock(request_id, data.delivered))


@router.post("/{request_id}/status")
async def set_request_status(request_id: str, data: StatusUpdate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.replenishment.set_status(request_id, data.status))


@router.post("/{request_id}/sign")
async def sign_request(request_id: str, data: SignRequest, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.replenishment.sign(request_id, data.signature, data.signature_type))
