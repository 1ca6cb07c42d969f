"""
Organizations router - profiles, inventory, members, scoped broadcast

Inventory saves follow the preview/commit pattern:
    POST /{org_id}/inventory/preview  -> InventoryProposal (nothing written)
    POST /{org_id}/inventory/commit   -> writes the reviewed proposal

When a remote peer is configured, inventory and member status are read
from it, falling back to the local store (fromCache=true) when it is down.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from context import EngineContext
from schemas_store import (
    InventoryProposal, OrgType, OrganizationProfile, OrganizationUpdate, StoreModel,
)
from services.stock_status import get_inventory_statuses, get_low_stock_recommendations
from routers.helpers import get_context, raise_for_result

router = APIRouter()


class ActiveUpdate(StoreModel):
    active: bool


class BroadcastRequest(StoreModel):
    message: str
    approved: bool = True   # Moderation verdict


def _require_org(ctx: EngineContext, org_id: str) -> OrganizationProfile:
    org = ctx.organizations.get(org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


# =============================================================================
# PROFILES
# =============================================================================

@router.get("")
async def list_organizations(ctx: EngineContext = Depends(get_context)):
    return ctx.organizations.list_all()


@router.post("")
async def upsert_organization(org: OrganizationProfile, ctx: EngineContext = Depends(get_context)):
    """Create (empty id) or replace an organization."""
    return raise_for_result(ctx.organizations.upsert(org))


@router.get("/generate-id")
async def generate_org_id(type: OrgType = OrgType.COMMUNITY_CENTER, ctx: EngineContext = Depends(get_context)):
    org_id = ctx.organizations.generate_id(type)
    if not org_id:
        raise HTTPException(status_code=409, detail="No free community codes left")
    return {"id": org_id}


@router.get("/{org_id}")
async def get_organization(org_id: str, ctx: EngineContext = Depends(get_context)):
    return _require_org(ctx, org_id)


@router.patch("/{org_id}")
async def update_organization(org_id: str, data: OrganizationUpdate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.organizations.update(org_id, data))


@router.post("/{org_id}/active")
async def set_organization_active(org_id: str, data: ActiveUpdate, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.organizations.set_active(org_id, data.active))


# =============================================================================
# INVENTORY
# =============================================================================

@router.get("/{org_id}/inventory")
async def get_inventory(org_id: str, ctx: EngineContext = Depends(get_context)):
    """Counters plus HIGH/MEDIUM/LOW status per category and resupply suggestions."""
    org = _require_org(ctx, org_id)
    if ctx.peer:
        inventory, from_cache = ctx.peer.fetch_inventory(org_id, ctx.inventory)
    else:
        inventory, from_cache = ctx.inventory.get(org_id), False

    population = ctx.organizations.coverage_base(org_id)
    statuses = get_inventory_statuses(inventory, population)
    return {
        "orgId": org_id,
        "inventory": inventory,
        "registeredPopulation": org.registered_population,
        "coverageBase": population,
        "statuses": {
            field: {"level": status.level.value, "coverage": status.coverage}
            for field, status in statuses.items()
        },
        "recommendations": [
            {
                "item": r.item,
                "inventoryKey": r.inventory_key,
                "current": r.current,
                "recommended": r.recommended,
            }
            for r in get_low_stock_recommendations(inventory, population)
        ],
        "fromCache": from_cache,
    }


@router.put("/{org_id}/inventory")
async def set_inventory(org_id: str, inventory: Dict[str, Any] = Body(...), ctx: EngineContext = Depends(get_context)):
    """Overwrite counters directly (no review step)."""
    return raise_for_result(ctx.inventory.set(org_id, inventory))


@router.post("/{org_id}/inventory/preview")
async def preview_inventory(org_id: str, inventory: Dict[str, Any] = Body(...), ctx: EngineContext = Depends(get_context)):
    """Show what saving these counts would change. Nothing is written."""
    _require_org(ctx, org_id)
    return raise_for_result(ctx.inventory.propose(org_id, inventory))


@router.post("/{org_id}/inventory/commit")
async def commit_inventory(org_id: str, proposal: InventoryProposal, ctx: EngineContext = Depends(get_context)):
    if proposal.org_id != org_id:
        raise HTTPException(status_code=400, detail="Proposal belongs to another organization")
    return raise_for_result(ctx.inventory.commit(proposal))


# =============================================================================
# MEMBERS
# =============================================================================

@router.get("/{org_id}/members")
async def list_members(org_id: str, ctx: EngineContext = Depends(get_context)):
    _require_org(ctx, org_id)
    return ctx.organizations.members(org_id)


@router.get("/{org_id}/status")
async def member_status(org_id: str, ctx: EngineContext = Depends(get_context)):
    """SAFE/DANGER/UNKNOWN counts with the member list."""
    _require_org(ctx, org_id)
    if ctx.peer:
        status, from_cache = ctx.peer.fetch_member_status(org_id, ctx.organizations)
        return {**status, "fromCache": from_cache}
    return {**ctx.organizations.member_status(org_id), "fromCache": False}


# =============================================================================
# BROADCAST
# =============================================================================

@router.post("/{org_id}/broadcast")
async def set_broadcast(org_id: str, data: BroadcastRequest, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.ticker.set_org_broadcast(org_id, data.message, approved=data.approved))


@router.delete("/{org_id}/broadcast")
async def clear_broadcast(org_id: str, ctx: EngineContext = Depends(get_context)):
    return raise_for_result(ctx.ticker.clear_org_broadcast(org_id))
