"""
Inventory repository.

Counters are sanitized on every write (non-negative integers). Saving a
full inventory is a two-step flow: `propose` returns the diff for the UI
to confirm, `commit` writes it.
"""

import logging
from typing import Union

from pydantic import ValidationError

from schemas_store import (
    INVENTORY_FIELDS, InventoryProposal, InventoryUpdate, OrgInventory, Store,
)
from store_errors import InvalidInput, OperationResult, StaleWrite
from services.base import BaseRepository

logger = logging.getLogger(__name__)


def coerce_inventory(inventory: Union[OrgInventory, dict]) -> OrgInventory:
    """Sanitize any inventory-shaped input. Raises InvalidInput on unknown keys."""
    if isinstance(inventory, OrgInventory):
        inventory = inventory.model_dump()
    try:
        update = InventoryUpdate.model_validate(inventory or {})
    except ValidationError as e:
        raise InvalidInput(f"Invalid inventory: {e.errors()[0]['msg']}")
    return OrgInventory(**update.model_dump())


def apply_delivery(db: Store, org_id: str, delivered: OrgInventory) -> OrgInventory:
    """Add delivered quantities to an org's inventory (in memory). Never overwrites."""
    updated = db.inventory_for(org_id).plus(delivered)
    db.inventories[org_id] = updated
    return updated


class InventoryRepository(BaseRepository):

    def get(self, org_id: str) -> OrgInventory:
        """Inventory for an org; all zeros if it has none."""
        return self.store.load().inventory_for(org_id)

    def set(self, org_id: str, inventory: Union[OrgInventory, dict]) -> OperationResult:
        if not org_id:
            return OperationResult.fail(InvalidInput("Organization id is required"))
        try:
            sanitized = coerce_inventory(inventory)
        except InvalidInput as e:
            return OperationResult.fail(e)

        db = self.store.load()
        db.inventories[org_id] = sanitized
        return self._commit(db, sanitized, topic="inventory")

    # =========================================================================
    # PROPOSE / COMMIT
    # =========================================================================

    def propose(self, org_id: str, inventory: Union[OrgInventory, dict]) -> OperationResult:
        """Compute what saving `inventory` would change. Writes nothing."""
        if not org_id:
            return OperationResult.fail(InvalidInput("Organization id is required"))
        try:
            after = coerce_inventory(inventory)
        except InvalidInput as e:
            return OperationResult.fail(e)

        before = self.get(org_id)
        changes = {
            field: getattr(after, field) - getattr(before, field)
            for field in INVENTORY_FIELDS
            if getattr(after, field) != getattr(before, field)
        }
        return OperationResult.ok(InventoryProposal(org_id=org_id, before=before, after=after, changes=changes))

    def commit(self, proposal: InventoryProposal) -> OperationResult:
        """Write a confirmed proposal, unless the inventory moved in the meantime."""
        db = self.store.load()
        current = db.inventory_for(proposal.org_id)
        if current != proposal.before:
            logger.info(f"Inventory proposal for {proposal.org_id} is stale")
            return OperationResult.fail(StaleWrite(
                "Inventory changed since these counts were reviewed; review again."
            ))
        db.inventories[proposal.org_id] = coerce_inventory(proposal.after)
        return self._commit(db, db.inventories[proposal.org_id], topic="inventory")
