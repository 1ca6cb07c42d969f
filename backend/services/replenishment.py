"""
Replenishment Lifecycle Engine

Resupply requests from organizations to their provider:

    PENDING --fulfill--> APPROVED | FULFILLED
    any     --stock-->   STOCKED

Inventory side effects (always additive, in the same write as the status change):
- fulfill(..., org_confirmed=True) adds the delivered quantities
- stock(...) adds the delivered quantities, from any prior status
APPROVED or FULFILLED without confirmation never touch inventory, and
set_status/sign never do.

Applying the same confirmed delivery twice adds it twice: each call records
a physical delivery, there is no dedup.
"""

import logging
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from schemas_store import (
    DeliveredQuantities, OrgInventory, ReplenishmentAggregate, ReplenishmentRequest,
    ReplenishmentStatus, SignatureType, StockProposal,
)
from store_engine import DocumentStore
from store_errors import InvalidInput, InvalidItem, NotFound, OperationResult, UnknownOrg
from store_helpers import sort_newest_first, unique_time_id, utc_now_iso
from services.base import BaseRepository
from services.connectivity import Connectivity
from services.inventory import apply_delivery
from services.stock_status import REQUEST_ITEM_MAP, is_valid_request_item

logger = logging.getLogger(__name__)

FULFILL_STATUSES = (ReplenishmentStatus.APPROVED, ReplenishmentStatus.FULFILLED)

# Fallback for items outside the enumeration (older records, peer-created requests)
ITEM_KEYWORDS = (
    ('water', 'water'),
    ('food', 'food'),
    ('blanket', 'blankets'),
    ('med', 'medical_kits'),
)


def _whole_number(value) -> Optional[int]:
    """Accept ints, integral floats and digit strings; reject bools and the rest."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _delivered(delivered: Union[OrgInventory, dict, None]) -> DeliveredQuantities:
    if isinstance(delivered, OrgInventory):
        delivered = delivered.model_dump()
    try:
        return DeliveredQuantities.model_validate(delivered or {})
    except ValidationError as e:
        raise InvalidInput(f"Invalid delivered quantities: {e.errors()[0]['msg']}")


def inventory_key_for(item: str) -> Optional[str]:
    if item in REQUEST_ITEM_MAP:
        return REQUEST_ITEM_MAP[item]
    lowered = (item or '').lower()
    return next((key for keyword, key in ITEM_KEYWORDS if keyword in lowered), None)


class ReplenishmentEngine(BaseRepository):
    def __init__(self, store: DocumentStore, connectivity: Optional[Connectivity] = None):
        super().__init__(store)
        self.connectivity = connectivity or Connectivity()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, request_id: str) -> Optional[ReplenishmentRequest]:
        return self.store.load().find_replenishment(request_id)

    def list_all(self) -> List[ReplenishmentRequest]:
        return self.store.load().replenishment_requests

    def list_for_org(self, org_id: str) -> List[ReplenishmentRequest]:
        db = self.store.load()
        return sort_newest_first([r for r in db.replenishment_requests if r.org_id == org_id])

    def aggregate(self) -> List[ReplenishmentAggregate]:
        """
        Demand per item across all orgs, most outstanding quantity first.

        PENDING and APPROVED quantities are still owed (pending_quantity);
        FULFILLED and STOCKED count as fulfilled.
        """
        buckets: Dict[str, ReplenishmentAggregate] = {}
        for req in self.store.load().replenishment_requests:
            agg = buckets.setdefault(req.item, ReplenishmentAggregate(item=req.item))
            quantity = req.quantity or 0
            agg.total_requested += quantity
            if req.status == ReplenishmentStatus.PENDING:
                agg.pending += 1
                agg.pending_quantity += quantity
            elif req.status == ReplenishmentStatus.APPROVED:
                agg.approved += 1
                agg.pending_quantity += quantity
            elif req.status in (ReplenishmentStatus.FULFILLED, ReplenishmentStatus.STOCKED):
                agg.fulfilled += 1

        return sorted(buckets.values(), key=lambda a: a.pending_quantity, reverse=True)

    def aggregate_item(self, item: str) -> Optional[ReplenishmentAggregate]:
        return next((a for a in self.aggregate() if a.item == item), None)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def submit(self, org_id: str, item: str, quantity) -> OperationResult:
        """Create a PENDING request addressed to the org's replenishment provider."""
        if not is_valid_request_item(item):
            return OperationResult.fail(InvalidItem(f"'{item}' is not a requestable item"))
        quantity = _whole_number(quantity)
        if quantity is None or quantity <= 0:
            return OperationResult.fail(InvalidInput("Quantity must be a positive whole number"))

        db = self.store.load()
        org = db.find_org(org_id)
        if not org:
            return OperationResult.fail(UnknownOrg(f"Organization {org_id} not found"))

        request = ReplenishmentRequest(
            id=unique_time_id('RR-', (r.id for r in db.replenishment_requests)),
            org_id=org.id,
            org_name=org.name,
            item=item,
            quantity=quantity,
            status=ReplenishmentStatus.PENDING,
            timestamp=utc_now_iso(),
            provider=org.replenishment_provider or 'Unknown',
            synced=self.connectivity.is_online,
        )
        db.replenishment_requests.insert(0, request)
        logger.info(f"Replenishment request {request.id}: {quantity} x {item} for {org.id}")
        return self._commit(db, request)

    def fulfill(
        self,
        request_id: str,
        delivered: Union[OrgInventory, dict, None] = None,
        status=ReplenishmentStatus.FULFILLED,
        org_confirmed: bool = False,
    ) -> OperationResult:
        """
        Provider marks a request APPROVED or FULFILLED.

        Only when the organization confirms receipt (org_confirmed=True) are
        the delivered quantities added to its inventory.
        """
        try:
            status = ReplenishmentStatus(status)
        except ValueError:
            return OperationResult.fail(InvalidInput(f"Invalid status: {status}"))
        if status not in FULFILL_STATUSES:
            return OperationResult.fail(InvalidInput("Fulfillment status must be APPROVED or FULFILLED"))
        try:
            delivered = _delivered(delivered)
        except InvalidInput as e:
            return OperationResult.fail(e)

        db = self.store.load()
        request = db.find_replenishment(request_id)
        if not request:
            return OperationResult.fail(NotFound(f"Replenishment request {request_id} not found"))

        now = utc_now_iso()
        request.status = status
        request.fulfilled_at = now
        request.org_confirmed = org_confirmed
        if org_confirmed:
            request.org_confirmed_at = now
            apply_delivery(db, request.org_id, delivered)
            logger.info(f"Request {request_id} confirmed by {request.org_id}: +{delivered.total()} units")

        return self._commit(db, request, topic="inventory" if org_confirmed else "store")

    def stock(self, request_id: str, delivered: Union[OrgInventory, dict, None]) -> OperationResult:
        """Shelve a delivery: add it to inventory and close the request as STOCKED."""
        try:
            delivered = _delivered(delivered)
        except InvalidInput as e:
            return OperationResult.fail(e)

        db = self.store.load()
        request = db.find_replenishment(request_id)
        if not request:
            return OperationResult.fail(NotFound(f"Replenishment request {request_id} not found"))

        apply_delivery(db, request.org_id, delivered)
        request.stocked = True
        request.stocked_at = utc_now_iso()
        request.stocked_quantity = delivered.total()
        request.status = ReplenishmentStatus.STOCKED
        logger.info(f"Request {request_id} stocked: {request.stocked_quantity} units into {request.org_id}")
        return self._commit(db, request, topic="inventory")

    def propose_stock(self, request_id: str, quantity=None) -> OperationResult:
        """
        Preview stocking `quantity` units of the request's item (default: the
        requested quantity). The caller confirms, then passes
        `proposal.delivered` to stock().
        """
        db = self.store.load()
        request = db.find_replenishment(request_id)
        if not request:
            return OperationResult.fail(NotFound(f"Replenishment request {request_id} not found"))

        quantity = request.quantity if quantity is None else _whole_number(quantity)
        if quantity is None or quantity < 0:
            return OperationResult.fail(InvalidInput("Enter a valid non-negative quantity."))
        key = inventory_key_for(request.item)
        if not key:
            return OperationResult.fail(InvalidItem(f"No inventory counter for '{request.item}'"))

        delivered = DeliveredQuantities(**{key: quantity})
        before = db.inventory_for(request.org_id)
        return OperationResult.ok(StockProposal(
            request_id=request.id,
            org_id=request.org_id,
            item=request.item,
            inventory_key=key,
            delivered=delivered,
            before=before,
            after=before.plus(delivered),
        ))

    def set_status(self, request_id: str, status) -> OperationResult:
        """Administrative correction: overwrite status, no other side effects."""
        try:
            status = ReplenishmentStatus(status)
        except ValueError:
            return OperationResult.fail(InvalidInput(f"Invalid status: {status}"))

        db = self.store.load()
        request = db.find_replenishment(request_id)
        if not request:
            return OperationResult.fail(NotFound(f"Replenishment request {request_id} not found"))
        request.status = status
        return self._commit(db, request)

    def sign(self, request_id: str, signature: str, signature_type=SignatureType.RELEASE) -> OperationResult:
        """Attach the release (provider) or receipt (org) signature."""
        try:
            signature_type = SignatureType(signature_type)
        except ValueError:
            return OperationResult.fail(InvalidInput(f"Invalid signature type: {signature_type}"))
        if not signature:
            return OperationResult.fail(InvalidInput("Signature is required"))

        db = self.store.load()
        request = db.find_replenishment(request_id)
        if not request:
            return OperationResult.fail(NotFound(f"Replenishment request {request_id} not found"))

        now = utc_now_iso()
        if signature_type == SignatureType.RELEASE:
            request.signature = signature
            request.signed_at = now
        else:
            request.received_signature = signature
            request.received_at = now
        return self._commit(db, request)
