"""
Remote Peer Client

Talks to the REST mirror that acts as the remote system of record:

    GET/POST /orgs/{orgId}/inventory
    GET/POST /orgs/{orgId}/requests
    POST     /requests/{id}/status
    GET/POST /orgs/{orgId}/status
    GET/POST /orgs/{orgId}/broadcast
    POST     /users/{userId}/help

Every call raises RemotePeerError on transport or HTTP failure. The
fetch_* helpers fall back to the local store instead and report
from_cache=True, so screens keep working offline.
"""

import logging
from typing import Optional, Tuple

import httpx

from config import DEFAULT_REMOTE_TIMEOUT
from schemas_store import HelpRequestRecord, MemberStatus, OrgInventory

logger = logging.getLogger(__name__)


class RemotePeerError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemotePeerClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport

    def _request(self, method: str, path: str, payload: Optional[dict] = None):
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, path, json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise RemotePeerError(
                f"{method} {path} failed: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            )
        except httpx.HTTPError as e:
            raise RemotePeerError(f"{method} {path} failed: {e}")
        except ValueError as e:
            raise RemotePeerError(f"{method} {path} returned invalid JSON: {e}")

    # =========================================================================
    # INVENTORY
    # =========================================================================

    def get_inventory(self, org_id: str) -> OrgInventory:
        data = self._request("GET", f"/orgs/{org_id}/inventory")
        return OrgInventory.model_validate(data or {})

    def save_inventory(self, org_id: str, inventory: OrgInventory) -> dict:
        return self._request("POST", f"/orgs/{org_id}/inventory", inventory.model_dump(by_alias=True))

    # =========================================================================
    # REPLENISHMENT REQUESTS
    # =========================================================================

    def list_requests(self, org_id: str) -> list:
        return self._request("GET", f"/orgs/{org_id}/requests") or []

    def create_request(self, org_id: str, item: str, quantity: int,
                       provider: Optional[str] = None, org_name: Optional[str] = None) -> dict:
        if not item or not quantity:
            raise RemotePeerError("item and quantity required", status_code=400)
        return self._request("POST", f"/orgs/{org_id}/requests", {
            "item": item,
            "quantity": quantity,
            "provider": provider,
            "orgName": org_name,
        })

    def update_request_status(self, request_id: str, status: str,
                              delivered_quantity: Optional[int] = None) -> dict:
        if not status:
            raise RemotePeerError("status required", status_code=400)
        payload = {"status": status}
        if delivered_quantity is not None:
            payload["deliveredQuantity"] = delivered_quantity
        return self._request("POST", f"/requests/{request_id}/status", payload)

    # =========================================================================
    # MEMBER STATUS / BROADCAST / HELP
    # =========================================================================

    def get_member_status(self, org_id: str) -> dict:
        return self._request("GET", f"/orgs/{org_id}/status")

    def set_member_status(self, org_id: str, member_id: str, status: str,
                          name: Optional[str] = None) -> dict:
        if not member_id or status not in {s.value for s in MemberStatus}:
            raise RemotePeerError("memberId and a valid status required", status_code=400)
        return self._request("POST", f"/orgs/{org_id}/status", {
            "memberId": member_id,
            "name": name,
            "status": status,
        })

    def get_broadcast(self, org_id: str) -> dict:
        return self._request("GET", f"/orgs/{org_id}/broadcast")

    def set_broadcast(self, org_id: str, message: str) -> dict:
        return self._request("POST", f"/orgs/{org_id}/broadcast", {"message": message})

    def create_help_request(self, user_id: str, record: HelpRequestRecord) -> dict:
        return self._request("POST", f"/users/{user_id}/help", record.model_dump(mode='json', by_alias=True))

    # =========================================================================
    # CACHE FALLBACK
    # =========================================================================

    def fetch_inventory(self, org_id: str, local) -> Tuple[OrgInventory, bool]:
        """Peer inventory, or the local copy if the peer is unreachable."""
        try:
            return self.get_inventory(org_id), False
        except RemotePeerError as e:
            logger.warning(f"Using cached inventory for {org_id}: {e}")
            return local.get(org_id), True

    def fetch_member_status(self, org_id: str, local) -> Tuple[dict, bool]:
        """Peer member status ({counts, members}), or the locally derived one."""
        try:
            return self.get_member_status(org_id), False
        except RemotePeerError as e:
            logger.warning(f"Using cached member status for {org_id}: {e}")
            status = local.member_status(org_id)
            return {
                "counts": status["counts"],
                "members": [m.model_dump(mode='json', by_alias=True) for m in status["members"]],
            }, True
