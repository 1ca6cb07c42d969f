"""
Offline Sync Reconciler

Records created while offline carry synced=False. When connectivity comes
back, sync_pending() marks them synchronized:

- without a peer: waits out a simulated backend round trip, then flips them
- with a RemotePeerClient: pushes each record, flips only what the peer accepted

Calling it with nothing pending costs nothing (no delay, no write). A call
made while another is in flight joins it instead of syncing twice.
"""

import asyncio
import logging
from typing import Callable, Optional, Set, Tuple

from config import DEFAULT_SYNC_LATENCY
from schemas_store import Store
from store_engine import DocumentStore
from services.connectivity import Connectivity
from services.remote_peer import RemotePeerClient, RemotePeerError

logger = logging.getLogger(__name__)

HELP = 'help'
SUPPLY = 'supply'


def _unsynced(db: Store):
    return (
        [r for r in db.requests if not r.synced],
        [r for r in db.replenishment_requests if not r.synced],
    )


class SyncReconciler:
    def __init__(
        self,
        store: DocumentStore,
        latency: float = DEFAULT_SYNC_LATENCY,
        peer: Optional[RemotePeerClient] = None,
    ):
        self.store = store
        self.latency = latency
        self.peer = peer
        self._in_flight: Optional[asyncio.Future] = None
        self._background: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def pending_count(self) -> int:
        help_pending, supply_pending = _unsynced(self.store.load())
        return len(help_pending) + len(supply_pending)

    async def sync_pending(self) -> int:
        """Flip unsynced records to synced. Returns how many were flipped."""
        if self._in_flight is not None and not self._in_flight.done():
            logger.debug("Sync already in progress; joining it")
            await asyncio.shield(self._in_flight)
            return 0

        self._in_flight = asyncio.ensure_future(self._sync())
        try:
            return await self._in_flight
        finally:
            self._in_flight = None

    async def _sync(self) -> int:
        help_pending, supply_pending = _unsynced(self.store.load())
        if not help_pending and not supply_pending:
            return 0

        accepted: Optional[Set[Tuple[str, str]]] = None
        if self.peer:
            accepted = await self._push(help_pending, supply_pending)
        else:
            await asyncio.sleep(self.latency)

        # Reload: foreground writes may have landed during the round trip
        db = self.store.load()
        count = 0
        for kind, records in ((HELP, db.requests), (SUPPLY, db.replenishment_requests)):
            for record in records:
                if record.synced:
                    continue
                if accepted is not None and (kind, record.id) not in accepted:
                    continue
                record.synced = True
                count += 1

        if count == 0:
            return 0
        if not self.store.save(db, topic="sync"):
            reason = self.store.last_error.message if self.store.last_error else "unknown error"
            logger.warning(f"Sync of {count} records not saved: {reason}")
            if accepted:
                pushed = ", ".join(sorted(record_id for _, record_id in accepted))
                logger.warning(
                    f"Peer already holds {len(accepted)} records ({pushed}); "
                    f"they stay unsynced locally and will be pushed again on the next sync"
                )
            return 0

        logger.info(f"Synced {count} pending records")
        return count

    async def _push(self, help_pending, supply_pending) -> Set[Tuple[str, str]]:
        accepted = set()
        for record in help_pending:
            try:
                await asyncio.to_thread(self.peer.create_help_request, record.user_id, record)
                accepted.add((HELP, record.id))
            except RemotePeerError as e:
                logger.warning(f"Help request {record.id} not synced: {e}")
        for request in supply_pending:
            try:
                await asyncio.to_thread(
                    self.peer.create_request,
                    request.org_id, request.item, request.quantity, request.provider, request.org_name,
                )
                accepted.add((SUPPLY, request.id))
            except RemotePeerError as e:
                logger.warning(f"Replenishment request {request.id} not synced: {e}")
        return accepted

    # =========================================================================
    # CONNECTIVITY HOOK
    # =========================================================================

    def attach(self, connectivity: Connectivity):
        """Run a sync on every offline -> online transition."""
        self.detach()
        self._unsubscribe = connectivity.on_change(self._on_connectivity_change)

    def detach(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_connectivity_change(self, online: bool):
        if not online:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.sync_pending())
            return
        self._background = loop.create_task(self.sync_pending())
        self._background.add_done_callback(_log_background_result)


def _log_background_result(task: asyncio.Task):
    if task.cancelled():
        logger.info("Reconnect sync cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Reconnect sync failed: {error!r}")
        return
    logger.debug(f"Reconnect sync finished ({task.result()} records)")
