"""
Tests for the offline sync reconciler.
"""

import asyncio
import logging

import httpx
import pytest

from schemas_store import HelpRequestData
from services.remote_peer import RemotePeerClient
from services.sync import SyncReconciler


def _go_offline_and_file(connectivity, help_requests, replenishment):
    connectivity.set_online(False)
    help_requests.submit(HelpRequestData(is_safe=True, location='Library'))
    replenishment.submit('CH-9921', 'Blankets', 40)


@pytest.mark.asyncio
async def test_nothing_pending_returns_zero_without_write(store):
    store.load()
    reconciler = SyncReconciler(store, latency=5)

    synced = await asyncio.wait_for(reconciler.sync_pending(), timeout=1)
    assert synced == 0
    assert store.current_revision() == 1


@pytest.mark.asyncio
async def test_sync_flips_unsynced_records(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    reconciler = SyncReconciler(store, latency=0)
    assert reconciler.pending_count() == 2

    events = []
    store.on_change(events.append)

    assert await reconciler.sync_pending() == 2
    db = store.load()
    assert all(r.synced for r in db.requests)
    assert all(r.synced for r in db.replenishment_requests)
    assert [e.topic for e in events] == ["sync"]

    assert await reconciler.sync_pending() == 0


@pytest.mark.asyncio
async def test_concurrent_call_joins_in_flight_sync(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    reconciler = SyncReconciler(store, latency=0.05)

    first, second = await asyncio.gather(reconciler.sync_pending(), reconciler.sync_pending())
    assert (first, second) == (2, 0)
    assert reconciler.pending_count() == 0


@pytest.mark.asyncio
async def test_failed_save_returns_zero(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    reconciler = SyncReconciler(store, latency=0)

    store.save = lambda db, topic="store": False
    assert await reconciler.sync_pending() == 0


@pytest.mark.asyncio
async def test_reconnect_triggers_sync(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    reconciler = SyncReconciler(store, latency=0)
    reconciler.attach(connectivity)

    connectivity.set_online(True)
    await reconciler._background

    assert reconciler.pending_count() == 0


def test_reconnect_without_event_loop_syncs_inline(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    reconciler = SyncReconciler(store, latency=0)
    reconciler.attach(connectivity)

    connectivity.set_online(True)
    assert reconciler.pending_count() == 0


def test_detach_stops_reconnect_sync(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    reconciler = SyncReconciler(store, latency=0)
    reconciler.attach(connectivity)
    reconciler.detach()

    connectivity.set_online(True)
    assert reconciler.pending_count() == 2


# =============================================================================
# With a remote peer
# =============================================================================

@pytest.mark.asyncio
async def test_peer_sync_flips_only_accepted_records(store, connectivity, help_requests, replenishment):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    pushed = []

    def handler(request: httpx.Request) -> httpx.Response:
        pushed.append(request.url.path)
        if '/users/' in request.url.path:
            return httpx.Response(201, json={"ok": True})
        return httpx.Response(500, json={"error": "down"})

    peer = RemotePeerClient("http://peer.test/api", transport=httpx.MockTransport(handler))
    reconciler = SyncReconciler(store, latency=0, peer=peer)

    assert await reconciler.sync_pending() == 1
    db = store.load()
    assert db.requests[0].synced is True
    assert db.replenishment_requests[0].synced is False
    assert pushed == ['/api/users/guest/help', '/api/orgs/CH-9921/requests']


@pytest.mark.asyncio
async def test_save_failure_after_peer_push_is_logged(store, connectivity, help_requests, replenishment, caplog):
    _go_offline_and_file(connectivity, help_requests, replenishment)
    peer = RemotePeerClient(
        "http://peer.test/api",
        transport=httpx.MockTransport(lambda request: httpx.Response(201, json={"ok": True})),
    )
    reconciler = SyncReconciler(store, latency=0, peer=peer)
    store.save = lambda db, topic="store": False

    caplog.set_level(logging.WARNING, logger="services.sync")
    assert await reconciler.sync_pending() == 0
    assert "Peer already holds 2 records" in caplog.text
    assert reconciler.pending_count() == 2


@pytest.mark.asyncio
async def test_reconnect_sync_error_is_logged(store, connectivity, caplog):
    reconciler = SyncReconciler(store, latency=0)

    async def broken_sync():
        raise RuntimeError("peer thread blew up")

    reconciler._sync = broken_sync
    reconciler.attach(connectivity)
    connectivity.set_online(False)

    caplog.set_level(logging.ERROR, logger="services.sync")
    connectivity.set_online(True)
    await asyncio.wait([reconciler._background])
    await asyncio.sleep(0)

    assert "Reconnect sync failed" in caplog.text
    assert "peer thread blew up" in caplog.text
