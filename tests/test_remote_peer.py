"""
Tests for the remote peer client, against an httpx MockTransport.
"""

import json

import httpx
import pytest

from schemas_store import OrgInventory
from services.remote_peer import RemotePeerClient, RemotePeerError


def _client(handler) -> RemotePeerClient:
    return RemotePeerClient("http://peer.test/api/", timeout=2, transport=httpx.MockTransport(handler))


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def test_get_inventory_parses_peer_document():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/api/orgs/CH-9921/inventory"
        return httpx.Response(200, json={"orgId": "CH-9921", "water": 7, "food": 3, "blankets": 1, "medicalKits": 2})

    inventory = _client(handler).get_inventory("CH-9921")
    assert inventory == OrgInventory(water=7, food=3, blankets=1, medical_kits=2)


def test_save_inventory_posts_camel_case():
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=captured["body"])

    _client(handler).save_inventory("NGO-5500", OrgInventory(water=1, medical_kits=4))
    assert captured["body"] == {"water": 1, "food": 0, "blankets": 0, "medicalKits": 4}


def test_create_request_requires_item_and_quantity():
    client = _client(lambda request: httpx.Response(201, json={}))
    with pytest.raises(RemotePeerError) as exc:
        client.create_request("CH-9921", "", 5)
    assert exc.value.status_code == 400


def test_update_request_status_payload():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    _client(handler).update_request_status("RR-1", "FULFILLED", delivered_quantity=20)
    assert captured["path"] == "/api/requests/RR-1/status"
    assert captured["body"] == {"status": "FULFILLED", "deliveredQuantity": 20}


def test_set_member_status_validates_status():
    client = _client(lambda request: httpx.Response(200, json={}))
    with pytest.raises(RemotePeerError):
        client.set_member_status("CH-9921", "u1", "MAYBE")


def test_http_error_raises_with_status_code():
    client = _client(lambda request: httpx.Response(404, json={"error": "Request not found"}))
    with pytest.raises(RemotePeerError) as exc:
        client.get_broadcast("CH-0000")
    assert exc.value.status_code == 404


def test_transport_error_raises():
    with pytest.raises(RemotePeerError) as exc:
        _client(_unreachable).list_requests("CH-9921")
    assert exc.value.status_code is None


def test_fetch_inventory_falls_back_to_local_cache(inventory):
    value, from_cache = _client(_unreachable).fetch_inventory("CH-9921", inventory)
    assert from_cache is True
    assert value.water == 120


def test_fetch_inventory_prefers_peer(inventory):
    client = _client(lambda request: httpx.Response(200, json={"water": 1}))
    value, from_cache = client.fetch_inventory("CH-9921", inventory)
    assert from_cache is False
    assert value.water == 1


def test_fetch_member_status_falls_back_to_local(orgs):
    status, from_cache = _client(_unreachable).fetch_member_status("CH-9921", orgs)
    assert from_cache is True
    assert status["counts"] == {"safe": 0, "danger": 0, "unknown": 3}
    assert status["members"][0]["lastUpdate"] == "Never"
