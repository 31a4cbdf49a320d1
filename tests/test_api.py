"""Health, request logging middleware, and the realtime HTTP endpoints."""

import pytest

from tenkvendor.realtime.session import Session
from tests.conftest import FakeSocket


@pytest.mark.asyncio
async def test_health(client, rooms):
    await rooms.join("adminRoom", Session(transport=FakeSocket()))
    r = await client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["server"] == "ok"
    assert "version" in data
    assert data["rooms"] == 1
    assert data["sessions"] == 1


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


@pytest.mark.asyncio
async def test_room_stats_admin_only(client, rooms, admin_headers, user_headers):
    await rooms.join("user_u9", Session(transport=FakeSocket()))

    r = await client.get("/api/realtime/rooms", headers=user_headers)
    assert r.status_code == 403

    r = await client.get("/api/realtime/rooms", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"user_u9": 1}


@pytest.mark.asyncio
async def test_catalog_broadcast_endpoint(client, rooms, admin_headers):
    sock = FakeSocket()
    await rooms.join("adminRoom", Session(transport=sock))

    r = await client.post("/api/realtime/catalog/product", headers=admin_headers)

    assert r.status_code == 202
    assert sock.events == [("productUpdate", None)]


@pytest.mark.asyncio
async def test_catalog_broadcast_rejects_unknown_kind(client, admin_headers):
    r = await client.post("/api/realtime/catalog/coupon", headers=admin_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_order_broadcast_endpoint(client, rooms, admin_headers):
    owner = FakeSocket()
    await rooms.join("user_u9", Session(transport=owner))

    r = await client.post("/api/realtime/orders", json={"_id": "o1"}, headers=admin_headers)

    assert r.status_code == 202
    assert r.json()["rooms"] == ["adminRoom", "user_u9"]
    assert owner.events[0][0] == "orderStatusUpdate"
    assert owner.events[0][1]["_id"] == "o1"


@pytest.mark.asyncio
async def test_order_broadcast_validation(client, admin_headers):
    r = await client.post("/api/realtime/orders", json={"status": "paid"}, headers=admin_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_order_broadcast_missing_order(client, admin_headers):
    r = await client.post("/api/realtime/orders", json={"_id": "deleted"}, headers=admin_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_visitor_broadcast_endpoint(client, rooms, admin_headers, user_headers):
    admin = FakeSocket()
    customer = FakeSocket()
    await rooms.join("adminRoom", Session(transport=admin))
    await rooms.join("user_u9", Session(transport=customer))
    visitor = {"ip": "203.0.113.7", "path": "/products.html"}

    r = await client.post("/api/realtime/visitors", json=visitor, headers=user_headers)
    assert r.status_code == 403

    r = await client.post("/api/realtime/visitors", json=visitor, headers=admin_headers)

    assert r.status_code == 202
    assert admin.events == [("newVisitor", visitor)]
    assert customer.sent == []
