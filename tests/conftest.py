"""Test fixtures — fakes for the socket, the push service, and the database.

Nothing here needs Postgres, Redis, or a real push service: the hub is
built with in-memory rooms and registry, dict-backed user/order lookups,
and a push transport whose per-endpoint behaviour the test chooses.
"""

import asyncio
import json
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tenkvendor.auth.jwt import create_access_token
from tenkvendor.auth.verifier import CredentialVerifier
from tenkvendor.errors import PermanentDeliveryFailure, TransientDeliveryFailure
from tenkvendor.main import create_app
from tenkvendor.push.notifier import PushNotifier
from tenkvendor.push.registry import InMemoryPushRegistry
from tenkvendor.realtime.gateway import SessionGateway
from tenkvendor.realtime.rooms import InMemoryRoomDirectory
from tenkvendor.realtime.router import EventRouter


USERS = {
    "admin1": {"_id": "admin1", "name": "Ada Admin", "email": "ada@example.com", "isAdmin": True},
    "u8": {"_id": "u8", "name": "Eight", "email": "eight@example.com", "isAdmin": False},
    "u9": {"_id": "u9", "name": "Nine", "email": "nine@example.com", "isAdmin": False},
}

ORDERS = {
    "o1": {"_id": "o1", "user": USERS["u9"], "status": "shipped"},
    "o2": {"_id": "o2", "user": None, "status": "pending"},
}


class FakeSocket:
    """Session transport that records frames instead of sending them."""

    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.closed_with: Optional[int] = None
        self.fail = fail

    async def send(self, message: str) -> None:
        if self.fail:
            raise ConnectionResetError("socket gone")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code

    @property
    def events(self) -> list[tuple[str, Any]]:
        return [(f["event"], f["data"]) for f in map(json.loads, self.sent)]


class FakePushService:
    """Push transport: endpoints ending in /gone are 410, /flaky are 503."""

    def __init__(self):
        self.attempts: list[tuple[str, dict]] = []

    async def deliver(self, subscription: dict, payload: dict) -> None:
        endpoint = subscription["endpoint"]
        self.attempts.append((endpoint, payload))
        await asyncio.sleep(0)
        if endpoint.endswith("/gone"):
            raise PermanentDeliveryFailure("410 Gone", status_code=410)
        if endpoint.endswith("/flaky"):
            raise TransientDeliveryFailure("503 Service Unavailable", status_code=503)

    @property
    def endpoints(self) -> set[str]:
        return {endpoint for endpoint, _ in self.attempts}


def subscription(endpoint: str) -> dict:
    return {
        "endpoint": endpoint,
        "keys": {"p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQ", "auth": "tBHItJI5svbpez7KI4CCXg"},
    }


async def find_user(user_id: str):
    return USERS.get(user_id)


async def find_order(order_id: str):
    return ORDERS.get(order_id)


def token_for(user_id: str) -> str:
    return create_access_token(user_id)


@pytest.fixture()
def rooms():
    return InMemoryRoomDirectory()


@pytest.fixture()
def verifier():
    return CredentialVerifier(find_user, timeout=1.0)


@pytest.fixture()
def router(rooms):
    return EventRouter(rooms, find_order)


@pytest.fixture()
def gateway(rooms, verifier, router):
    return SessionGateway(rooms, verifier, router)


@pytest.fixture()
def push_service():
    return FakePushService()


@pytest.fixture()
def registry():
    return InMemoryPushRegistry()


@pytest.fixture()
def notifier(registry, push_service):
    return PushNotifier(registry, push_service)


@pytest.fixture()
def app(rooms, registry, push_service):
    return create_app(
        user_lookup=find_user,
        order_lookup=find_order,
        rooms=rooms,
        push_registry=registry,
        push_transport=push_service,
    )


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def admin_headers():
    return {"Authorization": f"Bearer {token_for('admin1')}"}


@pytest.fixture()
def user_headers():
    return {"Authorization": f"Bearer {token_for('u9')}"}
