"""Session gateway — auth-on-join, room placement, disconnect cleanup."""

import pytest

from tenkvendor.errors import Unauthorized
from tenkvendor.realtime.gateway import CLOSE_UNAUTHORIZED
from tests.conftest import FakeSocket, token_for


# ═══════════════════════════════════════════════════════════
# Connect / authenticate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_new_session_is_unauthenticated(gateway, rooms):
    session = gateway.on_connect(FakeSocket())
    assert session.principal is None
    assert session.rooms == set()
    assert rooms.stats() == {}


@pytest.mark.asyncio
async def test_admin_joins_admin_room_only(gateway, rooms):
    session = gateway.on_connect(FakeSocket())
    principal = await gateway.authenticate_as_admin(session, token_for("admin1"))

    assert principal.is_admin
    assert session.rooms == {"adminRoom"}
    assert session in rooms.members("adminRoom")
    assert not any(room.startswith("user_") for room in rooms.stats())


@pytest.mark.asyncio
async def test_user_joins_own_room_only(gateway, rooms):
    session = gateway.on_connect(FakeSocket())
    await gateway.authenticate_as_user(session, token_for("u9"))

    assert session.rooms == {"user_u9"}
    assert session not in rooms.members("adminRoom")


@pytest.mark.asyncio
async def test_non_admin_rejected_from_admin_room(gateway, rooms):
    sock = FakeSocket()
    session = gateway.on_connect(sock)

    with pytest.raises(Unauthorized):
        await gateway.authenticate_as_admin(session, token_for("u9"))

    assert sock.closed_with == CLOSE_UNAUTHORIZED
    assert session.closed
    assert session.rooms == set()
    assert rooms.stats() == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("credential", ["garbage", "", None, token_for("ghost")])
async def test_bad_credentials_disconnect_with_no_rooms(gateway, rooms, credential):
    for authenticate in (gateway.authenticate_as_admin, gateway.authenticate_as_user):
        sock = FakeSocket()
        session = gateway.on_connect(sock)
        with pytest.raises(Unauthorized):
            await authenticate(session, credential)
        assert sock.closed_with == CLOSE_UNAUTHORIZED
        assert session.rooms == set()
    assert rooms.stats() == {}


@pytest.mark.asyncio
async def test_failed_join_drops_earlier_membership(gateway, rooms):
    """No partial state: a rejected session leaves every room it was in."""
    sock = FakeSocket()
    session = gateway.on_connect(sock)
    await gateway.authenticate_as_user(session, token_for("u9"))

    with pytest.raises(Unauthorized):
        await gateway.authenticate_as_admin(session, token_for("u9"))

    assert session.rooms == set()
    assert rooms.stats() == {}


@pytest.mark.asyncio
async def test_rejoin_as_other_user_moves_rooms(gateway, rooms):
    """At most one user_<id> room per session."""
    session = gateway.on_connect(FakeSocket())
    await gateway.authenticate_as_user(session, token_for("u8"))
    await gateway.authenticate_as_user(session, token_for("u9"))

    assert session.rooms == {"user_u9"}
    assert rooms.stats() == {"user_u9": 1}


@pytest.mark.asyncio
async def test_admin_can_also_join_own_user_room(gateway):
    session = gateway.on_connect(FakeSocket())
    await gateway.authenticate_as_admin(session, token_for("admin1"))
    await gateway.authenticate_as_user(session, token_for("admin1"))

    assert session.rooms == {"adminRoom", "user_admin1"}
    assert session.principal.is_admin


# ═══════════════════════════════════════════════════════════
# Disconnect
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(gateway, rooms):
    session = gateway.on_connect(FakeSocket())
    await gateway.authenticate_as_admin(session, token_for("admin1"))
    await gateway.authenticate_as_user(session, token_for("admin1"))

    await gateway.on_disconnect(session)
    after_once = (set(session.rooms), rooms.stats())
    await gateway.on_disconnect(session)

    assert after_once == (set(), {})
    assert (set(session.rooms), rooms.stats()) == after_once


# ═══════════════════════════════════════════════════════════
# Inbound event dispatch
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_dispatch_join_events(gateway):
    admin = gateway.on_connect(FakeSocket())
    customer = gateway.on_connect(FakeSocket())

    await gateway.dispatch(admin, "joinAdmin", f"Bearer {token_for('admin1')}")
    await gateway.dispatch(customer, "joinUser", {"token": token_for("u9")})

    assert admin.rooms == {"adminRoom"}
    assert customer.rooms == {"user_u9"}


@pytest.mark.asyncio
async def test_dispatch_join_user_without_token(gateway):
    sock = FakeSocket()
    session = gateway.on_connect(sock)
    await gateway.dispatch(session, "joinUser", "not-an-object")
    assert sock.closed_with == CLOSE_UNAUTHORIZED
    assert session.rooms == set()


@pytest.mark.asyncio
async def test_product_update_signal_reaches_admins_only(gateway):
    """Any client may signal; only adminRoom hears the rebroadcast."""
    admin_sock, customer_sock, anon_sock = FakeSocket(), FakeSocket(), FakeSocket()
    admin = gateway.on_connect(admin_sock)
    customer = gateway.on_connect(customer_sock)
    anon = gateway.on_connect(anon_sock)
    await gateway.authenticate_as_admin(admin, token_for("admin1"))
    await gateway.authenticate_as_user(customer, token_for("u9"))

    await gateway.dispatch(anon, "productUpdate")

    assert admin_sock.events == [("productUpdate", None)]
    assert customer_sock.sent == []
    assert anon_sock.sent == []


@pytest.mark.asyncio
async def test_category_update_signal(gateway):
    sock = FakeSocket()
    admin = gateway.on_connect(sock)
    await gateway.authenticate_as_admin(admin, token_for("admin1"))

    await gateway.dispatch(admin, "categoryUpdate", None)

    assert sock.events == [("categoryUpdate", None)]


@pytest.mark.asyncio
async def test_order_status_update_signal(gateway):
    admin_sock, u9_sock, u8_sock = FakeSocket(), FakeSocket(), FakeSocket()
    await gateway.authenticate_as_admin(gateway.on_connect(admin_sock), token_for("admin1"))
    await gateway.authenticate_as_user(gateway.on_connect(u9_sock), token_for("u9"))
    await gateway.authenticate_as_user(gateway.on_connect(u8_sock), token_for("u8"))

    order = {"_id": "o1", "user": {"_id": "u9"}, "status": "shipped"}
    await gateway.dispatch(gateway.on_connect(FakeSocket()), "orderStatusUpdate", order)

    assert admin_sock.events == [("orderStatusUpdate", order)]
    assert u9_sock.events == [("orderStatusUpdate", order)]
    assert u8_sock.sent == []


@pytest.mark.asyncio
async def test_invalid_order_signal_is_dropped(gateway, rooms):
    sock = FakeSocket()
    admin = gateway.on_connect(sock)
    await gateway.authenticate_as_admin(admin, token_for("admin1"))

    await gateway.dispatch(admin, "orderStatusUpdate", {"status": "shipped"})
    await gateway.dispatch(admin, "orderStatusUpdate", "o1")

    assert sock.sent == []
    assert not admin.closed


@pytest.mark.asyncio
async def test_unknown_event_ignored(gateway):
    sock = FakeSocket()
    session = gateway.on_connect(sock)
    await gateway.dispatch(session, "dropTables", {"x": 1})
    assert sock.sent == []
    assert not session.closed
