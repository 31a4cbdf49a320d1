"""Event router — domain events → room broadcasts.

Request handlers call this after committing a change. Catalog changes
only concern admins; order status changes go to admins and to the
customer who owns the order. Delivery is at-most-once per connected
session. Customers who aren't connected are reached by the push notifier.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import structlog

from tenkvendor.errors import InvalidEventError
from tenkvendor.realtime import ADMIN_ROOM, room_for_user
from tenkvendor.realtime.rooms import RoomDirectory

logger = structlog.get_logger()

CATALOG_KINDS = ("category", "product")

ORDER_STATUS_UPDATE = "orderStatusUpdate"
NEW_VISITOR = "newVisitor"

# order id -> order document with "user" populated, or None if deleted
OrderLookup = Callable[[str], Awaitable[Optional[dict[str, Any]]]]


def _id_of(value: Any) -> Optional[str]:
    """Extract an id from a populated reference ({"_id": ...}) or a bare id."""
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class OrderEvent:
    """An order whose status changed. Built per handler call, used once."""

    order_id: str
    order: dict[str, Any] = field(default_factory=dict)
    # Owner as the caller knows it; when unset the owner comes from a
    # populated "user" or from the stored order.
    target_user_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "OrderEvent":
        """Build from the wire document ({"_id", "user": {...}, ...})."""
        if not isinstance(payload, dict):
            raise InvalidEventError("Order payload must be an object")
        order_id = _id_of(payload.get("_id") or payload.get("id"))
        if not order_id:
            raise InvalidEventError("Order payload has no _id")
        user = payload.get("user")
        return cls(
            order_id=order_id,
            order=payload,
            target_user_id=_id_of(user) if isinstance(user, dict) else None,
        )

    @property
    def user_populated(self) -> bool:
        return isinstance(self.order.get("user"), dict) and bool(
            _id_of(self.order["user"])
        )


class EventRouter:
    def __init__(self, rooms: RoomDirectory, order_lookup: OrderLookup):
        self.rooms = rooms
        self.order_lookup = order_lookup

    async def catalog_changed(self, kind: str) -> None:
        """Tell admin dashboards to refetch categories or products."""
        if kind not in CATALOG_KINDS:
            raise InvalidEventError(f"Unknown catalog kind: {kind!r}")
        await self.rooms.broadcast(ADMIN_ROOM, f"{kind}Update", None)

    async def order_status_changed(self, event: OrderEvent) -> set[str]:
        """Broadcast an order to adminRoom and to its owner's room.

        Returns the rooms addressed (empty if the event was dropped).
        """
        if not event.order_id:
            logger.warning("realtime.order_event_invalid", order=event.order)
            raise InvalidEventError("Order event has no order id")

        order = event.order
        owner_id = event.target_user_id
        if owner_id is None and event.user_populated:
            owner_id = _id_of(order["user"])

        if owner_id is None:
            logger.info("realtime.order_populating", order_id=event.order_id)
            order = await self.order_lookup(event.order_id)
            if not order:
                # Deleted between the handler's commit and now.
                logger.warning("realtime.order_not_found", order_id=event.order_id)
                return set()
            owner_id = _id_of(order.get("user"))

        rooms = {ADMIN_ROOM}
        await self.rooms.broadcast(ADMIN_ROOM, ORDER_STATUS_UPDATE, order)

        if owner_id:
            room = room_for_user(owner_id)
            rooms.add(room)
            await self.rooms.broadcast(room, ORDER_STATUS_UPDATE, order)
        else:
            logger.info("realtime.order_without_owner", order_id=event.order_id)

        return rooms

    async def visitor_arrived(self, visitor: dict[str, Any]) -> None:
        """Show a new storefront visitor on admin dashboards."""
        await self.rooms.broadcast(ADMIN_ROOM, NEW_VISITOR, visitor)
