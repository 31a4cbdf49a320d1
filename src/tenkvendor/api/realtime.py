"""Realtime API — the HTTP side of the event router.

Storefront handlers that live in another process (or admin tools) use
these to trigger the same broadcasts an in-process handler would make
with hub.router directly. Admin only.
"""

import enum
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from tenkvendor.auth.dependencies import require_admin
from tenkvendor.errors import InvalidEventError
from tenkvendor.realtime.router import OrderEvent

router = APIRouter(prefix="/realtime", dependencies=[Depends(require_admin)])


class CatalogKind(str, enum.Enum):
    category = "category"
    product = "product"


@router.get("/rooms")
async def room_stats(request: Request) -> dict[str, int]:
    """Connected session count per room."""
    return request.app.state.hub.rooms.stats()


@router.post("/catalog/{kind}", status_code=202)
async def catalog_changed(kind: CatalogKind, request: Request):
    await request.app.state.hub.router.catalog_changed(kind.value)
    return {"message": f"{kind.value}Update broadcast"}


@router.post("/orders", status_code=202)
async def order_status_changed(order: dict[str, Any], request: Request):
    """Broadcast an order document (at least {"_id": ...})."""
    try:
        event = OrderEvent.from_payload(order)
    except InvalidEventError as e:
        raise HTTPException(status_code=422, detail=str(e))
    rooms = await request.app.state.hub.router.order_status_changed(event)
    if not rooms:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"message": "orderStatusUpdate broadcast", "rooms": sorted(rooms)}


@router.post("/visitors", status_code=202)
async def visitor_arrived(visitor: dict[str, Any], request: Request):
    """Show a storefront visitor on admin dashboards."""
    await request.app.state.hub.router.visitor_arrived(visitor)
    return {"message": "newVisitor broadcast"}
