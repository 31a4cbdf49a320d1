"""Health check endpoint."""

from fastapi import APIRouter, Request

from tenkvendor import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and realtime state."""
    hub = request.app.state.hub
    rooms = hub.rooms.stats()
    return {
        "status": "healthy",
        "server": "ok",
        "version": __version__,
        "rooms": len(rooms),
        "sessions": sum(rooms.values()),
    }
