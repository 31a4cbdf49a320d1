"""FastAPI application factory.

create_app() returns a configured FastAPI instance with its RealtimeHub
already built on app.state.hub. The lifespan starts the hub's background
work (Redis relay) and tears everything down on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenkvendor import __version__
from tenkvendor.api import api_router
from tenkvendor.auth.verifier import UserLookup
from tenkvendor.config import Settings, settings as default_settings
from tenkvendor.hub import build_hub
from tenkvendor.push.registry import PushRegistry
from tenkvendor.push.transport import PushTransport
from tenkvendor.realtime.rooms import RoomDirectory
from tenkvendor.realtime.router import OrderLookup

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    settings = app.state.settings
    hub = app.state.hub
    logger.info(
        "tenkvendor.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        room_backend=settings.room_backend,
        push_registry_backend=settings.push_registry_backend,
    )

    await hub.start()

    yield

    logger.info("tenkvendor.shutdown")
    await hub.close()

    if app.state.owns_engine:
        from tenkvendor.db.engine import engine
        await engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    user_lookup: Optional[UserLookup] = None,
    order_lookup: Optional[OrderLookup] = None,
    rooms: Optional[RoomDirectory] = None,
    push_registry: Optional[PushRegistry] = None,
    push_transport: Optional[PushTransport] = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Collaborators left as None are built from settings (SQL lookups,
    in-memory or Redis rooms, Web Push transport).
    """
    settings = settings or default_settings

    app = FastAPI(
        title="10kVendor Notifications",
        description="Real-time order events and Web Push for the 10kVendor storefront",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.hub = build_hub(
        settings,
        user_lookup=user_lookup,
        order_lookup=order_lookup,
        rooms=rooms,
        push_registry=push_registry,
        push_transport=push_transport,
    )
    app.state.owns_engine = (
        user_lookup is None
        or order_lookup is None
        or settings.push_registry_backend == "sql"
    )

    # Starlette middleware executes in reverse order of registration.
    from tenkvendor.middleware.request_log import RequestLogMiddleware

    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    from tenkvendor.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app
