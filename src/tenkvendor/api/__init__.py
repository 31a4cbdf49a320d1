"""API route aggregation.

All routers registered here get mounted in main.py. Health is open;
everything else needs a bearer token resolved by the shared verifier.
"""

from fastapi import APIRouter, Depends

from tenkvendor.api.health import router as health_router
from tenkvendor.api.push import router as push_router
from tenkvendor.api.realtime import router as realtime_router
from tenkvendor.auth.dependencies import get_current_principal

_auth = [Depends(get_current_principal)]

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(push_router, tags=["push"], dependencies=_auth)
api_router.include_router(realtime_router, tags=["realtime"], dependencies=_auth)
