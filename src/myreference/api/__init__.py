"""API route aggregation.

All routers registered here get mounted in main.py under /v1.

Every route runs the authenticate dependency (set at the router level),
so a malformed Authorization header is rejected everywhere. Whether a
route also needs a permission is declared on the route itself with
require_permission().
"""

from fastapi import APIRouter, Depends

from myreference.api.health import router as health_router
from myreference.api.references import router as references_router
from myreference.api.tokens import router as tokens_router
from myreference.api.users import router as users_router
from myreference.auth.dependencies import authenticate

api_router = APIRouter(prefix="/v1", dependencies=[Depends(authenticate)])

api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(tokens_router, tags=["tokens"])
api_router.include_router(references_router, tags=["references"])
