"""Permission gate.

require_permission(code) builds a dependency that admits only activated
users holding `code`. Grants are re-read on every request, so a grant or
revocation takes effect on the next call.

    @router.post("/references")
    async def create(identity: Authenticated = Depends(require_permission("reference:write"))):
        ...
"""

from typing import Awaitable, Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.auth.dependencies import Anonymous, Authenticated, Identity, authenticate
from myreference.db.engine import get_db
from myreference.errors import AuthenticationRequired, InactiveAccount, PermissionDenied
from myreference.services.permission_service import PermissionService

PERMISSION_READ = "reference:read"
PERMISSION_WRITE = "reference:write"


def require_authenticated(identity: Identity) -> Authenticated:
    match identity:
        case Anonymous():
            raise AuthenticationRequired()
        case Authenticated():
            return identity


def require_activated(identity: Identity) -> Authenticated:
    authenticated = require_authenticated(identity)
    if not authenticated.user.activated:
        raise InactiveAccount()
    return authenticated


def require_permission(code: str) -> Callable[..., Awaitable[Authenticated]]:
    async def check_permission(
        identity: Identity = Depends(authenticate),
        db: AsyncSession = Depends(get_db),
    ) -> Authenticated:
        authenticated = require_activated(identity)
        permissions = await PermissionService(db).get_all_for_user(authenticated.user.id)
        if not permissions.include(code):
            raise PermissionDenied()
        return authenticated

    check_permission.__name__ = f"require_{code.replace(':', '_')}"
    return check_permission
