"""Resolve the Authorization header to a request identity.

The identity is a tagged variant, Anonymous or Authenticated(user).
Code downstream matches on the variant; there is no shared "anonymous
user" object to compare against.

Header handling:
- no Authorization header        → Anonymous()
- not "Bearer <26-char token>"   → InvalidAuthToken (401)
- unknown/expired/other-scope    → InvalidAuthToken (401)
- valid authentication token     → Authenticated(user)

The result is also stored on request.state.identity, and an
authenticated user's id is bound into the structlog context.
"""

from dataclasses import dataclass
from typing import Optional, Union

import structlog
from fastapi import Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.db.engine import get_db
from myreference.errors import InvalidAuthToken, TokenNotFound
from myreference.services.token_service import (
    SCOPE_AUTHENTICATION,
    TokenService,
    validate_plaintext,
)
from myreference.services.user_service import UserRecord
from myreference.validator import Validator


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class Authenticated:
    user: UserRecord


Identity = Union[Anonymous, Authenticated]


def parse_bearer(authorization: str) -> str:
    """Extract the token from "Bearer <token>" or raise InvalidAuthToken."""
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise InvalidAuthToken()
    token = parts[1]
    v = Validator()
    validate_plaintext(v, token)
    if not v.valid:
        raise InvalidAuthToken()
    return token


async def authenticate(
    request: Request,
    response: Response,
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Router-level dependency: runs once per request on every /v1 route."""
    response.headers["Vary"] = "Authorization"

    if authorization is None:
        identity: Identity = Anonymous()
    else:
        token = parse_bearer(authorization)
        try:
            user = await TokenService(db).validate(token, SCOPE_AUTHENTICATION)
        except TokenNotFound:
            raise InvalidAuthToken()
        identity = Authenticated(user)
        structlog.contextvars.bind_contextvars(user_id=user.id)

    request.state.identity = identity
    return identity
