"""Tokens API: exchange credentials for a bearer token.

POST /tokens/authentication → {"authentication_token": {"token", "expiry"}}

Unknown email and wrong password get the same 401 so the endpoint can't
be used to probe which emails are registered.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.api.envelope import envelope
from myreference.auth.password import PasswordInput
from myreference.config import settings
from myreference.db.engine import get_db
from myreference.errors import InvalidCredentials, RecordNotFound
from myreference.schemas.token import AuthenticationTokenRead, CredentialsIn
from myreference.services.token_service import SCOPE_AUTHENTICATION, TokenService
from myreference.services.user_service import UserService
from myreference.validator import Validator, validate_email

logger = structlog.get_logger()

router = APIRouter(prefix="/tokens")


@router.post("/authentication")
async def create_authentication_token(
    body: CredentialsIn, db: AsyncSession = Depends(get_db)
):
    v = Validator()
    validate_email(v, body.email)
    PasswordInput(body.password).validate(v)
    v.raise_if_invalid()

    try:
        user = await UserService(db).get_by_email(body.email)
    except RecordNotFound:
        raise InvalidCredentials()

    # PasswordCheckError (unreadable hash) propagates as a 500.
    if not user.password.matches(body.password):
        logger.info("auth.login_failed", user_id=user.id)
        raise InvalidCredentials()

    token = await TokenService(db).generate(
        user.id, settings.authentication_token_ttl, SCOPE_AUTHENTICATION
    )
    return envelope(
        authentication_token=AuthenticationTokenRead(
            token=token.plaintext, expiry=token.expiry
        )
    )
