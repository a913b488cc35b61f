"""Users API: registration and activation.

- POST /users            → create an account, mail an activation token
- PUT  /users/activated  → consume the activation token
"""

from dataclasses import replace

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.api.envelope import envelope
from myreference.auth.password import PasswordHash, PasswordInput
from myreference.auth.permissions import PERMISSION_READ
from myreference.background import background_tasks
from myreference.config import settings
from myreference.db.engine import get_db
from myreference.errors import TokenNotFound, ValidationFailure
from myreference.mailer import Mailer, get_mailer
from myreference.schemas.user import UserActivate, UserRead, UserRegister
from myreference.services.permission_service import PermissionService
from myreference.services.token_service import (
    SCOPE_ACTIVATION,
    TokenService,
    validate_plaintext,
)
from myreference.services.user_service import NewUser, UserService, validate_user
from myreference.validator import Validator

logger = structlog.get_logger()

router = APIRouter(prefix="/users")


@router.post("", status_code=201)
async def register_user(
    body: UserRegister,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Create an account with read access, pending activation."""
    password = PasswordInput(body.password)
    v = Validator()
    validate_user(v, body.name, body.email, password)
    v.raise_if_invalid()

    new_user = NewUser(
        name=body.name,
        email=body.email,
        password=PasswordHash.from_plaintext(password.plaintext),
    )
    user = await UserService(db).insert(new_user)
    await PermissionService(db).add_for_user(user.id, PERMISSION_READ)
    token = await TokenService(db).generate(
        user.id, settings.activation_token_ttl, SCOPE_ACTIVATION
    )

    background_tasks.spawn(
        mailer.send_activation(user.email, user.name, user.id, token.plaintext),
        name=f"activation-mail:{user.id}",
    )
    return envelope(user=UserRead.model_validate(user))


@router.put("/activated")
async def activate_user(body: UserActivate, db: AsyncSession = Depends(get_db)):
    """Activate the account owning an activation token; the token is spent."""
    v = Validator()
    validate_plaintext(v, body.token)
    v.raise_if_invalid()

    tokens = TokenService(db)
    try:
        user = await tokens.validate(body.token, SCOPE_ACTIVATION)
    except TokenNotFound:
        raise ValidationFailure({"token": "invalid or expired activation token"})

    user = await UserService(db).update(replace(user, activated=True))
    await tokens.delete_all_for_user(SCOPE_ACTIVATION, user.id)

    logger.info("user.activated", user_id=user.id)
    return envelope(user=UserRead.model_validate(user))
