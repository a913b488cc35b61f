"""Token issuer: opaque random tokens stored only as hashes.

The plaintext (26 characters of base32) goes to the caller exactly once.
The database keeps sha256(plaintext), so a leaked tokens table can't be
replayed. Every lookup hashes first and compares hashes.

Scopes keep one purpose from unlocking another: an activation token
can't authenticate a request, and vice versa. Authentication tokens are
reusable until they expire; activation tokens are consumed by deleting
them explicitly after use.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.db.engine import store_deadline
from myreference.db.models import Token, User
from myreference.errors import TokenNotFound
from myreference.services.user_service import UserRecord, USER_COLUMNS, record_from_row
from myreference.validator import Validator, byte_length

logger = structlog.get_logger()

SCOPE_ACTIVATION = "activation"
SCOPE_AUTHENTICATION = "authentication"

TOKEN_BYTES = 16
TOKEN_LENGTH = 26  # base32 of 16 bytes, padding stripped


@dataclass(frozen=True)
class IssuedToken:
    plaintext: str
    user_id: int
    expiry: datetime
    scope: str

    def __repr__(self) -> str:
        return (
            f"IssuedToken(user_id={self.user_id}, scope={self.scope!r}, "
            f"expiry={self.expiry.isoformat()})"
        )


def new_plaintext() -> str:
    raw = secrets.token_bytes(TOKEN_BYTES)
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def hash_token(plaintext: str) -> bytes:
    return hashlib.sha256(plaintext.encode("utf-8")).digest()


def validate_plaintext(v: Validator, plaintext: str) -> None:
    v.check(plaintext != "", "token", "must be provided")
    v.check(
        byte_length(plaintext) == TOKEN_LENGTH,
        "token",
        f"must be {TOKEN_LENGTH} bytes long",
    )


class TokenService:
    """Issue, resolve, and revoke scoped tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate(
        self, user_id: int, lifetime: timedelta, scope: str
    ) -> IssuedToken:
        token = IssuedToken(
            plaintext=new_plaintext(),
            user_id=user_id,
            expiry=datetime.now(timezone.utc) + lifetime,
            scope=scope,
        )
        async with store_deadline("tokens.insert"):
            await self.db.execute(
                insert(Token).values(
                    hash=hash_token(token.plaintext),
                    user_id=token.user_id,
                    expiry=token.expiry,
                    scope=token.scope,
                )
            )
            await self.db.commit()

        logger.info("token.issued", user_id=user_id, scope=scope)
        return token

    async def validate(self, plaintext: str, scope: str) -> UserRecord:
        """Resolve a token to its owner.

        Raises TokenNotFound for an unknown hash, another scope, or an
        expired token alike.
        """
        q = (
            select(*USER_COLUMNS)
            .join(Token, Token.user_id == User.id)
            .where(
                Token.hash == hash_token(plaintext),
                Token.scope == scope,
                Token.expiry > datetime.now(timezone.utc),
            )
        )
        async with store_deadline("tokens.validate"):
            row = (await self.db.execute(q)).first()
        if row is None:
            raise TokenNotFound()
        return record_from_row(row)

    async def delete_all_for_user(self, scope: str, user_id: int) -> int:
        async with store_deadline("tokens.delete_all_for_user"):
            result = await self.db.execute(
                delete(Token)
                .where(Token.scope == scope, Token.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        return result.rowcount
