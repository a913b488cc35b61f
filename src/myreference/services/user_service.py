"""User store: registration records, lookups, versioned updates.

Rows come back as UserRecord, a detached snapshot. The password hash
rides along as a PasswordHash so login can verify it, but UserRecord is
never serialised directly; the API builds its own response schema.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.auth.password import PasswordHash, PasswordInput
from myreference.db.engine import store_deadline
from myreference.db.models import MAX_ID, User
from myreference.errors import DuplicateEmail, EditConflict, RecordNotFound
from myreference.validator import Validator, byte_length, validate_email

logger = structlog.get_logger()

MAX_NAME_BYTES = 500


class MissingPasswordHash(ValueError):
    """A user was built without a password hash."""


@dataclass(frozen=True)
class NewUser:
    """A user about to be inserted. Only the hash is ever present."""

    name: str
    email: str
    password: PasswordHash
    activated: bool = False

    def __post_init__(self):
        if not isinstance(self.password, PasswordHash) or not self.password.hash:
            raise MissingPasswordHash("missing password hash for the user")


@dataclass(frozen=True)
class UserRecord:
    id: int
    created_at: datetime
    name: str
    email: str
    password: PasswordHash
    activated: bool
    version: int

    def __post_init__(self):
        if not self.password.hash:
            raise MissingPasswordHash(f"user {self.id} has no password hash")


USER_COLUMNS = (
    User.id,
    User.created_at,
    User.name,
    User.email,
    User.password_hash,
    User.activated,
    User.version,
)


def record_from_row(row) -> UserRecord:
    return UserRecord(
        id=row.id,
        created_at=row.created_at,
        name=row.name,
        email=row.email,
        password=PasswordHash(bytes(row.password_hash)),
        activated=row.activated,
        version=row.version,
    )


def validate_user(
    v: Validator, name: str, email: str, password: Optional[PasswordInput] = None
) -> None:
    v.check(name != "", "name", "must be provided")
    v.check(
        byte_length(name) <= MAX_NAME_BYTES,
        "name",
        f"must not be more than {MAX_NAME_BYTES} bytes long",
    )
    validate_email(v, email)
    if password is not None:
        password.validate(v)


def _is_email_conflict(exc: IntegrityError) -> bool:
    return "email" in str(exc.orig).lower()


class UserService:
    """Data access for users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, user: NewUser) -> UserRecord:
        stmt = (
            insert(User)
            .values(
                name=user.name,
                email=user.email,
                password_hash=user.password.hash,
                activated=user.activated,
            )
            .returning(User.id, User.created_at, User.version)
        )
        async with store_deadline("users.insert"):
            try:
                row = (await self.db.execute(stmt)).one()
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if _is_email_conflict(e):
                    raise DuplicateEmail() from e
                raise

        logger.info("user.created", user_id=row.id)
        return UserRecord(
            id=row.id,
            created_at=row.created_at,
            name=user.name,
            email=user.email,
            password=user.password,
            activated=user.activated,
            version=row.version,
        )

    async def get(self, user_id: int) -> UserRecord:
        if not 1 <= user_id <= MAX_ID:
            raise RecordNotFound()
        async with store_deadline("users.get"):
            row = (
                await self.db.execute(select(*USER_COLUMNS).where(User.id == user_id))
            ).first()
        if row is None:
            raise RecordNotFound()
        return record_from_row(row)

    async def get_by_email(self, email: str) -> UserRecord:
        async with store_deadline("users.get_by_email"):
            row = (
                await self.db.execute(select(*USER_COLUMNS).where(User.email == email))
            ).first()
        if row is None:
            raise RecordNotFound()
        return record_from_row(row)

    async def update(self, user: UserRecord) -> UserRecord:
        """Write user back only if nobody changed it since it was read.

        The stored version must equal user.version; on success the
        version goes up by one and the new record is returned.
        """
        stmt = (
            update(User)
            .where(User.id == user.id, User.version == user.version)
            .values(
                name=user.name,
                email=user.email,
                password_hash=user.password.hash,
                activated=user.activated,
                version=User.version + 1,
            )
            .returning(User.version)
            .execution_options(synchronize_session=False)
        )
        async with store_deadline("users.update"):
            try:
                new_version = (await self.db.execute(stmt)).scalar_one_or_none()
                if new_version is None:
                    await self.db.rollback()
                    raise EditConflict()
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if _is_email_conflict(e):
                    raise DuplicateEmail() from e
                raise

        logger.info("user.updated", user_id=user.id, version=new_version)
        return replace(user, version=new_version)
