"""SQLAlchemy ORM models: single source of truth for the database schema.

Declarative mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Alembic migrations mirror these tables.

The stores query columns rather than entities and hand back plain
records, so these classes describe tables; nothing outside db/ and
services/ touches them.

- BIGINT identity keys (INTEGER on SQLite so rowid autoincrement works)
- server_default for created_at/version so the database assigns them
- relations are foreign keys resolved with joins, never embedded copies
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Portable auto-increment primary key type.
BigId = BigInteger().with_variant(Integer, "sqlite")

# Largest value a BigId column can hold.
MAX_ID = 2**63 - 1

PERMISSION_CODES = ("reference:read", "reference:write")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """A registered account. password_hash is bcrypt output, never plaintext."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    activated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )


class Token(Base):
    """Hashed bearer/activation token. The plaintext is never stored."""

    __tablename__ = "tokens"
    __table_args__ = (
        Index("ix_tokens_user_scope", "user_id", "scope"),
    )

    hash: Mapped[bytes] = mapped_column(LargeBinary, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False)


class Permission(Base):
    """Master list of permission codes (e.g. "reference:read")."""

    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)


class UserPermission(Base):
    """Grant of one permission to one user."""

    __tablename__ = "users_permissions"

    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    permission_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
    )


class Reference(Base):
    """A stored item: what it is and where it's kept."""

    __tablename__ = "reference_info"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )
