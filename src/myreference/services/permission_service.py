"""Permission store: which permission codes each user holds.

Codes live once in `permissions`; grants are rows in
`users_permissions`. Both reads and grants go through joins on the code,
so a code missing from the master table simply isn't granted.
"""

from typing import Iterable

import structlog
from sqlalchemy import and_, exists, insert, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.db.engine import store_deadline
from myreference.db.models import Permission, UserPermission

logger = structlog.get_logger()


class Permissions(frozenset):
    """Set of permission codes held by one user."""

    def include(self, code: str) -> bool:
        return code in self


class PermissionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all_for_user(self, user_id: int) -> Permissions:
        q = (
            select(Permission.code)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == user_id)
        )
        async with store_deadline("permissions.get_all_for_user"):
            codes = (await self.db.execute(q)).scalars().all()
        return Permissions(codes)

    async def add_for_user(self, user_id: int, *codes: str) -> None:
        """Grant codes to a user in one statement.

        Unknown codes are skipped; so are codes the user already holds.
        """
        if not codes:
            return
        already_granted = exists().where(
            and_(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == Permission.id,
            )
        )
        source = select(literal(user_id), Permission.id).where(
            Permission.code.in_(codes), ~already_granted
        )
        stmt = insert(UserPermission.__table__).from_select(
            ["user_id", "permission_id"], source
        )
        async with store_deadline("permissions.add_for_user"):
            await self.db.execute(stmt)
            await self.db.commit()

        logger.info("permissions.granted", user_id=user_id, codes=sorted(codes))

    async def seed(self, codes: Iterable[str]) -> None:
        """Insert any missing codes into the master table."""
        codes = list(codes)
        async with store_deadline("permissions.seed"):
            existing = set(
                (
                    await self.db.execute(
                        select(Permission.code).where(Permission.code.in_(codes))
                    )
                ).scalars()
            )
            missing = [c for c in codes if c not in existing]
            if missing:
                await self.db.execute(
                    insert(Permission), [{"code": c} for c in missing]
                )
            await self.db.commit()
