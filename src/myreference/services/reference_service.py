"""Reference store: CRUD with optimistic concurrency.

Every row carries a version. update() is a compare-and-set expressed as
one conditional UPDATE: it only writes when the stored version still
equals the version the caller read, and bumps it in the same statement.
Two editors working from the same version can't both win; the loser
gets EditConflict and re-reads. No row locks are taken.

Deletes are unconditional. Ids outside 1..MAX_ID are reported as
RecordNotFound without a query.
"""

from dataclasses import dataclass, replace
from datetime import datetime

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.db.engine import store_deadline
from myreference.db.models import MAX_ID, Reference
from myreference.errors import EditConflict, RecordNotFound
from myreference.validator import Validator, byte_length

logger = structlog.get_logger()

MAX_NAME_BYTES = 200
MAX_LOCATION_BYTES = 500


@dataclass(frozen=True)
class ReferenceRecord:
    id: int
    created_at: datetime
    name: str
    location: str
    version: int


def validate_reference(v: Validator, name: str, location: str) -> None:
    v.check(name != "", "name", "must be provided")
    v.check(
        byte_length(name) <= MAX_NAME_BYTES,
        "name",
        f"must not be more than {MAX_NAME_BYTES} bytes long",
    )
    v.check(location != "", "storage-location", "must be provided")
    v.check(
        byte_length(location) <= MAX_LOCATION_BYTES,
        "storage-location",
        f"must not be more than {MAX_LOCATION_BYTES} bytes long",
    )


class ReferenceService:
    """Data access for reference records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, name: str, location: str) -> ReferenceRecord:
        """Create a record; id, created_at and version=1 come from the DB."""
        stmt = (
            insert(Reference)
            .values(name=name, location=location)
            .returning(Reference.id, Reference.created_at, Reference.version)
        )
        async with store_deadline("references.insert"):
            row = (await self.db.execute(stmt)).one()
            await self.db.commit()

        logger.info("reference.created", reference_id=row.id)
        return ReferenceRecord(
            id=row.id,
            created_at=row.created_at,
            name=name,
            location=location,
            version=row.version,
        )

    async def get(self, reference_id: int) -> ReferenceRecord:
        if not 1 <= reference_id <= MAX_ID:
            raise RecordNotFound()
        q = select(
            Reference.id,
            Reference.created_at,
            Reference.name,
            Reference.location,
            Reference.version,
        ).where(Reference.id == reference_id)
        async with store_deadline("references.get"):
            row = (await self.db.execute(q)).first()
        if row is None:
            raise RecordNotFound()
        return ReferenceRecord(**row._asdict())

    async def update(self, reference: ReferenceRecord) -> ReferenceRecord:
        """Persist reference if its version is still current.

        Returns the record carrying the incremented version. Raises
        EditConflict when the row was changed (or deleted) since
        reference was read.
        """
        stmt = (
            update(Reference)
            .where(
                Reference.id == reference.id,
                Reference.version == reference.version,
            )
            .values(
                name=reference.name,
                location=reference.location,
                version=Reference.version + 1,
            )
            .returning(Reference.version)
            .execution_options(synchronize_session=False)
        )
        async with store_deadline("references.update"):
            new_version = (await self.db.execute(stmt)).scalar_one_or_none()
            if new_version is None:
                await self.db.rollback()
                logger.info(
                    "reference.edit_conflict",
                    reference_id=reference.id,
                    version=reference.version,
                )
                raise EditConflict()
            await self.db.commit()

        logger.info("reference.updated", reference_id=reference.id, version=new_version)
        return replace(reference, version=new_version)

    async def delete(self, reference_id: int) -> None:
        if not 1 <= reference_id <= MAX_ID:
            raise RecordNotFound()
        async with store_deadline("references.delete"):
            result = await self.db.execute(
                delete(Reference)
                .where(Reference.id == reference_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        if result.rowcount == 0:
            raise RecordNotFound()
        logger.info("reference.deleted", reference_id=reference_id)
