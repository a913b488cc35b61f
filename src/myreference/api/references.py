"""References API: CRUD over reference records.

- POST   /references       (reference:write) → 201 + Location header
- GET    /references/{id}  (reference:read)
- PATCH  /references/{id}  (reference:write) → partial update, 409 on stale version
- DELETE /references/{id}  (reference:write)

Ids that aren't plain positive integers (signs, spaces, underscores,
or beyond the id column range) are reported as 404, same as a missing
row.
"""

from dataclasses import replace

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from myreference.api.envelope import envelope
from myreference.auth.dependencies import Authenticated
from myreference.auth.permissions import (
    PERMISSION_READ,
    PERMISSION_WRITE,
    require_permission,
)
from myreference.db.engine import get_db
from myreference.db.models import MAX_ID
from myreference.errors import RecordNotFound
from myreference.schemas.reference import ReferenceCreate, ReferenceRead, ReferenceUpdate
from myreference.services.reference_service import ReferenceService, validate_reference
from myreference.validator import Validator

router = APIRouter(prefix="/references")

can_read = require_permission(PERMISSION_READ)
can_write = require_permission(PERMISSION_WRITE)


def read_id_param(raw: str) -> int:
    """Parse a path id: ASCII digits only, within the id column range."""
    if not (raw.isascii() and raw.isdigit()) or len(raw) > len(str(MAX_ID)):
        raise RecordNotFound()
    value = int(raw)
    if not 1 <= value <= MAX_ID:
        raise RecordNotFound()
    return value


@router.post("", status_code=201)
async def create_reference(
    body: ReferenceCreate,
    response: Response,
    identity: Authenticated = Depends(can_write),
    db: AsyncSession = Depends(get_db),
):
    v = Validator()
    validate_reference(v, body.name, body.location)
    v.raise_if_invalid()

    reference = await ReferenceService(db).insert(body.name, body.location)
    response.headers["Location"] = f"/v1/references/{reference.id}"
    return envelope(reference=ReferenceRead.model_validate(reference))


@router.get("/{id}")
async def show_reference(
    id: str,
    identity: Authenticated = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    reference = await ReferenceService(db).get(read_id_param(id))
    return envelope(reference=ReferenceRead.model_validate(reference))


@router.patch("/{id}")
async def update_reference(
    id: str,
    body: ReferenceUpdate,
    identity: Authenticated = Depends(can_write),
    db: AsyncSession = Depends(get_db),
):
    references = ReferenceService(db)
    reference = await references.get(read_id_param(id))

    # A client-supplied version becomes the expected version of the
    # conditional write, so a stale one fails there with EditConflict.
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    reference = replace(reference, **changes)

    v = Validator()
    validate_reference(v, reference.name, reference.location)
    v.raise_if_invalid()

    reference = await references.update(reference)
    return envelope(reference=ReferenceRead.model_validate(reference))


@router.delete("/{id}")
async def delete_reference(
    id: str,
    identity: Authenticated = Depends(can_write),
    db: AsyncSession = Depends(get_db),
):
    await ReferenceService(db).delete(read_id_param(id))
    return {"message": "reference successfully deleted"}
