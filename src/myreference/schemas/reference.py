"""Pydantic schemas for reference records.

The storage location travels as "storage-location" on the wire.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ReferenceCreate(BaseModel):
    name: str = ""
    location: str = Field(default="", alias="storage-location")

    model_config = {"populate_by_name": True}


class ReferenceUpdate(BaseModel):
    """Partial update: only supplied fields change.

    version, when supplied, is the version the client last read; the
    update fails with 409 if the record has moved on since.
    """

    name: Optional[str] = None
    location: Optional[str] = Field(default=None, alias="storage-location")
    version: Optional[int] = Field(default=None, ge=1)

    model_config = {"populate_by_name": True}


class ReferenceRead(BaseModel):
    id: int
    name: str
    location: str = Field(serialization_alias="storage-location")
    version: int

    model_config = {"from_attributes": True}
