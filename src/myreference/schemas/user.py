"""Pydantic schemas for users and activation.

Request bodies default every field to "" so a missing field reaches
domain validation and is reported as "must be provided" alongside the
other field errors, instead of failing schema parsing on its own.
"""

from datetime import datetime

from pydantic import BaseModel


class UserRegister(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class UserActivate(BaseModel):
    token: str = ""


class UserRead(BaseModel):
    """Public view of a user. No password, no version."""

    id: int
    created_at: datetime
    name: str
    email: str
    activated: bool

    model_config = {"from_attributes": True}
