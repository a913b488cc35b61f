"""Pydantic schemas for token issuance."""

from datetime import datetime

from pydantic import BaseModel


class CredentialsIn(BaseModel):
    email: str = ""
    password: str = ""


class AuthenticationTokenRead(BaseModel):
    """Returned once; the plaintext can't be recovered afterwards."""

    token: str
    expiry: datetime
