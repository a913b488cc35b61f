"""Field-level validation that runs before any store call.

Pydantic checks the shape of a request body; the rules here are the
domain ones (lengths in bytes, email format, token size). Errors are
collected per field, first message wins, and raised together as a
ValidationFailure.
"""

import re

from myreference.errors import ValidationFailure

EMAIL_RX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


class Validator:
    def __init__(self):
        self.errors: dict[str, str] = {}

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        self.errors.setdefault(key, message)

    def check(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_error(key, message)

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise ValidationFailure(self.errors)


def matches(value: str, pattern: re.Pattern) -> bool:
    return pattern.match(value) is not None


def byte_length(value: str) -> int:
    return len(value.encode("utf-8"))


def validate_email(v: Validator, email: str) -> None:
    v.check(email != "", "email", "must be provided")
    v.check(matches(email, EMAIL_RX), "email", "must be a valid email address")
