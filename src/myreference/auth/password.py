"""Password hashing in two explicit stages.

PasswordInput carries the plaintext a client submitted. It is validated
and turned into a PasswordHash, then dropped; nothing persists or
serialises it.

PasswordHash carries only the bcrypt hash. bcrypt salts every hash and
the work factor (settings.bcrypt_rounds, 12 by default) keeps each
attempt around 100ms on current hardware.

bcrypt only looks at the first 72 bytes of a password, so longer input
is rejected by validation rather than silently truncated.
"""

from dataclasses import dataclass
from typing import Optional

import bcrypt

from myreference.config import settings
from myreference.errors import HashingFailure, PasswordCheckError
from myreference.validator import Validator, byte_length

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class PasswordInput:
    plaintext: str

    def validate(self, v: Validator) -> None:
        v.check(self.plaintext != "", "password", "must be provided")
        v.check(
            len(self.plaintext) >= MIN_PASSWORD_LENGTH,
            "password",
            f"must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
        v.check(
            byte_length(self.plaintext) <= MAX_PASSWORD_BYTES,
            "password",
            f"must not be more than {MAX_PASSWORD_BYTES} bytes long",
        )

    def __repr__(self) -> str:
        return "PasswordInput(plaintext=<redacted>)"


@dataclass(frozen=True)
class PasswordHash:
    hash: bytes

    @classmethod
    def from_plaintext(
        cls, plaintext: str, rounds: Optional[int] = None
    ) -> "PasswordHash":
        """Derive a salted bcrypt hash.

        Raises HashingFailure when bcrypt rejects the input itself
        (bcrypt 5 refuses passwords over 72 bytes).
        """
        try:
            salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
            return cls(bcrypt.hashpw(plaintext.encode("utf-8"), salt))
        except ValueError as e:
            raise HashingFailure(f"bcrypt rejected password: {e}") from e

    def matches(self, plaintext: str) -> bool:
        """Constant-time comparison of plaintext against the stored hash.

        A wrong password is False. A hash bcrypt can't read is not a
        wrong password: it raises PasswordCheckError.
        """
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), self.hash)
        except (ValueError, TypeError) as e:
            raise PasswordCheckError(f"unable to compare password hash: {e}") from e
