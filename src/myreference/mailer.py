"""Outbound mail.

Only the activation message is sent today. The SMTP transport is not
part of this service; LogMailer records each delivery through structlog
(recipient and user id, never the token) so operators can see that a
registration produced a mail. Swap in another Mailer via get_mailer.
"""

from typing import Protocol

import structlog

logger = structlog.get_logger()


class Mailer(Protocol):
    async def send_activation(
        self, recipient: str, name: str, user_id: int, token: str
    ) -> None: ...


class LogMailer:
    async def send_activation(
        self, recipient: str, name: str, user_id: int, token: str
    ) -> None:
        logger.info(
            "mailer.activation_sent",
            recipient=recipient,
            user_id=user_id,
        )


_mailer: Mailer = LogMailer()


def get_mailer() -> Mailer:
    """FastAPI dependency: the configured mailer."""
    return _mailer
