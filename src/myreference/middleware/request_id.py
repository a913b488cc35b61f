"""Request context middleware: request id, access log line.

The id comes from the incoming X-Request-ID header or is generated, is
bound into structlog's contextvars for every event logged while the
request runs, and is echoed back on the response.

Once the response is ready one "request.completed" event is logged with
the status, the duration, and the user the request authenticated as
(read from request.state.identity, set by the authenticate dependency).
"""

import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from myreference.auth.dependencies import Authenticated

logger = structlog.get_logger()

MAX_REQUEST_ID_LENGTH = 128


def _resolved_user_id(request: Request) -> Optional[int]:
    match getattr(request.state, "identity", None):
        case Authenticated(user=user):
            return user.id
        case _:
            return None


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get("X-Request-ID", "")
        if not incoming or len(incoming) > MAX_REQUEST_ID_LENGTH:
            incoming = uuid.uuid4().hex
        request_id = incoming

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()

        response: Response = await call_next(request)

        logger.info(
            "request.completed",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            user_id=_resolved_user_id(request),
        )
        response.headers["X-Request-ID"] = request_id
        return response
