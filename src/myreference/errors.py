"""Error taxonomy and the handlers that render it.

Every failure the API can report is one AppError subclass carrying its
HTTP status. Stores raise them directly (RecordNotFound, EditConflict,
DuplicateEmail, StoreTimeout) so routes only catch what they translate.

Response bodies are envelopes:
- {"error": "<message>"} for most failures
- {"errors": {"<field>": "<message>"}} for validation failures

ServerError and anything unexpected is logged with full context and
reported to the client as an opaque message.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()

SERVER_ERROR_MESSAGE = (
    "the server encountered a problem and could not process your request"
)


class AppError(Exception):
    """Base class for every failure rendered to the client."""

    status_code: int = 500
    message: str = SERVER_ERROR_MESSAGE
    headers: Optional[dict[str, str]] = None

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def body(self) -> dict:
        return {"error": self.message}


# ─── Client errors ───────────────────────────────────────


class BadRequest(AppError):
    status_code = 400
    message = "the request could not be understood"


class ValidationFailure(AppError):
    """Field-level validation errors (field → message)."""

    status_code = 422

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("failed validation")

    def body(self) -> dict:
        return {"errors": self.errors}


class DuplicateEmail(ValidationFailure):
    def __init__(self):
        super().__init__({"email": "a user with this email address already exists"})


class RecordNotFound(AppError):
    status_code = 404
    message = "the requested resource could not be found"


class TokenNotFound(RecordNotFound):
    """No unexpired token with that hash and scope (wrong and expired look alike)."""


class EditConflict(AppError):
    status_code = 409
    message = "unable to update the record due to an edit conflict, please try again"


class InvalidCredentials(AppError):
    status_code = 401
    message = "invalid authentication credentials"


class InvalidAuthToken(AppError):
    status_code = 401
    message = "invalid or missing authentication token"
    headers = {"WWW-Authenticate": "Bearer", "Vary": "Authorization"}


class AuthenticationRequired(AppError):
    status_code = 401
    message = "you must be authenticated to access this resource"
    headers = {"Vary": "Authorization"}


class InactiveAccount(AppError):
    status_code = 403
    message = "your user account must be activated to access this resource"
    headers = {"Vary": "Authorization"}


class PermissionDenied(AppError):
    status_code = 403
    message = (
        "your user account doesn't have the necessary permissions "
        "to access this resource"
    )
    headers = {"Vary": "Authorization"}


# ─── Server errors ───────────────────────────────────────


class ServerError(AppError):
    """Anything the client can't fix. Details stay in the logs."""

    def __init__(self, detail: str = "unexpected server error"):
        self.detail = detail
        super().__init__()

    def __str__(self) -> str:
        return self.detail


class StoreError(ServerError):
    """Unclassified persistence failure."""


class StoreTimeout(ServerError):
    """A store call outlived its deadline."""


class HashingFailure(ServerError):
    """bcrypt refused to hash the input."""


class PasswordCheckError(ServerError):
    """A stored hash couldn't be compared (corrupted or unsupported)."""


# ─── Handlers ────────────────────────────────────────────


def _field_name(loc: tuple) -> str:
    parts = [str(item) for item in loc if item not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, ServerError):
        logger.error(
            "request.server_error",
            method=request.method,
            path=request.url.path,
            error=exc.detail,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
    return JSONResponse(
        status_code=exc.status_code, content=exc.body(), headers=exc.headers
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Schema errors → 422 field map; unparseable JSON → 400."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        if err.get("type") == "json_invalid":
            return await app_error_handler(
                request, BadRequest("body contains badly-formed JSON")
            )
        errors.setdefault(_field_name(tuple(err.get("loc", ()))), err.get("msg", "invalid"))
    return await app_error_handler(request, ValidationFailure(errors))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        message = RecordNotFound.message
    elif exc.status_code == 405:
        message = f"the {request.method} method is not supported for this resource"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request.unhandled_exception",
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content={"error": SERVER_ERROR_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)
