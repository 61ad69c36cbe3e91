"""
Domain errors and their translation into the ``{"errors": {...}}`` envelope.

Services raise these; only the handlers registered here know about HTTP
response bodies.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ConduitError(Exception):
    """Base class for errors that map onto a client-facing status code."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: dict[str, list[str]], status_code: int | None = None):
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code
        super().__init__(errors)


class NotFoundError(ConduitError):
    """Raised when an article, comment, profile or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__({resource: ["not found"]})


class ForbiddenError(ConduitError):
    """Raised when the viewer does not own the resource being mutated."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, resource: str, message: str):
        super().__init__({resource: [message]})


class ConflictError(ConduitError):
    """Raised on duplicate unique fields and on self-follow attempts."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, field: str, message: str, status_code: int | None = None):
        super().__init__({field: [message]}, status_code=status_code)


class UnauthorizedError(ConduitError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, field: str, message: str):
        super().__init__({field: [message]})


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _validation_field(loc: tuple) -> str:
    """Turn ``("body", "article", "title")`` into ``"article.title"``."""
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts) or "body"


def format_validation_errors(errors: list[dict]) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    for err in errors:
        messages = result.setdefault(_validation_field(tuple(err.get("loc", ()))), [])
        message = err.get("msg", "is invalid")
        if message not in messages:
            messages.append(message)
    return result


async def conduit_error_handler(request: Request, exc: ConduitError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"errors": exc.errors})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"errors": format_validation_errors(exc.errors())},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"errors": {"server": ["internal server error"]}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConduitError, conduit_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
