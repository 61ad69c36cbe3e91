from fastapi import Depends, Query
from fastapi.security import APIKeyHeader

from conduit.config import settings
from conduit.exceptions import UnauthorizedError
from conduit.security import decode_access_token

# Documented in OpenAPI as an API key so clients can send "Token <jwt>".
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

_TOKEN_SCHEMES = ("token", "bearer")


def _extract_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() not in _TOKEN_SCHEMES or not token.strip():
        raise UnauthorizedError(
            "token",
            "is missing. Authorization header is required in the form: 'Token <token>'",
        )
    return token.strip()


async def get_viewer_id(
    authorization: str | None = Depends(authorization_header),
) -> int | None:
    """
    Resolve the requesting viewer, or None for anonymous requests.

    A header that is present but invalid is rejected rather than silently
    downgraded to anonymous.
    """
    token = _extract_token(authorization)
    if token is None:
        return None
    return decode_access_token(token)["uid"]


async def require_viewer_id(viewer_id: int | None = Depends(get_viewer_id)) -> int:
    if viewer_id is None:
        raise UnauthorizedError(
            "token",
            "is missing. Authorization header is required in the form: 'Token <token>'",
        )
    return viewer_id


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates the ``limit`` /
    ``offset`` query parameters of the article listings.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(pagination: PaginationParams = Depends(PaginationParams)):
            ...

    Attributes
    ----------
    limit:
        Maximum number of articles returned, clamped to
        ``settings.MAX_LIMIT`` regardless of the value supplied.
    offset:
        Number of articles skipped after filtering and ordering.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_LIMIT,
            ge=1,
            description="Number of articles returned.",
        ),
        offset: int = Query(
            0,
            ge=0,
            description="Number of articles skipped.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_LIMIT)
        self.offset = offset
