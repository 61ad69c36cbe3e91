import logging
import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Per-request context variable
# ---------------------------------------------------------------------------

query_count_var: ContextVar[int] = ContextVar("query_count", default=0)


def install_query_counter(engine) -> None:
    """
    Register a ``before_cursor_execute`` event listener on *engine* that
    increments the per-request ``query_count_var`` for every SQL statement.

    This captures every statement, including those issued by the
    ``selectinload`` strategy and by the batched enrichment reads, so the
    ``X-Query-Count`` header shows whether a listing stays constant in
    round-trips as the page grows.

    Must be called once per engine (production engine in ``database.py``,
    test engine in ``conftest.py``).
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _count_query(conn, cursor, statement, parameters, context, executemany):
        query_count_var.set(query_count_var.get() + 1)


# ---------------------------------------------------------------------------
# Middleware (pure ASGI, avoids BaseHTTPMiddleware ContextVar isolation)
# ---------------------------------------------------------------------------

class TimingMiddleware:
    """
    Pure ASGI middleware that adds two diagnostic response headers and logs
    one line per request:

    - ``X-Response-Time-Ms``: wall-clock time until the response starts.
    - ``X-Query-Count``: SQL statements executed during the request.

    Unlike ``BaseHTTPMiddleware``, this does NOT spawn a child asyncio
    task for the inner application, so ``ContextVar`` mutations are
    visible when we read the counter in ``send_wrapper``.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        query_count_var.set(0)
        start = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                queries = query_count_var.get()
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                headers.append((b"x-query-count", str(queries).encode()))
                message["headers"] = headers
                logger.info(
                    "%s %s -> %s in %sms (%d queries)",
                    scope["method"],
                    scope["path"],
                    message["status"],
                    duration_ms,
                    queries,
                )
            await send(message)

        await self.app(scope, receive, send_wrapper)
