from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from conduit.config import settings
from conduit.middleware import install_query_counter


def _engine_options(url: str) -> dict:
    # SQLite (local runs, throwaway migrations) has no real pool to size.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


def enable_sqlite_savepoints(engine) -> None:
    """
    Hand transaction control for a SQLite *engine* to SQLAlchemy.

    The sqlite3 driver opens transactions lazily and lets an outermost
    ``RELEASE SAVEPOINT`` commit, which breaks ``begin_nested()`` inside a
    request transaction.  With the driver's handling disabled, every
    SQLAlchemy transaction starts with an explicit ``BEGIN``.
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

# Every statement on this engine feeds the X-Query-Count header.
install_query_counter(engine)
if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield one session per request.

    The whole request is a single transaction: services only flush, and
    this dependency commits on success or rolls back on any exception, so
    multi-row writes (an article plus its tag links) land together or not
    at all.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections; called once at application shutdown."""
    await engine.dispose()
