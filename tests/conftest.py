"""
Test infrastructure for the Conduit API.

Strategy
--------
- SQLite in-memory via aiosqlite removes the need for a running Postgres
  instance; the repositories switch to SQLite's ``ON CONFLICT DO NOTHING``
  automatically.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped.
- The app's get_db dependency is overridden so every request uses the
  test session factory.
- SQLite savepoints are enabled the same way as for a SQLite production
  URL, so ``begin_nested()`` rolls back without ending the request
  transaction.
- All tables are created before each test and dropped after.
- Redis is disabled by setting cache._redis = None; the CacheManager
  treats that as a permanent miss.
"""
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from conduit.cache import cache
from conduit.database import Base, enable_sqlite_savepoints, get_db
from conduit.main import app
from conduit.middleware import install_query_counter

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)
enable_sqlite_savepoints(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for service-level tests; changes are flushed, never committed."""
    async with async_session_test() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
