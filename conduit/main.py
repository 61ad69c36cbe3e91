import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from conduit.cache import cache
from conduit.config import settings
from conduit.database import dispose_engine
from conduit.exceptions import register_exception_handlers
from conduit.middleware import TimingMiddleware
from conduit.routers import articles, comments, profiles, tags, users
from conduit.schemas import HealthResponse

VERSION = "1.0.0"

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; the API works without Redis, connect() only logs on failure.
    await cache.connect()
    logger.info("Conduit API started (env=%s)", settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()
    await dispose_engine()


app = FastAPI(
    title="Conduit API",
    description="RealWorld (Medium clone) backend: users, profiles, articles, comments and tags",
    version=VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users.router)
app.include_router(profiles.router)
app.include_router(articles.router)
app.include_router(comments.router)
app.include_router(tags.router)


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="healthy", version=VERSION, cache_info=cache.stats)
