"""Alembic environment for the Conduit schema.

Runs against the async engine configured in ``conduit.config``.  The
database URL can be overridden per invocation with
``alembic -x db_url=... upgrade head`` (useful for a throwaway SQLite file).
"""

import asyncio
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from conduit.config import settings
from conduit.database import Base

# Registers every table on Base.metadata.
import conduit.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("db_url", settings.DATABASE_URL)


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite cannot ALTER constraints in place.
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of executing it."""
    url = _database_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, **_configure_options(str(connection.engine.url)))
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    url = _database_url()
    connectable = create_async_engine(url, pool_pre_ping=True)
    logger.info("Migrating %s", connectable.url.render_as_string(hide_password=True))
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
