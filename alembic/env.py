# alembic/env.py
from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import MetaData, pool
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.engine.url import make_url

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

# DOTENV_PATH wins, otherwise the project's .env
load_dotenv(os.getenv("DOTENV_PATH", Path(__file__).resolve().parent.parent / ".env"))

from tripshare.core.config import settings

# ───── build a clean URL for Alembic ──────────────────────────────
url_obj = make_url(settings.DATABASE_URL)

# Drop libpq-only query keys that upset asyncpg
bad_keys = {"sslmode", "sslrootcert", "sslcert", "sslkey"}
clean_qs = {k: v for k, v in url_obj.query.items() if k not in bad_keys}

DATABASE_URL = (
    url_obj.set(query=clean_qs)
           .set(drivername="postgresql+asyncpg")
           .render_as_string(hide_password=False)
)

# The schema is written by hand in versions/; there are no ORM models
target_metadata = MetaData()

AUTOGEN_KW = dict(
    target_metadata=target_metadata,
    compare_type=True,
    compare_server_default=True,
)


# -------------- OFFLINE (--sql) -----------------
def run_migrations_offline() -> None:
    context.configure(url=DATABASE_URL,
                      literal_binds=True,
                      dialect_opts={"paramstyle": "named"},
                      **AUTOGEN_KW)
    with context.begin_transaction():
        context.run_migrations()


# -------------- ONLINE (real DB) ---------------
def _run_sync(sync_conn) -> None:
    context.configure(connection=sync_conn, **AUTOGEN_KW)
    with context.begin_transaction():
        context.run_migrations()


async def do_run_migrations() -> None:
    connect_args = {}
    if settings.DB_SSL_MODE in ("require", "verify-ca", "verify-full"):
        connect_args["ssl"] = settings.DB_SSL_MODE
    engine: AsyncEngine = create_async_engine(
        DATABASE_URL, poolclass=pool.NullPool, connect_args=connect_args
    )

    async with engine.connect() as conn:
        await conn.run_sync(_run_sync)
        await conn.commit()
    await engine.dispose()


def run_migrations_online() -> None:
    asyncio.run(do_run_migrations())
# ------------------------------------------------


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
