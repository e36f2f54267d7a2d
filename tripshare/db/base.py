# tripshare/db/base.py
import logging
import asyncio
import os
from typing import Optional

import asyncpg
from tripshare.core.config import settings, BASE_DIR
from tripshare.db.memory import InMemoryDocumentStore


logger = logging.getLogger(__name__)

# Global pool variable
db_pool: Optional[asyncpg.Pool] = None

# Shared store for STORAGE_BACKEND=memory; lives as long as the process.
memory_store = InMemoryDocumentStore()

async def init_db_pool():
    """Initializes the asyncpg connection pool."""
    global db_pool
    if db_pool:
        logger.warning("Database pool already initialized.")
        return

    logger.info("Initializing asyncpg database pool...")

    # --- Check for CA certificate file if SSL verification is required ---
    if settings.DB_SSL_MODE in ['verify-ca', 'verify-full']:
        if not settings.DB_CA_CERT_FILE:
             logger.critical("DB_SSL_MODE is set to verify-ca or verify-full, but DB_CA_CERT_FILE is not specified in settings.")
             raise RuntimeError("Database CA certificate file not configured for required SSL mode.")

        ca_cert_path = os.path.join(BASE_DIR, 'certs', settings.DB_CA_CERT_FILE)

        if not os.path.exists(ca_cert_path):
             logger.critical(f"Database CA certificate file not found at expected path: {ca_cert_path}")
             raise FileNotFoundError(f"Database CA certificate file not found: {ca_cert_path}")

        logger.info(f"Using Database CA certificate file: {ca_cert_path} for sslmode={settings.DB_SSL_MODE}")
    elif settings.DB_SSL_MODE not in ['disable', 'allow', 'prefer', 'require']:
         logger.critical(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")
         raise ValueError(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")
    # --- End CA certificate check ---

    retries = 5
    delay_seconds = 5
    while retries > 0:
        try:
            logger.info("Attempting to connect to DB using DSN derived from settings...") # Avoid logging password in DSN
            db_pool = await asyncpg.create_pool(
                dsn=settings.DATABASE_URL,
                min_size=2,
                max_size=20,
                command_timeout=60,
            )
            # Test connection during startup
            async with db_pool.acquire() as conn:
                await conn.execute("SELECT 1")
            logger.info("Asyncpg database pool initialized and connection tested (min: 2, max: 20).")
            return # Success

        except (OSError, asyncpg.PostgresError) as e:
            # Connection errors are retried; anything else needs a manual fix
            retries -= 1
            logger.warning(f"Database pool initialization failed ({type(e).__name__}: {e}), retrying in {delay_seconds}s ({retries} left)...", exc_info=False)
            if retries == 0:
                logger.critical("Database pool initialization failed after multiple retries.", exc_info=True)
                db_pool = None
                raise RuntimeError("Failed to connect to database after multiple retries.") from e
            await asyncio.sleep(delay_seconds)
        except Exception as e:
            logger.critical(f"CRITICAL: Unexpected error during database pool initialization: {e}", exc_info=True)
            db_pool = None
            raise RuntimeError("Unexpected error initializing database pool.") from e


async def close_db_pool():
    """Closes the asyncpg connection pool gracefully."""
    global db_pool
    pool_to_close = db_pool
    if pool_to_close:
        logger.info("Closing asyncpg database pool gracefully using close()...")
        try:
            await pool_to_close.close()
            logger.info("Asyncpg database pool closed gracefully.")
        except Exception as e:
            logger.error(f"Caught Exception during close(): {e}", exc_info=True)
        db_pool = None
    else:
         logger.warning("Attempted to close DB pool, but it was not initialized (db_pool is None).")
