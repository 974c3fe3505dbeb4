# src/lockbox/db/init_db.py
import os
import asyncpg
from typing import Optional

from lockbox.config import settings
from lockbox.utils.logger import get_logger

logger = get_logger("lockbox.db")

# Connection parameters come from Settings (environment or .env)
DB_CONFIG = {
    "user": settings.POSTGRES_USER,
    "password": settings.POSTGRES_PASSWORD,
    "database": settings.POSTGRES_DB,
    "host": settings.POSTGRES_HOST,
    "port": int(settings.POSTGRES_PORT),
}

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")

# Global connection pool
_pool: Optional[asyncpg.Pool] = None

# -------------------- POOL MANAGEMENT --------------------
async def get_pool() -> asyncpg.Pool:
    """Get or create the connection pool."""
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            **DB_CONFIG,
            min_size=2,
            max_size=10,
            command_timeout=60
        )
    return _pool

async def close_pool():
    """Close the connection pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None

# close() hands the connection back to the pool
class PooledConnection:
    """Wrapper that releases connection to pool when close() is called."""
    def __init__(self, conn, pool):
        self._conn = conn
        self._pool = pool
        self._closed = False

    async def close(self):
        if not self._closed:
            await self._pool.release(self._conn)
            self._closed = True

    def __getattr__(self, name):
        """Delegate all other methods to the asyncpg connection."""
        return getattr(self._conn, name)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


async def get_db_connection():
    """Acquire a connection from the pool."""
    try:
        pool = await get_pool()
        conn = await pool.acquire()
        return PooledConnection(conn, pool)
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise


async def init_db():
    """Apply every migration in order. Statements are idempotent."""
    conn = await get_db_connection()
    try:
        for filename in sorted(os.listdir(MIGRATIONS_DIR)):
            if not filename.endswith(".sql"):
                continue
            with open(os.path.join(MIGRATIONS_DIR, filename), "r") as f:
                await conn.execute(f.read())
            logger.info(f"Migration {filename} applied")
    finally:
        await conn.close()


if __name__ == "__main__":
    import asyncio
    asyncio.run(init_db())
