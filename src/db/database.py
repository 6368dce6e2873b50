# manages connection to db, provides helper methods internal to db package
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from db.dialects import Connection, Dialect, dialect_from_config
from db.schema import ensure_schema
from utils.logger import get_logger

_logger = get_logger(__name__)

_dialect: Optional[Dialect] = None
_initialized = False
_init_lock = asyncio.Lock()


def get_dialect() -> Dialect:
    global _dialect
    if _dialect is None:
        _dialect = dialect_from_config()
    return _dialect


def use_dialect(dialect: Dialect) -> None:
    """Point the db package at another backend; provisioning runs again."""
    global _dialect, _initialized, _init_lock
    _dialect = dialect
    _initialized = False
    _init_lock = asyncio.Lock()


@asynccontextmanager
async def connect() -> Connection:
    """Async context manager yielding a dialect connection.

    Ensures the database is provisioned (tables and seed data) on first use.
    """
    global _initialized
    dialect = get_dialect()
    conn = await dialect.connect()
    try:
        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    _logger.info(f"Checking schema on {dialect.describe()}...")
                    created = await ensure_schema(conn)
                    if created:
                        _logger.info(f"Provisioned tables: {', '.join(created)}")
                    _initialized = True
        yield conn
    finally:
        await conn.close()
