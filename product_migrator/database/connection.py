from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from product_migrator.config.settings import Settings

_pool: ConnectionPool | None = None


def init_pool(settings: Settings) -> None:
    """Initialize the audit store connection pool from settings."""
    global _pool  # noqa: PLW0603
    conninfo = (
        f"host={settings.audit_db_host} "
        f"port={settings.audit_db_port} "
        f"dbname={settings.audit_db_database} "
        f"user={settings.audit_db_username} "
        f"password={settings.audit_db_password}"
    )
    _pool = ConnectionPool(conninfo, min_size=1, max_size=settings.audit_pool_max_size)


def close_pool() -> None:
    """Close the audit store connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield an audit store connection. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Audit pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn
