from collections.abc import Generator
from contextlib import contextmanager

import oracledb

from product_migrator.config.settings import Settings
from product_migrator.database.exceptions import ConnectionUnavailableError
from product_migrator.logging.logger import Log
from product_migrator.session.context_guard import SessionContextGuard

_pool: oracledb.ConnectionPool | None = None


def init_primary_pool(settings: Settings, guard: SessionContextGuard) -> None:
    """Initialize the primary store session pool.

    Every new pooled session is bound to the configured tenant by the guard
    before it is handed out.
    """
    global _pool  # noqa: PLW0603
    if settings.oracle_lib_dir:
        oracledb.init_oracle_client(lib_dir=settings.oracle_lib_dir)

    def _bind_tenant(conn: oracledb.Connection, _requested_tag: str | None) -> None:
        guard.ensure_context(conn, settings.tenant_id)

    _pool = oracledb.create_pool(
        user=settings.oracle_user,
        password=settings.oracle_password,
        dsn=settings.oracle_dsn,
        min=settings.oracle_pool_min,
        max=settings.oracle_pool_max,
        increment=settings.oracle_pool_increment,
        session_callback=_bind_tenant,
    )


def close_primary_pool() -> None:
    """Close the primary store session pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close(force=True)
        _pool = None


@contextmanager
def get_primary_connection() -> Generator[oracledb.Connection, None, None]:
    """Yield a tenant-bound primary store session. Caller manages commit/rollback.

    Raises:
        ConnectionUnavailableError: if no session could be acquired.
    """
    if _pool is None:
        raise ConnectionUnavailableError(
            "Primary pool not initialized. Call init_primary_pool() first."
        )
    try:
        conn = _pool.acquire()
    except oracledb.Error as exc:
        raise ConnectionUnavailableError(str(exc)) from exc

    try:
        yield conn
    finally:
        try:
            _pool.release(conn)
        except oracledb.Error as exc:
            Log.warning(f"Failed to release primary store session: {exc}")
