from dataclasses import dataclass
from typing import Any

import oracledb

from product_migrator.logging.logger import Log
from product_migrator.session.exceptions import (
    ContextMismatchError,
    ContextSwitchError,
    ContextUnavailableError,
)


@dataclass(frozen=True)
class TenantSwitchProcedure:
    """A named PL/SQL block that pins the session to a tenant."""

    name: str
    sql: str


# Tried in order; the first one that succeeds wins.
TENANT_SWITCH_PROCEDURES: tuple[TenantSwitchProcedure, ...] = (
    TenantSwitchProcedure(
        "DBAMV.PKG_MV_CONFIG", "BEGIN dbamv.pkg_mv_config.set_empresa(:p_emp); END;"
    ),
    TenantSwitchProcedure(
        "DBAMV.MS_SET_CONFIG", "BEGIN dbamv.ms_set_config.set_empresa(:p_emp); END;"
    ),
    TenantSwitchProcedure(
        "PKG_MV_CONFIG", "BEGIN pkg_mv_config.set_empresa(:p_emp); END;"
    ),
    TenantSwitchProcedure(
        "MS_SET_CONFIG", "BEGIN ms_set_config.set_empresa(:p_emp); END;"
    ),
)


class SessionContextGuard:
    """Pins a primary store session to a tenant and proves it by read-back.

    Only session-local state is touched; no commit is issued.
    """

    def __init__(
        self,
        skip: bool = False,
        procedures: tuple[TenantSwitchProcedure, ...] = TENANT_SWITCH_PROCEDURES,
    ) -> None:
        self._skip = skip
        self._procedures = procedures

    def ensure_context(self, conn: oracledb.Connection, tenant_id: int) -> None:
        """Bind ``conn`` to ``tenant_id``.

        Raises:
            ContextUnavailableError: tenant has no configuration record, or the
                session rejected a context statement.
            ContextSwitchError: none of the switch procedures succeeded.
            ContextMismatchError: the session reads back another tenant.
        """
        if self._skip:
            Log.warning(
                f"Tenant context check disabled: skipping switch to tenant {tenant_id}"
            )
            return

        try:
            with conn.cursor() as cur:
                self._require_configuration(cur, tenant_id)
                self._switch_tenant(cur, tenant_id)
                cur.execute("BEGIN dbamv.pkt_configest.inicializa; END;")
                cur.execute("SELECT dbamv.pkg_mv2000.le_empresa FROM dual")
                row = cur.fetchone()
        except oracledb.Error as exc:
            raise ContextUnavailableError(
                f"Could not set up tenant {tenant_id} session context: {exc}"
            ) from exc

        session_tenant = row[0] if row else None
        if _as_tenant(session_tenant) != tenant_id:
            raise ContextMismatchError(tenant_id, session_tenant)

    def _require_configuration(self, cur: Any, tenant_id: int) -> None:
        cur.execute(
            """
            SELECT COUNT(*)
              FROM dbamv.configest
             WHERE cd_multi_empresa = :p_emp
            """,
            {"p_emp": tenant_id},
        )
        row = cur.fetchone()
        if row is None or int(row[0] or 0) < 1:
            raise ContextUnavailableError(
                f"Tenant {tenant_id} has no record in DBAMV.CONFIGEST"
            )

    def _switch_tenant(self, cur: Any, tenant_id: int) -> None:
        failures: list[str] = []
        for procedure in self._procedures:
            try:
                cur.execute(procedure.sql, {"p_emp": tenant_id})
            except oracledb.Error as exc:
                failures.append(f"{procedure.name}: {exc}")
                continue
            Log.debug(f"Session switched to tenant {tenant_id} via {procedure.name}")
            return
        raise ContextSwitchError(tenant_id, failures)


def _as_tenant(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
