import re

import oracledb

from product_migrator.cloning.exceptions import (
    AccessDeniedError,
    NoCloneableColumnsError,
    TableNotFoundError,
)

_IDENTIFIER = re.compile(r"^[A-Z0-9_]+$")

# ORA-01031: insufficient privileges
_INSUFFICIENT_PRIVILEGES = 1031


def sanitize_identifier(name: str) -> str:
    """Upper-case a schema identifier and reject anything unsafe for SQL text."""
    upper = str(name or "").upper()
    if not _IDENTIFIER.match(upper):
        raise ValueError(f"Invalid identifier: {name!r}")
    return upper


class ColumnCatalog:
    """Column lists read from live table metadata, cached per table.

    A catalog is meant to live for one job run so that schema changes are
    picked up by the next run.
    """

    def __init__(self, owner: str) -> None:
        self._owner = sanitize_identifier(owner)
        self._columns: dict[str, list[str]] = {}

    def columns(self, conn: oracledb.Connection, table: str) -> list[str]:
        """Return all column names of ``table`` in column order.

        Raises:
            TableNotFoundError: no metadata visible for the table.
            AccessDeniedError: the session may not read the metadata.
        """
        table_name = sanitize_identifier(table)
        cached = self._columns.get(table_name)
        if cached is not None:
            return cached

        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT column_name
                      FROM all_tab_columns
                     WHERE owner = :p_owner
                       AND table_name = :p_table
                     ORDER BY column_id
                    """,
                    {"p_owner": self._owner, "p_table": table_name},
                )
                rows = cur.fetchall()
        except oracledb.DatabaseError as exc:
            error = exc.args[0] if exc.args else None
            if getattr(error, "code", None) == _INSUFFICIENT_PRIVILEGES:
                raise AccessDeniedError(
                    f"No access to metadata of {self._owner}.{table_name}: {exc}"
                ) from exc
            raise

        if not rows:
            raise TableNotFoundError(
                f"Table not found or not accessible: {self._owner}.{table_name}"
            )

        columns = [row[0] for row in rows]
        self._columns[table_name] = columns
        return columns

    def clone_columns(
        self,
        conn: oracledb.Connection,
        table: str,
        exclude: tuple[str, ...],
    ) -> list[str]:
        """Return the columns of ``table`` minus ``exclude``.

        Raises:
            NoCloneableColumnsError: nothing is left after the exclusions.
        """
        excluded = {sanitize_identifier(column) for column in exclude}
        columns = [
            column
            for column in self.columns(conn, table)
            if sanitize_identifier(column) not in excluded
        ]
        if not columns:
            raise NoCloneableColumnsError(
                f"No columns left to clone in {self._owner}.{sanitize_identifier(table)} "
                "after exclusions"
            )
        return columns
