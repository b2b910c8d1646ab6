from typing import Any

from psycopg.rows import dict_row

from product_migrator.database.connection import get_connection
from product_migrator.database.models import AuditRowRecord, JobSummary, RowStatus

_AUDIT_COLUMNS = (
    "id, job_id, row_number, predecessor_id, new_id, status, error_message, "
    "species_code, class_code, subclass_code, success_predecessor, submitted_by, "
    "created_at, executed_at"
)


def _to_audit_row(row: dict[str, Any]) -> AuditRowRecord:
    return AuditRowRecord(
        id=row["id"],
        job_id=row["job_id"],
        row_number=row["row_number"],
        predecessor_id=row["predecessor_id"],
        new_id=row["new_id"],
        status=row["status"],
        error_message=row["error_message"],
        species_code=row["species_code"],
        class_code=row["class_code"],
        subclass_code=row["subclass_code"],
        success_predecessor=row["success_predecessor"],
        submitted_by=row["submitted_by"],
        created_at=row["created_at"],
        executed_at=row["executed_at"],
    )


class AuditRepository:
    """Append-only ledger of per-row outcomes in migration_audit_rows.

    Rows are never updated or deleted. Writes are not deduplicated: callers
    must not record the same row twice.
    """

    def record_outcome(
        self,
        job_id: int,
        row_number: int,
        predecessor_id: int | None,
        new_id: int | None,
        status: str,
        error_message: str | None,
        species_code: int | None,
        class_code: int | None,
        subclass_code: int | None,
        submitter: str | None,
    ) -> None:
        """Append one outcome row.

        ``success_predecessor`` mirrors the predecessor on SUCCESS only; it is
        the deduplication key used by ``find_prior_success``.
        """
        success_predecessor = predecessor_id if status == RowStatus.SUCCESS else None
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO migration_audit_rows
                    (job_id, row_number, predecessor_id, new_id, status, error_message,
                     species_code, class_code, subclass_code, success_predecessor,
                     submitted_by, executed_at, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
                """,
                (
                    job_id,
                    row_number,
                    predecessor_id,
                    new_id,
                    status,
                    error_message,
                    species_code,
                    class_code,
                    subclass_code,
                    success_predecessor,
                    submitter,
                ),
            )
            conn.commit()

    def find_prior_success(self, predecessor_id: int) -> AuditRowRecord | None:
        """Most recent SUCCESS row for ``predecessor_id`` in any job."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_AUDIT_COLUMNS}
                    FROM migration_audit_rows
                    WHERE success_predecessor = %s
                      AND status = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT 1
                    """,
                    (predecessor_id, RowStatus.SUCCESS),
                )
                row = cur.fetchone()
        return _to_audit_row(row) if row is not None else None

    def summarize(self, job_id: int) -> JobSummary | None:
        """Progress counters for a job, or None if the job does not exist."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT total_rows FROM migration_jobs WHERE id = %s",
                    (job_id,),
                )
                job_row = cur.fetchone()
                if job_row is None:
                    return None
                cur.execute(
                    """
                    SELECT
                        COUNT(*) FILTER (WHERE status = %s),
                        COUNT(*) FILTER (WHERE status <> %s)
                    FROM migration_audit_rows
                    WHERE job_id = %s
                    """,
                    (RowStatus.SUCCESS, RowStatus.SUCCESS, job_id),
                )
                counts = cur.fetchone()

        total = int(job_row[0] or 0)
        success = int(counts[0] or 0) if counts else 0
        errors = int(counts[1] or 0) if counts else 0
        processed = success + errors
        return JobSummary(
            total=total,
            processed=processed,
            success=success,
            errors=errors,
            remaining=max(total - processed, 0),
        )

    def list_errors(self, job_id: int) -> list[AuditRowRecord]:
        """Every non-SUCCESS row of a job, by row number."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_AUDIT_COLUMNS}
                    FROM migration_audit_rows
                    WHERE job_id = %s AND status <> %s
                    ORDER BY row_number ASC, id ASC
                    """,
                    (job_id, RowStatus.SUCCESS),
                )
                rows = cur.fetchall()
        return [_to_audit_row(row) for row in rows]
