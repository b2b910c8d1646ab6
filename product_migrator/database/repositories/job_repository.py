from typing import Any

import psycopg
from psycopg.rows import dict_row

from product_migrator.database.connection import get_connection
from product_migrator.database.models import JobRecord, JobStatus
from product_migrator.database.schema import SINGLE_PROCESSING_INDEX
from product_migrator.worker.exceptions import JobAlreadyActiveError

_JOB_COLUMNS = "id, filename, submitter, total_rows, status, created_at, finished_at"


def _to_job(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=row["id"],
        filename=row["filename"],
        submitter=row["submitter"],
        total_rows=row["total_rows"],
        status=row["status"],
        created_at=row["created_at"],
        finished_at=row["finished_at"],
    )


class JobRepository:
    """Database operations for the migration_jobs table."""

    def create_job(self, filename: str, submitter: str, total_rows: int) -> JobRecord:
        """Insert a new PROCESSING job.

        The unique partial index on PROCESSING jobs makes this the admission
        gate across every process sharing the audit store.

        Raises:
            JobAlreadyActiveError: if another job is PROCESSING.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO migration_jobs (filename, submitter, total_rows, status)
                        VALUES (%s, %s, %s, %s)
                        RETURNING {_JOB_COLUMNS}
                        """,
                        (filename, submitter, total_rows, JobStatus.PROCESSING),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            if exc.diag.constraint_name != SINGLE_PROCESSING_INDEX:
                raise
            raise JobAlreadyActiveError("Another job is already processing") from exc

        if row is None:
            raise RuntimeError("INSERT INTO migration_jobs returned no row")
        return _to_job(row)

    def get_active_job(self) -> JobRecord | None:
        """Return the PROCESSING job, if any."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_JOB_COLUMNS}
                    FROM migration_jobs
                    WHERE status = %s
                    ORDER BY created_at DESC
                    LIMIT 1
                    """,
                    (JobStatus.PROCESSING,),
                )
                row = cur.fetchone()
        return _to_job(row) if row is not None else None

    def list_processing_jobs(self) -> list[JobRecord]:
        """Every PROCESSING job, newest first. More than one means a broken gate."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_JOB_COLUMNS}
                    FROM migration_jobs
                    WHERE status = %s
                    ORDER BY created_at DESC
                    """,
                    (JobStatus.PROCESSING,),
                )
                rows = cur.fetchall()
        return [_to_job(row) for row in rows]

    def get_recent_jobs(self, limit: int) -> list[JobRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_JOB_COLUMNS}
                    FROM migration_jobs
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = cur.fetchall()
        return [_to_job(row) for row in rows]

    def find_by_id(self, job_id: int) -> JobRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM migration_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()
        return _to_job(row) if row is not None else None

    def finish(self, job_id: int, status: str) -> bool:
        """Move a PROCESSING job to a terminal status.

        Returns False when the job was no longer PROCESSING, e.g. because it
        was cancelled first.
        """
        if status not in (JobStatus.COMPLETED, JobStatus.FAILED):
            raise ValueError(f"Not a terminal job status: {status}")
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE migration_jobs
                    SET status = %s, finished_at = NOW()
                    WHERE id = %s AND status = %s
                    """,
                    (status, job_id, JobStatus.PROCESSING),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def cancel(self, job_id: int) -> bool:
        """Force a PROCESSING job to FAILED. No-op for any other status."""
        return self.finish(job_id, JobStatus.FAILED)
