import logging
from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from typing import Any

import oracledb
import psycopg

from product_migrator.cloning.clone_engine import CloneEngine
from product_migrator.cloning.column_catalog import ColumnCatalog
from product_migrator.config.settings import Settings
from product_migrator.database.exceptions import ConnectionUnavailableError
from product_migrator.database.models import (
    AuditRowRecord,
    JobRecord,
    JobStatus,
    JobSummary,
    RowStatus,
)
from product_migrator.database.primary_connection import get_primary_connection
from product_migrator.database.repositories.audit_repository import AuditRepository
from product_migrator.database.repositories.job_repository import JobRepository
from product_migrator.logging.logger import Log
from product_migrator.processor.exceptions import RowValueError
from product_migrator.processor.mapping import ColumnMapping, RowValues
from product_migrator.session.context_guard import SessionContextGuard
from product_migrator.session.exceptions import SessionContextError
from product_migrator.worker.exceptions import DuplicateHistoricalError

Row = Mapping[str, Any]


class JobOrchestrator:
    """Admits migration jobs and drives the per-row clone loop.

    One primary store session serves a whole job. Each row is committed or
    rolled back on its own, so a failing row never affects the others; only
    failing to obtain a tenant-bound session fails the job as a whole.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        audit_repo: AuditRepository,
        guard: SessionContextGuard,
        clone_engine: CloneEngine,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._audit_repo = audit_repo
        self._guard = guard
        self._clone_engine = clone_engine
        self._settings = settings

    def admit_job(self, filename: str, submitter: str | None, total_rows: int) -> int:
        """Create a PROCESSING job.

        Raises:
            JobAlreadyActiveError: if another job is PROCESSING.
        """
        job = self._job_repo.create_job(
            filename, submitter or self._settings.default_submitter, total_rows
        )
        Log.job(job.id, f"Admitted '{filename}' with {total_rows} row(s) from {job.submitter}")
        return job.id

    def run(
        self,
        job_id: int,
        rows: Sequence[Row],
        mapping: ColumnMapping,
        submitter: str | None,
    ) -> str:
        """Process every row of an admitted job and finalize it.

        Returns the terminal status this run asked for. If the job was
        cancelled in the meantime the cancellation stands.
        """
        submitter = submitter or self._settings.default_submitter
        Log.job(job_id, f"Processing {len(rows)} product(s)")
        try:
            self._process(job_id, rows, mapping, submitter)
        except Exception as exc:
            Log.job(job_id, f"Failed: {exc}", logging.ERROR)
            self._finish(job_id, JobStatus.FAILED)
            return JobStatus.FAILED
        self._finish(job_id, JobStatus.COMPLETED)
        return JobStatus.COMPLETED

    def cancel(self, job_id: int) -> bool:
        """Force a stuck PROCESSING job to FAILED. Does not stop a running loop."""
        cancelled = self._job_repo.cancel(job_id)
        if cancelled:
            Log.job(job_id, "Cancelled", logging.WARNING)
        return cancelled

    def get_active_job(self) -> JobRecord | None:
        return self._job_repo.get_active_job()

    def get_recent_jobs(self, limit: int | None = None) -> list[JobRecord]:
        return self._job_repo.get_recent_jobs(limit or self._settings.recent_jobs_limit)

    def summarize(self, job_id: int) -> JobSummary | None:
        return self._audit_repo.summarize(job_id)

    def list_errors(self, job_id: int) -> list[AuditRowRecord]:
        return self._audit_repo.list_errors(job_id)

    def _process(
        self,
        job_id: int,
        rows: Sequence[Row],
        mapping: ColumnMapping,
        submitter: str,
    ) -> None:
        with ExitStack() as stack:
            try:
                conn = stack.enter_context(get_primary_connection())
                self._guard.ensure_context(conn, self._settings.tenant_id)
            except (ConnectionUnavailableError, SessionContextError, oracledb.Error) as exc:
                self._record_unreachable(job_id, rows, mapping, submitter, str(exc))
                raise

            catalog = ColumnCatalog(self._settings.oracle_schema_owner)
            total = len(rows)
            for row_number, row in enumerate(rows, start=1):
                self._process_row(
                    conn, catalog, job_id, row_number, total, mapping.extract(row), submitter
                )

    def _process_row(
        self,
        conn: oracledb.Connection,
        catalog: ColumnCatalog,
        job_id: int,
        row_number: int,
        total: int,
        values: RowValues,
        submitter: str,
    ) -> None:
        try:
            values.validate()
        except RowValueError as exc:
            Log.row(job_id, row_number, total, f"Rejected: {exc}", logging.WARNING)
            self._record(
                job_id, row_number, values, None, RowStatus.ERROR_VALIDATION, str(exc), submitter
            )
            return

        predecessor_id = values.predecessor_id
        Log.row(job_id, row_number, total, f"Cloning product {predecessor_id}")
        try:
            prior = self._audit_repo.find_prior_success(predecessor_id)
        except psycopg.Error as exc:
            # No clone without the history lookup.
            message = f"Audit store lookup failed, product not cloned: {exc}"
            Log.row(job_id, row_number, total, message, logging.ERROR)
            self._record(
                job_id, row_number, values, None, RowStatus.ERROR_STORE, message, submitter
            )
            return

        try:
            if prior is not None:
                raise DuplicateHistoricalError(
                    f"Product {predecessor_id} was already cloned to {prior.new_id} "
                    f"by job {prior.job_id}"
                )
            new_id = self._clone_engine.clone_entity(
                conn, predecessor_id, values.classification, catalog
            )
            conn.commit()
        except Exception as exc:
            self._rollback(conn, job_id)
            status = (
                RowStatus.DUPLICATE_HISTORICAL
                if isinstance(exc, DuplicateHistoricalError)
                else RowStatus.ERROR_STORE
            )
            Log.row(
                job_id,
                row_number,
                total,
                f"{status} product {predecessor_id}: {exc}",
                logging.ERROR,
            )
            self._record(job_id, row_number, values, None, status, str(exc) or status, submitter)
            return

        Log.row(job_id, row_number, total, f"OK product {predecessor_id} -> {new_id}")
        self._record(job_id, row_number, values, new_id, RowStatus.SUCCESS, None, submitter)

    def _record_unreachable(
        self,
        job_id: int,
        rows: Sequence[Row],
        mapping: ColumnMapping,
        submitter: str,
        error: str,
    ) -> None:
        """Record every row as a connection failure without touching the primary store."""
        Log.job(
            job_id,
            f"Primary store unavailable, recording {len(rows)} row(s): {error}",
            logging.ERROR,
        )
        for row_number, row in enumerate(rows, start=1):
            self._record(
                job_id,
                row_number,
                mapping.extract(row),
                None,
                RowStatus.ERROR_CONNECTION,
                error or RowStatus.ERROR_CONNECTION,
                submitter,
            )

    def _record(
        self,
        job_id: int,
        row_number: int,
        values: RowValues,
        new_id: int | None,
        status: str,
        error_message: str | None,
        submitter: str,
    ) -> None:
        try:
            self._audit_repo.record_outcome(
                job_id=job_id,
                row_number=row_number,
                predecessor_id=values.predecessor_id,
                new_id=new_id,
                status=status,
                error_message=error_message,
                species_code=values.species_code,
                class_code=values.class_code,
                subclass_code=values.subclass_code,
                submitter=submitter,
            )
        except psycopg.Error as exc:
            Log.job(
                job_id,
                f"Ledger write failed for row {row_number} ({status}): {exc}",
                logging.ERROR,
            )

    def _rollback(self, conn: oracledb.Connection, job_id: int) -> None:
        try:
            conn.rollback()
        except oracledb.Error as exc:
            Log.job(job_id, f"Rollback failed: {exc}", logging.WARNING)

    def _finish(self, job_id: int, status: str) -> None:
        try:
            applied = self._job_repo.finish(job_id, status)
        except psycopg.Error as exc:
            Log.job(job_id, f"Could not set status {status}, retrying: {exc}", logging.WARNING)
            try:
                applied = self._job_repo.finish(job_id, status)
            except psycopg.Error as retry_exc:
                Log.job(
                    job_id,
                    f"Could not set status {status}: {retry_exc}. The job stays PROCESSING "
                    "and blocks new jobs until product-migrator-cancel-stuck is run",
                    logging.ERROR,
                )
                return
        if applied:
            Log.job(job_id, f"Finished with status {status}")
        else:
            Log.job(job_id, f"Already terminal, {status} not applied", logging.WARNING)
