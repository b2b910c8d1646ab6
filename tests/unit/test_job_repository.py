from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import psycopg
import pytest

from product_migrator.database.models import JobRecord, JobStatus
from product_migrator.database.repositories.job_repository import JobRepository
from product_migrator.worker.exceptions import JobAlreadyActiveError

CREATED = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _make_row(**overrides: object) -> dict:
    row = {
        "id": 7,
        "filename": "reclassificacao.xlsx",
        "submitter": "maria",
        "total_rows": 3,
        "status": JobStatus.PROCESSING,
        "created_at": CREATED,
        "finished_at": None,
    }
    row.update(overrides)
    return row


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class _UniqueViolation(psycopg.errors.UniqueViolation):
    """UniqueViolation with a settable constraint name."""

    def __init__(self, constraint: str) -> None:
        super().__init__("duplicate key value violates unique constraint")
        self._constraint = constraint

    @property
    def diag(self) -> MagicMock:
        return MagicMock(constraint_name=self._constraint)


@patch("product_migrator.database.repositories.job_repository.get_connection")
class TestCreateJob:
    def test_returns_processing_job(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        job = JobRepository().create_job("reclassificacao.xlsx", "maria", 3)

        assert job == JobRecord(7, "reclassificacao.xlsx", "maria", 3, "PROCESSING", CREATED)
        assert mock_cursor.execute.call_args.args[1] == (
            "reclassificacao.xlsx",
            "maria",
            3,
            "PROCESSING",
        )
        mock_conn.commit.assert_called_once()

    def test_single_processing_violation_means_job_active(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = _UniqueViolation("migration_jobs_single_processing")

        with pytest.raises(JobAlreadyActiveError):
            JobRepository().create_job("b.xlsx", "maria", 1)

    def test_other_unique_violations_propagate(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = _UniqueViolation("migration_jobs_pkey")

        with pytest.raises(psycopg.errors.UniqueViolation):
            JobRepository().create_job("b.xlsx", "maria", 1)


@patch("product_migrator.database.repositories.job_repository.get_connection")
class TestQueries:
    def test_get_active_job(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        job = JobRepository().get_active_job()

        assert job is not None
        assert job.id == 7
        assert mock_cursor.execute.call_args.args[1] == ("PROCESSING",)

    def test_get_active_job_none(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert JobRepository().get_active_job() is None

    def test_get_recent_jobs_passes_limit(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [
            _make_row(id=8),
            _make_row(id=7, status="COMPLETED"),
        ]

        jobs = JobRepository().get_recent_jobs(2)

        assert [j.id for j in jobs] == [8, 7]
        assert mock_cursor.execute.call_args.args[1] == (2,)

    def test_find_by_id_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert JobRepository().find_by_id(99999) is None


@patch("product_migrator.database.repositories.job_repository.get_connection")
class TestTransitions:
    def test_finish_is_guarded_by_processing_status(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert JobRepository().finish(7, JobStatus.COMPLETED) is True

        sql, params = mock_cursor.execute.call_args.args
        assert "AND status = %s" in sql
        assert params == ("COMPLETED", 7, "PROCESSING")
        mock_conn.commit.assert_called_once()

    def test_finish_reports_no_op(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert JobRepository().finish(7, JobStatus.FAILED) is False

    def test_finish_rejects_non_terminal_status(self, mock_get_conn: MagicMock) -> None:
        with pytest.raises(ValueError, match="PROCESSING"):
            JobRepository().finish(7, JobStatus.PROCESSING)

        mock_get_conn.assert_not_called()

    def test_cancel_forces_failed(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert JobRepository().cancel(7) is True

        assert mock_cursor.execute.call_args.args[1] == ("FAILED", 7, "PROCESSING")
