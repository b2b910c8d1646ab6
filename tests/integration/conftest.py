import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from product_migrator.config.settings import Settings
from product_migrator.database.connection import close_pool, get_connection, init_pool
from product_migrator.database.repositories.audit_repository import AuditRepository
from product_migrator.database.repositories.job_repository import JobRepository
from product_migrator.database.schema import apply_schema


def _test_settings() -> Settings:
    os.environ.setdefault("AUDIT_DB_DATABASE", "product_migrator_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        with psycopg.connect(
            host=test_settings.audit_db_host,
            port=test_settings.audit_db_port,
            dbname=test_settings.audit_db_database,
            user=test_settings.audit_db_username,
            password=test_settings.audit_db_password,
            connect_timeout=3,
        ) as conn:
            apply_schema(conn)
    except psycopg.Error as e:
        pytest.skip(f"PostgreSQL audit test DB not available: {e}. Set AUDIT_DB_* env")
    init_pool(test_settings)
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[int], None, None]:
    """Job ids to delete, with their ledger rows, after the test."""
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM migration_jobs WHERE status = 'PROCESSING'")
            row = cur.fetchone()
    if row is not None and row[0] > 0:
        pytest.skip("Test DB already has a PROCESSING job; cancel it first")

    job_ids: list[int] = []
    yield job_ids
    if not job_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM migration_audit_rows WHERE job_id = ANY(%s)", (job_ids,))
            cur.execute("DELETE FROM migration_jobs WHERE id = ANY(%s)", (job_ids,))
        conn.commit()


@pytest.fixture
def job_repo(integration_pool: None) -> JobRepository:
    return JobRepository()


@pytest.fixture
def audit_repo(integration_pool: None) -> AuditRepository:
    return AuditRepository()


@pytest.fixture
def finished_job(job_repo: JobRepository, integration_cleanup: list[int]) -> int:
    """A COMPLETED job with 5 declared rows."""
    job = job_repo.create_job("historico.xlsx", "maria", 5)
    integration_cleanup.append(job.id)
    job_repo.finish(job.id, "COMPLETED")
    return job.id
