from typing import Any

import psycopg

AUDIT_SCHEMA = """
CREATE TABLE IF NOT EXISTS migration_jobs (
    id          BIGSERIAL PRIMARY KEY,
    filename    TEXT        NOT NULL,
    submitter   TEXT        NOT NULL,
    total_rows  INTEGER     NOT NULL CHECK (total_rows >= 0),
    status      TEXT        NOT NULL
                CHECK (status IN ('PROCESSING', 'COMPLETED', 'FAILED')),
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    finished_at TIMESTAMPTZ
);

CREATE UNIQUE INDEX IF NOT EXISTS migration_jobs_single_processing
    ON migration_jobs (status)
    WHERE status = 'PROCESSING';

CREATE TABLE IF NOT EXISTS migration_audit_rows (
    id                  BIGSERIAL PRIMARY KEY,
    job_id              BIGINT      NOT NULL REFERENCES migration_jobs (id),
    row_number          INTEGER     NOT NULL CHECK (row_number >= 1),
    predecessor_id      BIGINT,
    new_id              BIGINT,
    status              TEXT        NOT NULL,
    error_message       TEXT,
    species_code        INTEGER,
    class_code          INTEGER,
    subclass_code       INTEGER,
    success_predecessor BIGINT,
    submitted_by        TEXT,
    executed_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS migration_audit_rows_job
    ON migration_audit_rows (job_id, row_number);

CREATE INDEX IF NOT EXISTS migration_audit_rows_success_predecessor
    ON migration_audit_rows (success_predecessor)
    WHERE success_predecessor IS NOT NULL;
"""

SINGLE_PROCESSING_INDEX = "migration_jobs_single_processing"


def apply_schema(conn: psycopg.Connection[Any]) -> None:
    """Create the audit tables and indexes if they do not exist yet."""
    conn.execute(AUDIT_SCHEMA)
    conn.commit()
